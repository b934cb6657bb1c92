"""
Failure policy shared by health waits and operation wrappers
"""
import logging
from typing import Any, Callable, Optional, Type

from ..exceptions import ClusterRunnerError, OperationFailure

logger = logging.getLogger(__name__)


class FailurePolicy:
    """
    Decides what a soft failure does.

    In print mode the message goes to the printer and the caller continues with
    whatever the engine returned; otherwise the failure is raised with the raw
    response attached.
    """

    def __init__(self, print_on_failure: bool = False, printer: Optional[Callable[[str], None]] = None):
        self.print_on_failure = print_on_failure
        self.printer = printer or print

    def on_failure(self, message: str, response: Any = None,
                   error_cls: Type[ClusterRunnerError] = OperationFailure) -> None:
        if self.print_on_failure:
            self.printer(message)
            return
        logger.debug(f"Raising {error_cls.__name__}: {message}")
        raise error_cls(message, response)
