"""
Convergence Gate - blocks until cluster health reaches a requested state
"""
import json
import logging
from typing import Callable, Optional, Sequence

from ..exceptions import ConvergenceTimeoutError, HealthCheckError
from ..interfaces import IEngineClient
from ..models import ActionResponse, HealthStatus
from ..utils.failure_policy import FailurePolicy

logger = logging.getLogger(__name__)

LANGUID = "languid"


class ConvergenceGate:
    """
    Issues health requests that wait for a status floor, zero relocating shards
    and a drained event queue.

    A timeout is reported through the failure policy together with a dump of
    the cluster state and pending tasks. When the policy does not raise, the
    last observed status is returned so callers that accept yellow can go on.
    """

    def __init__(self, client_provider: Callable[[], IEngineClient], failure_policy: FailurePolicy,
                 timeout: str = "30s"):
        self.client_provider = client_provider
        self.failure_policy = failure_policy
        self.timeout = timeout

    def wait(self, target_status: Optional[HealthStatus], indices: Sequence[str] = (),
             timeout: Optional[str] = None, operation: str = "wait") -> HealthStatus:
        client = self.client_provider()
        wait_for_status = target_status.value if target_status is not None else None

        logger.debug(f"{operation}: waiting for status={wait_for_status} indices={list(indices)}")
        response = client.health(
            indices=indices,
            wait_for_status=wait_for_status,
            wait_for_relocating_shards=0,
            wait_for_events=LANGUID if target_status is not None else None,
            timeout=timeout or self.timeout
        )

        if response.timed_out:
            self.failure_policy.on_failure(
                self._timeout_message(client, operation),
                response,
                error_cls=ConvergenceTimeoutError
            )
            return HealthStatus.from_value(response.body.get("status"))

        if not response.ok:
            self.failure_policy.on_failure(
                f"{operation} failed with HTTP {response.status_code}: {_pretty(response)}",
                response,
                error_cls=HealthCheckError
            )
            return HealthStatus.RED

        status = HealthStatus.from_value(response.body.get("status"))
        if target_status is not None and not status.satisfies(target_status):
            self.failure_policy.on_failure(
                f"{operation} returned {status.value}, expected at least {target_status.value}",
                response,
                error_cls=HealthCheckError
            )
        return status

    def ensure_green(self, *indices: str) -> HealthStatus:
        return self.wait(HealthStatus.GREEN, indices, operation="ensureGreen")

    def ensure_yellow(self, *indices: str) -> HealthStatus:
        return self.wait(HealthStatus.YELLOW, indices, operation="ensureYellow")

    def wait_for_relocation(self) -> HealthStatus:
        return self.wait(None, operation="waitForRelocation")

    def _timeout_message(self, client: IEngineClient, operation: str) -> str:
        return (
            f"{operation} timed out, cluster state:\n"
            f"{_describe(client.cluster_state)}\n"
            f"{_describe(client.pending_tasks)}"
        )


def _describe(request: Callable[[], ActionResponse]) -> str:
    # best effort, the timeout is reported either way
    try:
        response = request()
    except Exception as e:
        logger.warning(f"Could not collect diagnostics: {e}")
        return f"<unavailable: {e}>"
    if not response.ok:
        return f"<HTTP {response.status_code}> {_pretty(response)}"
    return _pretty(response)


def _pretty(response: ActionResponse) -> str:
    return json.dumps(response.body, indent=2, sort_keys=True, default=str)
