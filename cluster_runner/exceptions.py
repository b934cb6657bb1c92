"""
Exception hierarchy for the Cluster Runner
"""
from typing import Any, Optional


class ClusterRunnerError(Exception):
    """Base error raised by the cluster runner, optionally carrying the engine response"""

    def __init__(self, message: str, response: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.response = response


class ConfigError(ClusterRunnerError):
    """Invalid command-line arguments or configuration values"""


class WorkspaceError(ClusterRunnerError):
    """A node directory or bootstrap template could not be created"""


class PortExhaustedError(ClusterRunnerError):
    """No free port left in the probed range"""


class NotFoundError(ClusterRunnerError):
    """Node lookup by position failed"""


class NodeStartError(ClusterRunnerError):
    """An engine node exited or never became reachable during startup"""


class ConvergenceTimeoutError(ClusterRunnerError):
    """Cluster health did not reach the requested state before the deadline"""


class HealthCheckError(ClusterRunnerError):
    """The health request itself was rejected or returned a status below the requested floor"""


class OperationFailure(ClusterRunnerError):
    """The engine did not acknowledge a mutating call or reported shard failures"""


class DeleteResidueError(ClusterRunnerError):
    """clean() left files or directories behind"""
