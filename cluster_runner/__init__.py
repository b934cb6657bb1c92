"""
Cluster Runner - in-process multi-node search engine clusters for integration tests
"""
from .configs import Configs, new_configs
from .exceptions import (
    ClusterRunnerError, ConfigError, WorkspaceError, PortExhaustedError, NotFoundError,
    NodeStartError, ConvergenceTimeoutError, HealthCheckError, OperationFailure, DeleteResidueError
)
from .main import ClusterRunner
from .models import ClusterConfig, HealthStatus, NodeHandle, NodeState, ActionResponse

__all__ = [
    'ClusterRunner',
    'ClusterConfig',
    'Configs',
    'new_configs',
    'HealthStatus',
    'NodeHandle',
    'NodeState',
    'ActionResponse',
    'ClusterRunnerError',
    'ConfigError',
    'WorkspaceError',
    'PortExhaustedError',
    'NotFoundError',
    'NodeStartError',
    'ConvergenceTimeoutError',
    'HealthCheckError',
    'OperationFailure',
    'DeleteResidueError',
]
