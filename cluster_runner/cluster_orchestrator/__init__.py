"""
Cluster Orchestrator - node provisioning, lifecycle and health-gated operations
"""
from .orchestrator import (
    PortAllocator, NodeWorkspace, NodeConfigBuilder, ClusterOrchestrator
)
from .convergence import ConvergenceGate
from .operations import OperationFacade

__all__ = [
    'PortAllocator',
    'NodeWorkspace',
    'NodeConfigBuilder',
    'ClusterOrchestrator',
    'ConvergenceGate',
    'OperationFacade',
]
