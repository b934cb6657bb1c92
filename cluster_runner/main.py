"""
Main entry point for the Cluster Runner
"""
import atexit
import logging
from typing import Any, Dict, List, Optional, Union

from .configs import Configs, parse_args
from .cluster_orchestrator import ClusterOrchestrator, ConvergenceGate, OperationFacade
from .cluster_orchestrator.orchestrator import BuildHook, NodeFactory, OverridesFunc
from .interfaces import IEngineClient
from .models import ActionResponse, ClusterConfig, HealthStatus, NodeHandle
from .utils.failure_policy import FailurePolicy

logger = logging.getLogger(__name__)


class ClusterRunner:
    """
    Runs a multi-node engine cluster inside the test process.

    Use it as a context manager so nodes are closed on every exit path:

        with ClusterRunner(ClusterConfig(num_of_node=3)) as runner:
            runner.ensure_yellow()
            runner.insert("idx", "doc", "1", {"msg": "hello"})
    """

    def __init__(self, config: Optional[ClusterConfig] = None, node_factory: Optional[NodeFactory] = None,
                 overrides: Optional[OverridesFunc] = None):
        self.config = config or ClusterConfig()
        self.node_factory = node_factory
        self.overrides = overrides
        self.build_hook: Optional[BuildHook] = None
        self.orchestrator: Optional[ClusterOrchestrator] = None
        self.gate: Optional[ConvergenceGate] = None
        self.operations: Optional[OperationFacade] = None
        self._shutdown_hook_registered = False

    def on_build(self, build_hook: BuildHook) -> 'ClusterRunner':
        """Register a hook called with (node_index, settings) before defaults are filled in"""
        self.build_hook = build_hook
        return self

    def build(self, *args: Union[str, Configs, ClusterConfig]) -> 'ClusterRunner':
        """Create and start the cluster from a ClusterConfig, a Configs builder or raw arguments"""
        if len(args) == 1 and isinstance(args[0], ClusterConfig):
            self.config = args[0]
        elif len(args) == 1 and isinstance(args[0], Configs):
            self.config = parse_args(args[0].build(), base=self.config)
        elif args:
            self.config = parse_args([str(arg) for arg in args], base=self.config)

        self.orchestrator = ClusterOrchestrator(
            self.config,
            node_factory=self.node_factory,
            build_hook=self.build_hook,
            overrides=self.overrides
        )
        policy = FailurePolicy(self.config.print_on_failure, printer=self.orchestrator.printer)
        self.gate = ConvergenceGate(self.orchestrator.client, policy, timeout=self.config.health_timeout)
        self.operations = OperationFacade(self.orchestrator.client, self.gate, policy)

        self.orchestrator.build()
        return self

    def register_shutdown_hook(self) -> None:
        """Close the cluster when the interpreter exits"""
        if not self._shutdown_hook_registered:
            atexit.register(self.close)
            self._shutdown_hook_registered = True

    def __enter__(self) -> 'ClusterRunner':
        if self.orchestrator is None:
            try:
                self.build()
            except Exception:
                self.close()
                raise
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()

    def close(self) -> None:
        if self.orchestrator is not None:
            self.orchestrator.close()

    def is_closed(self) -> bool:
        return self.orchestrator is None or self.orchestrator.is_closed()

    def wait_for_close(self, timeout: Optional[float] = None) -> bool:
        return self.orchestrator.wait_for_close(timeout)

    def clean(self) -> None:
        self.orchestrator.clean()

    @property
    def cluster_name(self) -> str:
        return self.config.cluster_name

    @property
    def base_path(self) -> Optional[str]:
        return self.config.base_path

    def node_size(self) -> int:
        return self.orchestrator.node_size() if self.orchestrator else 0

    def node(self, key: Union[int, str, None] = None) -> Optional[NodeHandle]:
        return self.orchestrator.node(key)

    def master_node(self) -> Optional[NodeHandle]:
        return self.orchestrator.master_node()

    def non_master_node(self) -> Optional[NodeHandle]:
        return self.orchestrator.non_master_node()

    def client(self) -> IEngineClient:
        return self.orchestrator.client()

    def admin(self) -> IEngineClient:
        # health and index administration live on the same client adapter
        return self.client()

    def ensure_green(self, *indices: str) -> HealthStatus:
        return self.gate.ensure_green(*indices)

    def ensure_yellow(self, *indices: str) -> HealthStatus:
        return self.gate.ensure_yellow(*indices)

    def wait_for_relocation(self) -> HealthStatus:
        return self.gate.wait_for_relocation()

    def create_index(self, index: str, settings: Optional[Dict[str, Any]] = None) -> ActionResponse:
        return self.operations.create_index(index, settings)

    def index_exists(self, index: str) -> bool:
        return self.operations.index_exists(index)

    def create_mapping(self, index: str, doc_type: str, source: Union[str, Dict[str, Any]]) -> ActionResponse:
        return self.operations.create_mapping(index, doc_type, source)

    def insert(self, index: str, doc_type: str, doc_id: str, source: Union[str, Dict[str, Any]]) -> ActionResponse:
        return self.operations.insert(index, doc_type, doc_id, source)

    def delete(self, index: str, doc_type: str, doc_id: str) -> ActionResponse:
        return self.operations.delete(index, doc_type, doc_id)

    def search(self, index: str, doc_type: Optional[str] = None, query: Optional[Dict[str, Any]] = None,
               sort: Optional[List[Union[str, Dict[str, Any]]]] = None, from_: int = 0,
               size: int = 10) -> ActionResponse:
        return self.operations.search(index, doc_type, query, sort, from_, size)

    def flush(self) -> ActionResponse:
        return self.operations.flush()

    def refresh(self) -> ActionResponse:
        return self.operations.refresh()

    def optimize(self, force: bool = False) -> ActionResponse:
        return self.operations.optimize(force)
