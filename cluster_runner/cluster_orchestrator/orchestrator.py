import os
import shutil
import socket
import logging
import tempfile
import threading
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Set, Union

from ..exceptions import (
    ClusterRunnerError, NotFoundError, PortExhaustedError, WorkspaceError, DeleteResidueError
)
from ..interfaces import IEngineNode, IEngineClient
from ..models import ClusterConfig, NodeHandle, NodePaths, NodeState

logging.basicConfig(format='%(levelname)-5s | %(filename)s:%(lineno)-3d | %(message)s', level=logging.INFO)
logger = logging.getLogger(__name__)

CONFIG_DIR = "config"
PLUGINS_DIR = "plugins"
DATA_DIR = "data"
LOGS_DIR = "logs"
WORK_DIR = "work"

ENGINE_YAML = "engine.yaml"
LOGGING_YAML = "logging.yaml"
TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "resources" / CONFIG_DIR

BuildHook = Callable[[int, Dict[str, str]], None]
OverridesFunc = Callable[[int], Dict[str, Any]]
NodeFactory = Callable[[Dict[str, str], ClusterConfig], IEngineNode]
Printer = Callable[[str], None]


class PortAllocator:
    """
    Finds free local ports for cluster nodes.

    A port counts as busy when a TCP connect to it succeeds. Nothing stops
    another process from binding the port between the probe and the node's
    own bind, so two concurrent runs on one host can still collide.
    """

    def __init__(self, host: str = "localhost", probe_timeout: float = 1.0, printer: Optional[Printer] = None,
                 config: Optional[ClusterConfig] = None):
        self.config = config
        self.host = host
        self.probe_timeout = probe_timeout
        self.printer = printer or print
        self.allocated_ports: Set[int] = set()

    def allocate(self, base_port: int, max_port: int, node_index: int, kind: str = "transport") -> int:
        """Return base_port + node_index or the next free port after it, up to max_port"""
        port = base_port + node_index
        if max_port < 0:
            self.allocated_ports.add(port)
            return port

        while port <= max_port:
            if port not in self.allocated_ports and self._is_port_free(port):
                self.allocated_ports.add(port)
                logger.debug(f"Allocated {kind} port {port} for node {node_index}")
                return port
            port += 1

        raise PortExhaustedError(f"The {kind} port {port} is unavailable.")

    def allocate_transport_port(self, node_index: int) -> int:
        config = self._require_config()
        return self.allocate(config.base_transport_port, config.max_transport_port, node_index, kind="transport")

    def allocate_http_port(self, node_index: int) -> int:
        config = self._require_config()
        return self.allocate(config.base_http_port, config.max_http_port, node_index, kind="http")

    def _require_config(self) -> ClusterConfig:
        if self.config is None:
            raise ClusterRunnerError("PortAllocator has no ClusterConfig bound.")
        return self.config

    def _is_port_free(self, port: int) -> bool:
        try:
            with socket.create_connection((self.host, port), timeout=self.probe_timeout):
                return False
        except ConnectionRefusedError:
            return True
        except OSError as e:
            self.printer(f"Probing port {port} failed: {e}")
            return False


class NodeWorkspace:
    """Creates the on-disk layout shared by all nodes and the per-node directories"""

    def __init__(self, base_path: str, printer: Optional[Printer] = None):
        self.base_path = base_path
        self.printer = printer or print
        self.conf_path = os.path.join(base_path, CONFIG_DIR)
        self.plugins_path = os.path.join(base_path, PLUGINS_DIR)

    def prepare_base(self) -> None:
        """Create base, config and plugins directories and the bootstrap config files"""
        self.create_dir(self.base_path)
        self.create_dir(self.conf_path)
        self.create_dir(self.plugins_path)
        for template in (ENGINE_YAML, LOGGING_YAML):
            self.copy_template(template)

    def prepare(self, node_index: int) -> NodePaths:
        """Create the data, logs and work directories for one node"""
        self.prepare_base()

        node_dir = f"node_{node_index}"
        data_path = os.path.join(self.base_path, DATA_DIR, node_dir)
        logs_path = os.path.join(self.base_path, LOGS_DIR, node_dir)
        work_path = os.path.join(self.base_path, WORK_DIR, node_dir)

        for path in (logs_path, data_path, work_path):
            self.create_dir(path)

        return NodePaths(
            data_path=os.path.abspath(data_path),
            logs_path=os.path.abspath(logs_path),
            work_path=os.path.abspath(work_path),
            conf_path=os.path.abspath(self.conf_path),
            plugins_path=os.path.abspath(self.plugins_path)
        )

    def create_dir(self, path: str) -> None:
        if os.path.exists(path):
            return
        self.printer(f"Creating {path}")
        try:
            os.makedirs(path, exist_ok=True)
        except OSError as e:
            raise WorkspaceError(f"Failed to create {path}") from e

    def copy_template(self, name: str) -> None:
        target = os.path.join(self.conf_path, name)
        if os.path.exists(target):
            return
        try:
            shutil.copyfile(TEMPLATE_DIR / name, target)
        except OSError as e:
            raise WorkspaceError(f"Could not create: {target}") from e


def _setting_value(value: Any) -> str:
    if isinstance(value, bool):
        return str(value).lower()
    return str(value)


class NodeConfigBuilder:
    """
    Merges caller overrides with per-node paths, identity and ports.

    Caller values are applied first and every later write only fills keys that
    are still missing.
    """

    def __init__(self, config: ClusterConfig, build_hook: Optional[BuildHook] = None,
                 overrides: Optional[OverridesFunc] = None):
        self.config = config
        self.build_hook = build_hook
        self.overrides = overrides

    def merge(self, node_index: int, paths: NodePaths, transport_port: int, http_port: int) -> Dict[str, str]:
        settings: Dict[str, Any] = {}

        if self.overrides is not None:
            for key, value in (self.overrides(node_index) or {}).items():
                if value is not None:
                    settings[key] = value

        if self.build_hook is not None:
            self.build_hook(node_index, settings)

        self.put_if_absent(settings, "path.conf", paths.conf_path)
        self.put_if_absent(settings, "path.data", paths.data_path)
        self.put_if_absent(settings, "path.work", paths.work_path)
        self.put_if_absent(settings, "path.logs", paths.logs_path)
        self.put_if_absent(settings, "path.plugins", paths.plugins_path)

        self.put_if_absent(settings, "cluster.name", self.config.cluster_name)
        self.put_if_absent(settings, "node.name", node_name(node_index))
        self.put_if_absent(settings, "node.master", True)
        self.put_if_absent(settings, "node.data", True)
        self.put_if_absent(settings, "http.enabled", True)
        self.put_if_absent(settings, "transport.tcp.port", transport_port)
        self.put_if_absent(settings, "http.port", http_port)
        self.put_if_absent(settings, "index.store.type", self.config.index_store_type)

        return {key: _setting_value(value) for key, value in settings.items() if value is not None}

    @staticmethod
    def put_if_absent(settings: Dict[str, Any], key: str, value: Any) -> None:
        if settings.get(key) is None and value is not None:
            settings[key] = value


def node_name(node_index: int) -> str:
    return f"Node {node_index}"


class ClusterOrchestrator:
    """Builds, tracks and tears down the nodes of one cluster"""

    def __init__(self, config: ClusterConfig, node_factory: Optional[NodeFactory] = None,
                 build_hook: Optional[BuildHook] = None, overrides: Optional[OverridesFunc] = None):
        self.config = config
        self.node_factory = node_factory
        self.build_hook = build_hook
        self.overrides = overrides
        self.nodes: List[NodeHandle] = []
        self.printer: Printer = logger.info if config.use_logger else print
        self.port_allocator = PortAllocator(printer=self.printer, config=config)
        self.workspace: Optional[NodeWorkspace] = None
        self._lock = threading.Lock()
        self._closing = threading.Event()
        self._closed_event = threading.Event()

    @property
    def base_path(self) -> Optional[str]:
        return self.config.base_path

    @property
    def cluster_name(self) -> str:
        return self.config.cluster_name

    def build(self) -> None:
        """Create and start every node, one after another"""
        self.config.validate()

        if self.config.base_path is None:
            try:
                self.config.base_path = tempfile.mkdtemp(prefix="es-cluster")
            except OSError as e:
                raise WorkspaceError("Could not create the base path.") from e
        self.config.base_path = os.path.abspath(self.config.base_path)

        self.workspace = NodeWorkspace(self.config.base_path, printer=self.printer)
        self.workspace.prepare_base()

        if self.node_factory is None:
            from ..engine_client import create_process_node
            self.node_factory = create_process_node

        self._closing.clear()
        self._closed_event.clear()

        self.printer("----------------------------------------")
        self.printer(f"Cluster Name: {self.config.cluster_name}")
        self.printer(f"Base Path:    {self.config.base_path}")
        self.printer(f"Num Of Node:  {self.config.num_of_node}")
        self.printer("----------------------------------------")

        for number in range(1, self.config.num_of_node + 1):
            if self._closing.is_set():
                raise ClusterRunnerError(f"Cluster was closed before Node {number} was built.")
            self.build_node(number)

    def build_node(self, number: int) -> NodeHandle:
        paths = self.workspace.prepare(number)

        transport_port = self.port_allocator.allocate_transport_port(number)
        http_port = self.port_allocator.allocate_http_port(number)

        builder = NodeConfigBuilder(self.config, build_hook=self.build_hook, overrides=self.overrides)
        settings = builder.merge(number, paths, transport_port, http_port)

        handle = NodeHandle(
            index=number,
            name=settings.get("node.name", node_name(number)),
            transport_port=int(settings.get("transport.tcp.port", transport_port)),
            http_port=int(settings.get("http.port", http_port)),
            data_path=paths.data_path,
            logs_path=paths.logs_path,
            work_path=paths.work_path,
            settings=settings
        )

        self.printer(f"Node Name:      {handle.name}")
        self.printer(f"HTTP Port:      {handle.http_port}")
        self.printer(f"Transport Port: {handle.transport_port}")
        self.printer(f"Data Directory: {handle.data_path}")
        self.printer(f"Log Directory:  {handle.logs_path}")
        self.printer("----------------------------------------")

        self.nodes.append(handle)
        handle.state = NodeState.STARTING
        try:
            handle.node = self.node_factory(settings, self.config)
            handle.node.start()
        except Exception:
            logger.error(f"Failed to start {handle.name}")
            self._close_handle(handle)
            raise

        if self._closing.is_set():
            # close() started while this node was starting
            self._close_handle(handle)
            raise ClusterRunnerError(f"Cluster was closed while {handle.name} was starting.")

        handle.state = NodeState.RUNNING
        return handle

    def close(self) -> None:
        """Close every node, continuing past nodes that fail to close"""
        self._closing.set()
        for handle in self.nodes:
            self._close_handle(handle)
        self.printer("Closed all nodes.")
        self._closed_event.set()

    def _close_handle(self, handle: NodeHandle) -> None:
        try:
            if handle.node is not None and not handle.node.is_closed():
                handle.node.close()
        except Exception as e:
            logger.error(f"Failed to close {handle.name}: {e}")
        finally:
            handle.state = NodeState.CLOSED

    def is_closed(self) -> bool:
        return all(handle.is_closed() for handle in self.nodes)

    def wait_for_close(self, timeout: Optional[float] = None) -> bool:
        """Block until close() has run; returns False on timeout"""
        return self._closed_event.wait(timeout)

    def node_size(self) -> int:
        return len(self.nodes)

    def node(self, key: Union[int, str, None] = None) -> Optional[NodeHandle]:
        """
        Look up a node.

        No argument returns the first open node. An int is a 0-based position
        and raises NotFoundError when out of range. A name returns None when
        nothing matches so callers can poll.
        """
        if key is None:
            for handle in self.nodes:
                if not handle.is_closed():
                    return handle
            raise ClusterRunnerError("All nodes are closed.")

        if isinstance(key, int) and not isinstance(key, bool):
            if key < 0 or key >= len(self.nodes):
                raise NotFoundError(f"No node at index {key} ({len(self.nodes)} nodes)")
            return self.nodes[key]

        return self.get_node_by_name(key)

    def get_node_by_name(self, name: Optional[str]) -> Optional[NodeHandle]:
        if name is None:
            return None
        for handle in self.nodes:
            if name == handle.settings.get("node.name", handle.name):
                return handle
        return None

    def client(self) -> IEngineClient:
        return self.node().client()

    def master_node(self) -> Optional[NodeHandle]:
        with self._lock:
            return self.get_node_by_name(self._master_name())

    def non_master_node(self) -> Optional[NodeHandle]:
        with self._lock:
            master = self._master_name()
            for handle in self.nodes:
                if not handle.is_closed() and master != handle.settings.get("node.name", handle.name):
                    return handle
            return None

    def _master_name(self) -> Optional[str]:
        response = self.client().cluster_state()
        if not response.ok:
            raise ClusterRunnerError("Failed to read cluster state.", response)

        state = response.body
        master_id = state.get("master_node")
        if master_id is None:
            logger.warning("Cluster state has no elected master")
            return None
        return (state.get("nodes") or {}).get(master_id, {}).get("name")

    def clean(self) -> None:
        """Recursively delete the base path"""
        if self.config.base_path is None:
            return
        path = Path(self.config.base_path)
        if not path.exists():
            return

        try:
            shutil.rmtree(path)
        except OSError as e:
            self.printer(f"Failed to delete {path}")
            raise DeleteResidueError(f"Failed to delete {path}: {e}") from e

        if path.exists():
            self.printer(f"Failed to delete {path}")
            raise DeleteResidueError(f"Failed to delete {path}")

        self.printer(f"Deleted {path}")
