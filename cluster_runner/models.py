"""
Core data models for the Cluster Runner
"""
from dataclasses import dataclass, field, fields
from typing import Dict, Any, Optional, TYPE_CHECKING
from enum import Enum

from .exceptions import ConfigError

if TYPE_CHECKING:
    from .interfaces import IEngineNode, IEngineClient


DEFAULT_CLUSTER_NAME = "elasticsearch-cluster-runner"


@dataclass
class ClusterConfig:
    """Configuration for a runner-managed cluster"""
    base_path: Optional[str] = None
    num_of_node: int = 3
    base_transport_port: int = 9300
    base_http_port: int = 9200
    max_transport_port: int = 9399
    max_http_port: int = 9299
    cluster_name: str = DEFAULT_CLUSTER_NAME
    index_store_type: str = "default"
    use_logger: bool = False
    print_on_failure: bool = False
    engine_binary: str = "elasticsearch"
    startup_timeout: float = 60.0
    health_timeout: str = "30s"

    def validate(self) -> None:
        """Reject values no cluster can be built from"""
        if self.num_of_node < 0:
            raise ConfigError(f"num_of_node must be >= 0, got {self.num_of_node}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ClusterConfig':
        """Build a config from a parsed YAML/JSON mapping"""
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ConfigError(f"Cluster configuration must be a mapping, got {type(data).__name__}")

        known = {f.name: f for f in fields(cls)}
        unknown = sorted(set(data) - set(known))
        if unknown:
            raise ConfigError(f"Unknown configuration keys: {', '.join(unknown)}")

        values = {}
        for key, value in data.items():
            expected = known[key].type
            if value is None:
                values[key] = value
                continue
            if expected is bool and not isinstance(value, bool):
                raise ConfigError(f"{key} must be a boolean, got {value!r}")
            if expected is int and (isinstance(value, bool) or not isinstance(value, int)):
                raise ConfigError(f"{key} must be an integer, got {value!r}")
            if expected is float and not isinstance(value, (int, float)):
                raise ConfigError(f"{key} must be a number, got {value!r}")
            values[key] = value

        config = cls(**values)
        config.validate()
        return config


class NodeState(Enum):
    """Lifecycle states of a node handle"""
    UNSTARTED = "unstarted"
    STARTING = "starting"
    RUNNING = "running"
    CLOSED = "closed"


class HealthStatus(Enum):
    """Cluster health colours, ordered from best to worst"""
    GREEN = "green"
    YELLOW = "yellow"
    RED = "red"

    @classmethod
    def from_value(cls, value: Optional[str]) -> 'HealthStatus':
        if value is None:
            return cls.RED
        try:
            return cls(str(value).lower())
        except ValueError:
            return cls.RED

    def satisfies(self, target: 'HealthStatus') -> bool:
        """True when this status is at least as good as target"""
        order = [HealthStatus.RED, HealthStatus.YELLOW, HealthStatus.GREEN]
        return order.index(self) >= order.index(target)


@dataclass
class NodePaths:
    """Directories prepared for one node"""
    data_path: str
    logs_path: str
    work_path: str
    conf_path: str
    plugins_path: str


@dataclass
class NodeHandle:
    """A node started by the orchestrator"""
    index: int
    name: str
    transport_port: int
    http_port: int
    data_path: str
    logs_path: str
    work_path: str
    settings: Dict[str, str]
    node: Optional['IEngineNode'] = None
    state: NodeState = NodeState.UNSTARTED

    def is_closed(self) -> bool:
        if self.state == NodeState.CLOSED:
            return True
        return self.node is not None and self.node.is_closed()

    def client(self) -> 'IEngineClient':
        return self.node.client()


@dataclass
class ActionResponse:
    """Raw engine response: HTTP status plus decoded JSON body"""
    status_code: int
    body: Dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def acknowledged(self) -> bool:
        return self.ok and bool(self.body.get('acknowledged', False))

    @property
    def created(self) -> bool:
        if not self.ok:
            return False
        if 'created' in self.body:
            return bool(self.body['created'])
        return self.body.get('result') == 'created'

    @property
    def found(self) -> bool:
        if not self.ok:
            return False
        if 'found' in self.body:
            return bool(self.body['found'])
        return self.body.get('result') == 'deleted'

    @property
    def exists(self) -> bool:
        return self.ok

    @property
    def timed_out(self) -> bool:
        return bool(self.body.get('timed_out', False))

    @property
    def shard_failures(self) -> list:
        shards = self.body.get('_shards') or {}
        return list(shards.get('failures') or [])

    def __str__(self) -> str:
        return f"ActionResponse(status={self.status_code}, body={self.body})"
