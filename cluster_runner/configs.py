"""
Argument parsing, config files and the fluent Configs builder
"""
import json
import argparse
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

from .exceptions import ConfigError
from .models import ClusterConfig


class _RaisingArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that raises ConfigError instead of exiting"""

    def error(self, message):
        raise ConfigError(f"Failed to parse args: {message}")


def add_cluster_arguments(parser: argparse.ArgumentParser) -> None:
    """Register cluster options; unset options stay absent from the namespace"""
    parser.add_argument('--base-path', '-basePath', dest='base_path', default=argparse.SUPPRESS,
                        help='Base path for the cluster (default: a fresh temp directory)')
    parser.add_argument('--num-of-node', '-numOfNode', dest='num_of_node', type=int, default=argparse.SUPPRESS,
                        help='Number of nodes (default: 3)')
    parser.add_argument('--base-transport-port', '-baseTransportPort', dest='base_transport_port', type=int,
                        default=argparse.SUPPRESS, help='Base transport port (default: 9300)')
    parser.add_argument('--base-http-port', '-baseHttpPort', dest='base_http_port', type=int,
                        default=argparse.SUPPRESS, help='Base HTTP port (default: 9200)')
    parser.add_argument('--cluster-name', '-clusterName', dest='cluster_name', default=argparse.SUPPRESS,
                        help='Cluster name')
    parser.add_argument('--index-store-type', '-indexStoreType', dest='index_store_type',
                        default=argparse.SUPPRESS, help='Index store type (default: default)')
    parser.add_argument('--use-logger', '-useLogger', dest='use_logger', action='store_true',
                        default=argparse.SUPPRESS, help='Print runner output through the logger')
    parser.add_argument('--print-on-failure', '-printOnFailure', dest='print_on_failure', action='store_true',
                        default=argparse.SUPPRESS, help='Print failures instead of raising them')
    parser.add_argument('--engine-binary', dest='engine_binary', default=argparse.SUPPRESS,
                        help='Engine executable to launch for each node')
    parser.add_argument('--config', dest='config', default=argparse.SUPPRESS,
                        help='YAML or JSON file with cluster settings')


def load_config_file(config_path: str) -> Dict[str, Any]:
    """Load configuration from YAML or JSON file"""
    path = Path(config_path)

    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(path, 'r') as f:
        if path.suffix in ['.yaml', '.yml']:
            data = yaml.safe_load(f)
        elif path.suffix == '.json':
            data = json.load(f)
        else:
            raise ValueError(f"Unsupported config format: {path.suffix}")

    return data or {}


def config_from_namespace(values: Dict[str, Any], base: Optional[ClusterConfig] = None) -> ClusterConfig:
    """Merge a config file (if named) with explicit options; explicit options win"""
    values = dict(values)
    merged: Dict[str, Any] = {}

    if base is not None:
        merged.update(vars(base))

    config_path = values.pop('config', None)
    if config_path:
        try:
            file_values = load_config_file(config_path)
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise ConfigError(f"Failed to load config file {config_path}: {e}") from e
        if not isinstance(file_values, dict):
            raise ConfigError(f"Config file {config_path} must contain a mapping")
        merged.update(file_values.get('cluster', file_values))

    merged.update(values)
    return ClusterConfig.from_dict(merged)


def parse_args(args: Sequence[str], base: Optional[ClusterConfig] = None) -> ClusterConfig:
    """Parse runner arguments such as those produced by Configs.build()"""
    parser = _RaisingArgumentParser(prog='search-cluster-runner', add_help=False)
    add_cluster_arguments(parser)
    namespace = parser.parse_args(list(args))
    return config_from_namespace(vars(namespace), base=base)


class Configs:
    """Fluent builder for runner arguments"""

    def __init__(self):
        self.config_list: List[str] = []

    def base_path(self, base_path: str) -> 'Configs':
        self.config_list.extend(['-basePath', base_path])
        return self

    def num_of_node(self, num_of_node: int) -> 'Configs':
        self.config_list.extend(['-numOfNode', str(num_of_node)])
        return self

    def base_transport_port(self, base_transport_port: int) -> 'Configs':
        self.config_list.extend(['-baseTransportPort', str(base_transport_port)])
        return self

    def base_http_port(self, base_http_port: int) -> 'Configs':
        self.config_list.extend(['-baseHttpPort', str(base_http_port)])
        return self

    def cluster_name(self, cluster_name: str) -> 'Configs':
        self.config_list.extend(['-clusterName', cluster_name])
        return self

    def index_store_type(self, index_store_type: str) -> 'Configs':
        self.config_list.extend(['-indexStoreType', index_store_type])
        return self

    def ram_index_store(self) -> 'Configs':
        return self.index_store_type('ram')

    def use_logger(self) -> 'Configs':
        self.config_list.append('-useLogger')
        return self

    def print_on_failure(self) -> 'Configs':
        self.config_list.append('-printOnFailure')
        return self

    def build(self) -> List[str]:
        return list(self.config_list)


def new_configs() -> Configs:
    return Configs()
