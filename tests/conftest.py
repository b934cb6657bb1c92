"""
Shared fixtures: an in-memory engine standing in for real engine processes
"""
import logging
import pytest
from typing import Any, Dict, List, Optional, Sequence

from cluster_runner.interfaces import IEngineClient, IEngineNode
from cluster_runner.main import ClusterRunner
from cluster_runner.models import ActionResponse, ClusterConfig

logging.basicConfig(format='%(levelname)-5s | %(filename)s:%(lineno)-3d | %(message)s', level=logging.INFO, force=True)


@pytest.fixture(autouse=True)
def test_separator(request):
    print(f"\n{'='*60}")
    print(f"Running: {request.node.name}")
    print(f"{'='*60}")
    yield
    print(f"{'='*60}")
    print(f"Completed: {request.node.name}")
    print(f"{'='*60}\n")


class FakeCluster:
    """State shared by every fake node of one cluster"""

    def __init__(self):
        self.nodes: Dict[str, 'FakeEngineNode'] = {}
        self.indices: Dict[str, Dict[str, Any]] = {}
        self.health_status = 'green'
        self.health_timed_out = False
        self.shard_failures: List[Dict[str, Any]] = []
        self.health_calls: List[Dict[str, Any]] = []
        self.calls: List[str] = []
        self.forced_master: Optional[str] = None
        self.last_search: Optional[Dict[str, Any]] = None

    def master_id(self) -> Optional[str]:
        if self.forced_master is not None:
            return self.forced_master
        for node_id in self.nodes:
            return node_id
        return None

    def _shards(self) -> Dict[str, Any]:
        return {
            'total': 1,
            'successful': 1 - min(len(self.shard_failures), 1),
            'failed': len(self.shard_failures),
            'failures': list(self.shard_failures)
        }


class FakeEngineClient(IEngineClient):

    def __init__(self, cluster: FakeCluster):
        self.cluster = cluster

    def health(self, indices: Sequence[str] = (), wait_for_status=None, wait_for_relocating_shards=None,
               wait_for_events=None, timeout=None) -> ActionResponse:
        self.cluster.calls.append('health')
        self.cluster.health_calls.append({
            'indices': list(indices),
            'wait_for_status': wait_for_status,
            'wait_for_relocating_shards': wait_for_relocating_shards,
            'wait_for_events': wait_for_events,
            'timeout': timeout
        })
        body = {
            'cluster_name': 'fake',
            'status': self.cluster.health_status,
            'timed_out': self.cluster.health_timed_out,
            'number_of_nodes': len(self.cluster.nodes),
            'relocating_shards': 0
        }
        return ActionResponse(408 if self.cluster.health_timed_out else 200, body)

    def cluster_state(self) -> ActionResponse:
        nodes = {node_id: {'name': node.settings['node.name']} for node_id, node in self.cluster.nodes.items()}
        return ActionResponse(200, {'master_node': self.cluster.master_id(), 'nodes': nodes})

    def pending_tasks(self) -> ActionResponse:
        return ActionResponse(200, {'tasks': [{'source': 'create-index [idx]'}]})

    def create_index(self, index: str, settings: Optional[Dict[str, Any]] = None) -> ActionResponse:
        self.cluster.calls.append('create_index')
        if index in self.cluster.indices:
            return ActionResponse(400, {'error': f'IndexAlreadyExistsException[[{index}] already exists]',
                                        'status': 400})
        self._new_index(index, settings)
        return ActionResponse(200, {'acknowledged': True})

    def index_exists(self, index: str) -> ActionResponse:
        return ActionResponse(200 if index in self.cluster.indices else 404, {})

    def put_mapping(self, index: str, doc_type: str, source: Dict[str, Any]) -> ActionResponse:
        if index not in self.cluster.indices:
            return ActionResponse(404, {'error': f'IndexMissingException[[{index}] missing]', 'status': 404})
        self.cluster.indices[index]['mappings'][doc_type] = source
        return ActionResponse(200, {'acknowledged': True})

    def flush(self, indices: Sequence[str] = ()) -> ActionResponse:
        self.cluster.calls.append('flush')
        return ActionResponse(200, {'_shards': self.cluster._shards()})

    def refresh(self, indices: Sequence[str] = ()) -> ActionResponse:
        self.cluster.calls.append('refresh')
        for data in self.cluster.indices.values():
            data['visible'] = dict(data['docs'])
        return ActionResponse(200, {'_shards': self.cluster._shards()})

    def optimize(self, indices: Sequence[str] = (), force: bool = False) -> ActionResponse:
        self.cluster.calls.append(f'optimize(force={force})')
        return ActionResponse(200, {'_shards': self.cluster._shards()})

    def index(self, index: str, doc_type: str, doc_id: str, source: Dict[str, Any],
              refresh: bool = False) -> ActionResponse:
        self.cluster.calls.append('index')
        if index not in self.cluster.indices:
            self._new_index(index, None)
        data = self.cluster.indices[index]
        created = (doc_type, doc_id) not in data['docs']
        data['docs'][(doc_type, doc_id)] = source
        if refresh:
            data['visible'] = dict(data['docs'])
        body = {'_index': index, '_type': doc_type, '_id': doc_id, '_version': 1, 'created': created}
        return ActionResponse(201 if created else 200, body)

    def delete(self, index: str, doc_type: str, doc_id: str, refresh: bool = False) -> ActionResponse:
        data = self.cluster.indices.get(index)
        found = data is not None and (doc_type, doc_id) in data['docs']
        if found:
            del data['docs'][(doc_type, doc_id)]
            if refresh:
                data['visible'] = dict(data['docs'])
        body = {'_index': index, '_type': doc_type, '_id': doc_id, 'found': found}
        return ActionResponse(200 if found else 404, body)

    def search(self, index: str, doc_type: Optional[str], query: Dict[str, Any], sort: List[Any],
               from_: int = 0, size: int = 10) -> ActionResponse:
        self.cluster.calls.append('search')
        self.cluster.last_search = {'query': query, 'sort': sort, 'from': from_, 'size': size}
        data = self.cluster.indices.get(index)
        if data is None:
            return ActionResponse(404, {'error': f'IndexMissingException[[{index}] missing]', 'status': 404})
        hits = [
            {'_index': index, '_type': t, '_id': i, '_score': 1.0, '_source': source}
            for (t, i), source in data['visible'].items()
            if doc_type is None or t == doc_type
        ]
        return ActionResponse(200, {'hits': {'total': len(hits), 'hits': hits[from_:from_ + size]}})

    def close(self) -> None:
        pass

    def _new_index(self, index: str, settings: Optional[Dict[str, Any]]) -> None:
        self.cluster.indices[index] = {'settings': settings or {}, 'mappings': {}, 'docs': {}, 'visible': {}}


class FakeEngineNode(IEngineNode):

    def __init__(self, settings: Dict[str, str], cluster: FakeCluster, fail_on_start: bool = False,
                 fail_on_close: bool = False):
        self._settings = settings
        self.cluster = cluster
        self.fail_on_start = fail_on_start
        self.fail_on_close = fail_on_close
        self.node_id = f"id-{settings['node.name'].replace(' ', '-').lower()}"
        self.started = False
        self.closed = False

    @property
    def settings(self) -> Dict[str, str]:
        return self._settings

    def start(self) -> None:
        if self.fail_on_start:
            raise RuntimeError(f"{self._settings['node.name']} refused to start")
        self.started = True
        self.cluster.nodes[self.node_id] = self

    def close(self) -> None:
        self.cluster.nodes.pop(self.node_id, None)
        if self.fail_on_close:
            raise RuntimeError(f"{self._settings['node.name']} failed to stop")
        self.closed = True

    def is_closed(self) -> bool:
        return self.closed

    def client(self) -> IEngineClient:
        return FakeEngineClient(self.cluster)


@pytest.fixture
def fake_cluster():
    return FakeCluster()


@pytest.fixture
def node_factory(fake_cluster):
    created = []

    def factory(settings, config):
        node = FakeEngineNode(settings, fake_cluster)
        created.append(node)
        return node

    factory.created = created
    return factory


@pytest.fixture
def cluster_config(tmp_path):
    return ClusterConfig(
        base_path=str(tmp_path / "cluster"),
        num_of_node=3,
        base_transport_port=19300,
        base_http_port=19200,
        max_transport_port=-1,
        max_http_port=-1
    )


@pytest.fixture
def runner(cluster_config, node_factory):
    with ClusterRunner(cluster_config, node_factory=node_factory) as cluster_runner:
        yield cluster_runner
