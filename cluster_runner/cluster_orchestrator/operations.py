"""
Operation Facade - health-gated wrappers over the engine's index, document and search calls
"""
import json
import logging
from typing import Any, Callable, Dict, List, Optional, Union

from ..interfaces import IEngineClient
from ..models import ActionResponse
from ..utils.failure_policy import FailurePolicy
from .convergence import ConvergenceGate

logger = logging.getLogger(__name__)

DEFAULT_QUERY = {"match_all": {}}
DEFAULT_SORT = ["_score"]

Source = Union[str, Dict[str, Any]]


def _as_dict(source: Source) -> Dict[str, Any]:
    if isinstance(source, str):
        return json.loads(source)
    return source


class OperationFacade:
    """Every call checks the engine's own success flag and routes failures through the policy"""

    def __init__(self, client_provider: Callable[[], IEngineClient], gate: ConvergenceGate,
                 failure_policy: FailurePolicy):
        self.client_provider = client_provider
        self.gate = gate
        self.failure_policy = failure_policy

    def create_index(self, index: str, settings: Optional[Dict[str, Any]] = None) -> ActionResponse:
        response = self.client_provider().create_index(index, settings or None)
        if not response.acknowledged:
            self.failure_policy.on_failure(f"Failed to create {index}.", response)
        return response

    def index_exists(self, index: str) -> bool:
        return self.client_provider().index_exists(index).exists

    def create_mapping(self, index: str, doc_type: str, source: Source) -> ActionResponse:
        response = self.client_provider().put_mapping(index, doc_type, _as_dict(source))
        if not response.acknowledged:
            self.failure_policy.on_failure(f"Failed to create a mapping for {index}.", response)
        return response

    def insert(self, index: str, doc_type: str, doc_id: str, source: Source) -> ActionResponse:
        response = self.client_provider().index(index, doc_type, doc_id, _as_dict(source), refresh=True)
        if not response.created:
            self.failure_policy.on_failure(f"Failed to insert {doc_id} into {index}/{doc_type}.", response)
        return response

    def delete(self, index: str, doc_type: str, doc_id: str) -> ActionResponse:
        response = self.client_provider().delete(index, doc_type, doc_id, refresh=True)
        if not response.found:
            self.failure_policy.on_failure(f"Failed to delete {doc_id} from {index}/{doc_type}.", response)
        return response

    def search(self, index: str, doc_type: Optional[str] = None, query: Optional[Dict[str, Any]] = None,
               sort: Optional[List[Union[str, Dict[str, Any]]]] = None, from_: int = 0,
               size: int = 10) -> ActionResponse:
        return self.client_provider().search(
            index,
            doc_type,
            query if query is not None else DEFAULT_QUERY,
            sort if sort is not None else DEFAULT_SORT,
            from_=from_,
            size=size
        )

    def flush(self) -> ActionResponse:
        self.gate.wait_for_relocation()
        return self._check_shards("flush", self.client_provider().flush())

    def refresh(self) -> ActionResponse:
        self.gate.wait_for_relocation()
        return self._check_shards("refresh", self.client_provider().refresh())

    def optimize(self, force: bool = False) -> ActionResponse:
        self.gate.wait_for_relocation()
        return self._check_shards("optimize", self.client_provider().optimize(force=force))

    def _check_shards(self, operation: str, response: ActionResponse) -> ActionResponse:
        failures = response.shard_failures
        if failures or not response.ok:
            self.failure_policy.on_failure(
                f"Failed to {operation}: {json.dumps(failures or response.body, default=str)}",
                response
            )
        return response
