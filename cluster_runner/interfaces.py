"""
Base interfaces for the engine capabilities the runner drives
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence, Union
from .models import ActionResponse


class IHealthApi(ABC):
    """Cluster health and state queries"""

    @abstractmethod
    def health(self, indices: Sequence[str] = (), wait_for_status: Optional[str] = None,
               wait_for_relocating_shards: Optional[int] = None, wait_for_events: Optional[str] = None,
               timeout: Optional[str] = None) -> ActionResponse:
        """Query cluster health, letting the engine block until the wait conditions hold"""
        pass

    @abstractmethod
    def cluster_state(self) -> ActionResponse:
        """Fetch the full cluster state"""
        pass

    @abstractmethod
    def pending_tasks(self) -> ActionResponse:
        """Fetch the queue of pending cluster-state tasks"""
        pass


class IIndicesApi(ABC):
    """Index administration"""

    @abstractmethod
    def create_index(self, index: str, settings: Optional[Dict[str, Any]] = None) -> ActionResponse:
        pass

    @abstractmethod
    def index_exists(self, index: str) -> ActionResponse:
        pass

    @abstractmethod
    def put_mapping(self, index: str, doc_type: str, source: Dict[str, Any]) -> ActionResponse:
        pass

    @abstractmethod
    def flush(self, indices: Sequence[str] = ()) -> ActionResponse:
        pass

    @abstractmethod
    def refresh(self, indices: Sequence[str] = ()) -> ActionResponse:
        pass

    @abstractmethod
    def optimize(self, indices: Sequence[str] = (), force: bool = False) -> ActionResponse:
        pass


class IDocumentsApi(ABC):
    """Single document writes"""

    @abstractmethod
    def index(self, index: str, doc_type: str, doc_id: str, source: Dict[str, Any],
              refresh: bool = False) -> ActionResponse:
        pass

    @abstractmethod
    def delete(self, index: str, doc_type: str, doc_id: str, refresh: bool = False) -> ActionResponse:
        pass


class ISearchApi(ABC):
    """Query execution"""

    @abstractmethod
    def search(self, index: str, doc_type: Optional[str], query: Dict[str, Any],
               sort: List[Union[str, Dict[str, Any]]], from_: int = 0, size: int = 10) -> ActionResponse:
        pass


class IEngineClient(IHealthApi, IIndicesApi, IDocumentsApi, ISearchApi, ABC):
    """Every capability the runner uses, served by a single client adapter"""

    @abstractmethod
    def close(self) -> None:
        """Release client connections"""
        pass


class IEngineNode(ABC):
    """One engine instance, driven as a black box"""

    @property
    @abstractmethod
    def settings(self) -> Dict[str, str]:
        """Settings the node was constructed with"""
        pass

    @abstractmethod
    def start(self) -> None:
        """Start the node and return once it accepts requests"""
        pass

    @abstractmethod
    def close(self) -> None:
        """Stop the node"""
        pass

    @abstractmethod
    def is_closed(self) -> bool:
        pass

    @abstractmethod
    def client(self) -> IEngineClient:
        """Client bound to this node"""
        pass
