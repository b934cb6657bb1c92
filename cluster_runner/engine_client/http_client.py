"""
HTTP client adapter exposing the engine's REST API through IEngineClient
"""
import logging
from typing import Any, Dict, List, Optional, Sequence, Union

import requests

from ..interfaces import IEngineClient
from ..models import ActionResponse
from ..utils.engine_utils import parse_time_value

logger = logging.getLogger(__name__)


def _join(indices: Sequence[str]) -> str:
    return ','.join(indices)


class EngineHttpClient(IEngineClient):
    """
    Talks to one node over its HTTP port.

    Error statuses are returned as ActionResponse rather than raised so callers
    can inspect acknowledgement flags. Transport errors propagate.
    """

    def __init__(self, host: str = '127.0.0.1', port: int = 9200, timeout: float = 30.0,
                 session: Optional[requests.Session] = None):
        self.host = host
        self.port = port
        self.timeout = timeout
        self.base_url = f"http://{host}:{port}"
        self.session = session or requests.Session()

    def _request(self, method: str, path: str, params: Optional[Dict[str, Any]] = None,
                 body: Optional[Any] = None, timeout: Optional[float] = None) -> ActionResponse:
        url = f"{self.base_url}/{path.lstrip('/')}"
        logger.debug(f"{method} {url} params={params}")
        response = self.session.request(
            method,
            url,
            params=params,
            json=body,
            timeout=timeout or self.timeout
        )

        payload: Dict[str, Any] = {}
        if method != 'HEAD' and response.content:
            try:
                decoded = response.json()
                payload = decoded if isinstance(decoded, dict) else {'result': decoded}
            except ValueError:
                payload = {'error': response.text}
        return ActionResponse(status_code=response.status_code, body=payload)

    def health(self, indices: Sequence[str] = (), wait_for_status: Optional[str] = None,
               wait_for_relocating_shards: Optional[int] = None, wait_for_events: Optional[str] = None,
               timeout: Optional[str] = None) -> ActionResponse:
        path = '_cluster/health'
        if indices:
            path = f"{path}/{_join(indices)}"

        params = {}
        if wait_for_status:
            params['wait_for_status'] = wait_for_status
        if wait_for_relocating_shards is not None:
            params['wait_for_relocating_shards'] = wait_for_relocating_shards
        if wait_for_events:
            params['wait_for_events'] = wait_for_events

        # the engine holds the request open until the wait conditions hold
        request_timeout = self.timeout
        if timeout:
            params['timeout'] = timeout
            request_timeout = self.timeout + parse_time_value(timeout)
        return self._request('GET', path, params=params, timeout=request_timeout)

    def cluster_state(self) -> ActionResponse:
        return self._request('GET', '_cluster/state')

    def pending_tasks(self) -> ActionResponse:
        return self._request('GET', '_cluster/pending_tasks')

    def create_index(self, index: str, settings: Optional[Dict[str, Any]] = None) -> ActionResponse:
        body = {'settings': settings} if settings else None
        return self._request('PUT', index, body=body)

    def index_exists(self, index: str) -> ActionResponse:
        return self._request('HEAD', index)

    def put_mapping(self, index: str, doc_type: str, source: Dict[str, Any]) -> ActionResponse:
        return self._request('PUT', f"{index}/_mapping/{doc_type}", body=source)

    def flush(self, indices: Sequence[str] = ()) -> ActionResponse:
        prefix = f"{_join(indices)}/" if indices else ''
        return self._request('POST', f"{prefix}_flush")

    def refresh(self, indices: Sequence[str] = ()) -> ActionResponse:
        prefix = f"{_join(indices)}/" if indices else ''
        return self._request('POST', f"{prefix}_refresh")

    def optimize(self, indices: Sequence[str] = (), force: bool = False) -> ActionResponse:
        prefix = f"{_join(indices)}/" if indices else ''
        params = {'force': 'true'} if force else None
        return self._request('POST', f"{prefix}_optimize", params=params)

    def index(self, index: str, doc_type: str, doc_id: str, source: Dict[str, Any],
              refresh: bool = False) -> ActionResponse:
        params = {'refresh': 'true'} if refresh else None
        return self._request('PUT', f"{index}/{doc_type}/{doc_id}", params=params, body=source)

    def delete(self, index: str, doc_type: str, doc_id: str, refresh: bool = False) -> ActionResponse:
        params = {'refresh': 'true'} if refresh else None
        return self._request('DELETE', f"{index}/{doc_type}/{doc_id}", params=params)

    def search(self, index: str, doc_type: Optional[str], query: Dict[str, Any],
               sort: List[Union[str, Dict[str, Any]]], from_: int = 0, size: int = 10) -> ActionResponse:
        path = f"{index}/{doc_type}/_search" if doc_type else f"{index}/_search"
        body = {
            'query': query,
            'sort': sort,
            'from': from_,
            'size': size
        }
        return self._request('POST', path, body=body)

    def close(self) -> None:
        self.session.close()
