"""
Engine Client - HTTP adapter and process-backed engine nodes
"""
from .http_client import EngineHttpClient
from .process_node import ProcessEngineNode, create_process_node

__all__ = [
    'EngineHttpClient',
    'ProcessEngineNode',
    'create_process_node',
]
