"""
Engine utilities for readiness probes and time values
"""
import logging
import re

import requests

logger = logging.getLogger(__name__)

_TIME_VALUE = re.compile(r'^\s*(\d+(?:\.\d+)?)\s*(ms|s|m|h)?\s*$')
_UNIT_SECONDS = {'ms': 0.001, 's': 1.0, 'm': 60.0, 'h': 3600.0}


def parse_time_value(value) -> float:
    """Convert an engine time value such as '30s' or '500ms' to seconds"""
    if isinstance(value, (int, float)):
        return float(value)
    match = _TIME_VALUE.match(str(value))
    if not match:
        raise ValueError(f"Invalid time value: {value!r}")
    amount, unit = match.groups()
    return float(amount) * _UNIT_SECONDS[unit or 's']


def is_node_alive(host: str, port: int, timeout: float = 2.0) -> bool:
    try:
        response = requests.get(f"http://{host}:{port}/", timeout=timeout)
        return response.status_code < 500
    except requests.RequestException as e:
        logger.debug(f"Node {host}:{port} not reachable yet: {e}")
        return False
