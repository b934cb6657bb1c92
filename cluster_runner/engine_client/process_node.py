"""
Engine node backed by a local engine server process
"""
import os
import time
import logging
import subprocess
from typing import Dict, List, Optional

from ..exceptions import NodeStartError
from ..interfaces import IEngineNode, IEngineClient
from ..models import ClusterConfig
from ..utils.engine_utils import is_node_alive
from .http_client import EngineHttpClient

logger = logging.getLogger(__name__)


SYSTEM_PROPERTY_PREFIX = "-Des."


class ProcessEngineNode(IEngineNode):
    """
    Runs a 1.x engine binary in the foreground with every setting passed as a
    -Des.key=value system property.

    Settings such as path.work and node-level index.store.type, and the
    _optimize endpoint used by the HTTP client, only exist on that line.
    """

    def __init__(self, settings: Dict[str, str], binary: str = "elasticsearch",
                 host: str = '127.0.0.1', startup_timeout: float = 60.0):
        self._settings = dict(settings)
        self.binary = binary
        self.host = host
        self.startup_timeout = startup_timeout
        self.process: Optional[subprocess.Popen] = None
        self._client: Optional[EngineHttpClient] = None
        self._log_handle = None
        self._closed = False

    @property
    def settings(self) -> Dict[str, str]:
        return self._settings

    @property
    def name(self) -> str:
        return self._settings.get('node.name', 'unknown')

    @property
    def http_port(self) -> int:
        return int(self._settings['http.port'])

    def build_command(self) -> List[str]:
        cmd = [self.binary]
        for key, value in self._settings.items():
            cmd.append(f"{SYSTEM_PROPERTY_PREFIX}{key}={value}")
        return cmd

    def start(self) -> None:
        cmd = self.build_command()
        logs_dir = self._settings.get('path.logs')
        if logs_dir:
            os.makedirs(logs_dir, exist_ok=True)
            self._log_handle = open(os.path.join(logs_dir, 'node.out'), 'ab')
            stdout = self._log_handle
        else:
            stdout = subprocess.DEVNULL

        logger.info(f"Spawning {self.name} on http port {self.http_port}")
        try:
            self.process = subprocess.Popen(
                cmd,
                stdout=stdout,
                stderr=subprocess.STDOUT,
                cwd=self._settings.get('path.work') or None
            )
        except OSError as e:
            self._close_log()
            raise NodeStartError(f"Failed to spawn {self.name}: {e}") from e

        logger.info(f"Spawned {self.name} with PID {self.process.pid}")

        deadline = time.time() + self.startup_timeout
        while time.time() < deadline:
            if self.process.poll() is not None:
                self._close_log()
                self._closed = True
                raise NodeStartError(
                    f"{self.name} process died with exit code {self.process.returncode}"
                )

            if is_node_alive(self.host, self.http_port):
                logger.info(f"{self.name} is active")
                return

            time.sleep(0.5)

        self.close()
        raise NodeStartError(f"{self.name} failed to start within {self.startup_timeout:.2f}s")

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True

        if self._client is not None:
            self._client.close()
            self._client = None

        if self.process is not None and self.process.poll() is None:
            logger.info(f"Terminating {self.name} (PID {self.process.pid})")
            self.process.terminate()
            try:
                self.process.wait(timeout=5)
            except subprocess.TimeoutExpired:
                self.process.kill()
                self.process.wait()
            logger.info(f"{self.name} terminated")

        self._close_log()

    def is_closed(self) -> bool:
        return self._closed

    def client(self) -> IEngineClient:
        if self._client is None:
            self._client = EngineHttpClient(host=self.host, port=self.http_port)
        return self._client

    def _close_log(self) -> None:
        if self._log_handle is not None:
            self._log_handle.close()
            self._log_handle = None


def create_process_node(settings: Dict[str, str], config: ClusterConfig) -> ProcessEngineNode:
    """Default node factory used by the orchestrator"""
    return ProcessEngineNode(
        settings,
        binary=config.engine_binary,
        startup_timeout=config.startup_timeout
    )
