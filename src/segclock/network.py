"""Network reachability checks used during startup."""

from __future__ import annotations

import logging
import socket
import time

from .constants import DEFAULT_PROBE_HOST, DEFAULT_PROBE_PORT, NETWORK_CONNECT_TIMEOUT_S
from .exceptions import NetworkError

logger = logging.getLogger(__name__)


class NetworkProbe:
    """Reports whether the host can reach the network.

    A TCP connection to ``host:port`` is opened and closed on every check.
    """

    def __init__(
        self,
        host: str = DEFAULT_PROBE_HOST,
        port: int = DEFAULT_PROBE_PORT,
        timeout: float = 2.0,
    ) -> None:
        self.host = host
        self.port = port
        self.timeout = timeout

    def is_connected(self) -> bool:
        try:
            with socket.create_connection((self.host, self.port), timeout=self.timeout):
                return True
        except OSError as exc:
            logger.debug("Probe %s:%d failed: %s", self.host, self.port, exc)
            return False


def wait_for_network(
    probe: NetworkProbe,
    timeout: float = NETWORK_CONNECT_TIMEOUT_S,
    interval: float = 1.0,
) -> None:
    """Block until *probe* reports a connection.

    Raises:
        NetworkError: If the network is still unreachable after *timeout* seconds.
    """
    deadline = time.monotonic() + timeout
    while not probe.is_connected():
        if time.monotonic() >= deadline:
            raise NetworkError(
                f"Network unreachable via {probe.host}:{probe.port} after {timeout:g}s"
            )
        logger.info("Waiting for network connection")
        time.sleep(interval)
    logger.info("Network connected")
