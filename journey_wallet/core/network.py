"""Network connectivity check for remote backup operations."""

from __future__ import annotations

import httpx
from loguru import logger

from journey_wallet.errors import NetworkUnavailable


class NetworkMonitor:
    """
    Probes a URL to decide whether the network is reachable.

    Any HTTP response counts as connected. With no probe URL configured the
    shared folder is treated as local storage and the network as available.
    """

    def __init__(self, probe_url: str = "", timeout: float = 10.0) -> None:
        self._probe_url = probe_url
        self._timeout = timeout
        self._connected: bool | None = None

    def check_connectivity(self) -> bool:
        if not self._probe_url:
            return True
        try:
            httpx.head(self._probe_url, timeout=self._timeout, follow_redirects=True)
            connected = True
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.debug(f"Connectivity probe to {self._probe_url} failed: {e}")
            connected = False
        if connected != self._connected:
            logger.info(f"Network status changed: connected={connected}")
            self._connected = connected
        return connected

    def require_network(self) -> None:
        if not self.check_connectivity():
            raise NetworkUnavailable("Network unavailable for remote backup operation")
