"""
Instance health oracle backed by a discovery service status document.

The status URL must return either ``{"status": "UP"}`` or an Eureka-style
``{"instance": {"status": "UP"}}`` document. Only ``UP`` counts as in
service; every other status (OUT_OF_SERVICE, DOWN, STARTING, ...) stops
polling on this instance.
"""

import asyncio
import logging

import requests

from monitor_common.interfaces import HealthOracle
from monitor_common.models import InstanceStatus

logger = logging.getLogger(__name__)


class DiscoveryHealthOracle(HealthOracle):
    """Reads this instance's remote status from a discovery service."""

    def __init__(self, status_url: str, timeout: float = 5.0):
        self.status_url = status_url
        self.timeout = timeout

    def _fetch_status(self) -> str:
        response = requests.get(
            self.status_url,
            headers={"Accept": "application/json"},
            timeout=self.timeout,
        )
        response.raise_for_status()
        data = response.json()
        if "instance" in data:
            data = data["instance"]
        return str(data.get("status", InstanceStatus.UNKNOWN)).upper()

    async def is_in_service(self) -> bool:
        """
        Return True if the discovery service reports this instance UP.

        Raises:
            requests.exceptions.RequestException: If the status cannot be read
        """
        status = await asyncio.to_thread(self._fetch_status)
        logger.info(f"current remote status {status}")
        return status == InstanceStatus.UP
