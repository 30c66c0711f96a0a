"""Event sink posting build events to an echo-style HTTP endpoint."""

import asyncio
import logging

import requests

from monitor_common.interfaces import EventSink
from monitor_common.models import BuildEvent

logger = logging.getLogger(__name__)


class EchoEventSink(EventSink):
    """Publishes each build event as a JSON POST. No retries."""

    def __init__(self, base_url: str, timeout: float = 10.0):
        if not base_url:
            raise ValueError("Echo base_url must not be empty")
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _post(self, payload: dict) -> None:
        response = requests.post(f"{self.base_url}/", json=payload, timeout=self.timeout)
        response.raise_for_status()

    async def publish(self, event: BuildEvent) -> None:
        """
        POST the event payload.

        Raises:
            requests.exceptions.RequestException: If the endpoint is
                unreachable or answers with an error status
        """
        await asyncio.to_thread(self._post, event.to_dict())
        logger.debug(
            f"Posted build event {event.master}:{event.job_name}:{event.build.number}"
        )
