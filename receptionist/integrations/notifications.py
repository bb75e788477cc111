"""Notification sinks for completed appointment and message calls."""

import logging
from abc import ABC, abstractmethod
from typing import Optional

import httpx

from receptionist.schemas.booking_schema import NotificationEvent

logger = logging.getLogger(__name__)


class NotificationSink(ABC):
    """Receives one event per completed call."""

    @abstractmethod
    async def emit(self, event: NotificationEvent) -> None:
        ...


class WebhookNotificationSink(NotificationSink):
    """POSTs events as JSON to an automation webhook (n8n or similar)."""

    def __init__(
        self,
        url: str,
        timeout_sec: float = 5.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        if not url:
            raise ValueError("A webhook URL is required")
        self.url = url
        self.timeout_sec = timeout_sec
        self._client = client

    async def emit(self, event: NotificationEvent) -> None:
        payload = event.model_dump(mode="json")
        if self._client is not None:
            resp = await self._client.post(self.url, json=payload)
        else:
            async with httpx.AsyncClient(timeout=self.timeout_sec) as client:
                resp = await client.post(self.url, json=payload)
        resp.raise_for_status()
        logger.info("Webhook accepted %s event (status %d)", event.type, resp.status_code)


class InMemoryNotificationSink(NotificationSink):
    """Keeps emitted events in a list. Used by the console demo."""

    def __init__(self) -> None:
        self.events: list[NotificationEvent] = []

    async def emit(self, event: NotificationEvent) -> None:
        self.events.append(event)
        logger.info("Recorded %s event for call %s", event.type, event.call_id)
