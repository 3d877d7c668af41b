"""Notification transport abstraction with protocol-based swappable implementations.

Production code uses ``HttpNotificationTransport`` which POSTs each event as a
JSON document to the configured notification endpoint. Tests (and servers
running without an endpoint) use ``InMemoryNotificationTransport`` which keeps
delivered events for inspection.
"""

from __future__ import annotations

from typing import Protocol

import httpx

from scmhook.config import VERSION
from scmhook.exceptions import TransportError
from scmhook.schemas.events import Event


class NotificationTransport(Protocol):
    """Protocol for delivering canonical events downstream."""

    async def check(self) -> None:
        """Raise ``TransportError`` if the transport cannot be reached."""
        ...

    async def send(self, event: Event) -> None:
        """Deliver one event.

        Raises ``TransportError`` on failure; callers decide whether to care.
        """
        ...


class HttpNotificationTransport:
    """Deliver events as JSON POST requests through a shared httpx client."""

    def __init__(self, client: httpx.AsyncClient, url: str) -> None:
        self._client = client
        self._url = url
        self._headers = {"User-Agent": f"scmhook/{VERSION}"}

    async def check(self) -> None:
        """Probe the endpoint; any HTTP answer counts as reachable."""
        try:
            await self._client.head(self._url, headers=self._headers)
        except httpx.HTTPError as exc:
            raise TransportError(f"cannot reach {self._url}: {exc}") from exc

    async def send(self, event: Event) -> None:
        try:
            resp = await self._client.post(self._url, json=event.to_message(), headers=self._headers)
            resp.raise_for_status()
        except httpx.HTTPError as exc:
            raise TransportError(f"delivery of {event.name} failed: {exc}") from exc


class InMemoryNotificationTransport:
    """Test double that records delivered events for assertions."""

    def __init__(self) -> None:
        self.events: list[Event] = []

    async def check(self) -> None:
        return None

    async def send(self, event: Event) -> None:
        """Append the event to the in-memory list."""
        self.events.append(event)

    @property
    def names(self) -> list[str]:
        return [event.name for event in self.events]
