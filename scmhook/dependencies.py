"""Centralized FastAPI dependencies for use with Depends()."""

from typing import Annotated

import httpx
from fastapi import Depends

from scmhook.config import Settings, get_settings
from scmhook.services.emitter import EventEmitter
from scmhook.services.enrichment import ApiClient
from scmhook.services.providers.registry import ProviderRegistry, default_registry
from scmhook.services.shortener import UrlShortener
from scmhook.services.transport import InMemoryNotificationTransport, NotificationTransport

_transport: NotificationTransport = InMemoryNotificationTransport()
_shortener: UrlShortener = UrlShortener(None, (), enabled=False)
_api_client: ApiClient = ApiClient(None)
_registry: ProviderRegistry = default_registry()


def init_production_deps(settings: Settings, client: httpx.AsyncClient) -> None:
    """Swap the offline defaults for implementations backed by *client*.

    Without a configured ``notification_url`` events stay in memory, which
    keeps a freshly deployed server usable for payload debugging.
    """
    global _transport, _shortener, _api_client  # noqa: PLW0603

    from scmhook.services.transport import HttpNotificationTransport

    if settings.notification_url:
        _transport = HttpNotificationTransport(client, settings.notification_url)
    _shortener = UrlShortener(client, settings.shorteners, enabled=settings.use_shortener)
    _api_client = ApiClient(client, settings.api_headers)


def get_transport() -> NotificationTransport:
    """Return the application notification transport.

    Defaults to InMemoryNotificationTransport for development and testing.
    Swapped to the HTTP transport by ``init_production_deps()``.
    """
    return _transport


def get_shortener() -> UrlShortener:
    return _shortener


def get_api_client() -> ApiClient:
    return _api_client


def get_registry() -> ProviderRegistry:
    return _registry


def get_emitter(
    settings: Annotated[Settings, Depends(get_settings)],
    transport: Annotated[NotificationTransport, Depends(get_transport)],
    shortener: Annotated[UrlShortener, Depends(get_shortener)],
) -> EventEmitter:
    """Build a per-request emitter so each response can report its own event count."""
    return EventEmitter(transport, shortener, commit_id_size=settings.commit_id_size)


__all__ = [
    "get_api_client",
    "get_emitter",
    "get_registry",
    "get_settings",
    "get_shortener",
    "get_transport",
    "init_production_deps",
]
