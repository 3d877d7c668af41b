"""Dispatch of webhook events to provider-specific normalizers.

Handlers are registered per ``(provider, event name)``; the webhook router
looks them up after authentication. An event without a handler is answered
with 501 Not Implemented.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

import structlog

from scmhook.config import Settings
from scmhook.schemas.events import EventBase
from scmhook.schemas.scm import Identity
from scmhook.schemas.webhooks import Provider
from scmhook.services.emitter import EventEmitter
from scmhook.services.enrichment import ApiClient

logger = structlog.get_logger()


@dataclass(frozen=True)
class NormalizerContext:
    """Everything a handler needs besides the decoded payload."""

    project_group: str
    project_name: str | None
    settings: Settings
    emitter: EventEmitter
    api: ApiClient

    def base(self, repository_name: str, repository_url: str | None, pusher: Identity) -> EventBase:
        return EventBase(
            repository_name=repository_name,
            repository_url=repository_url,
            project_group=self.project_group,
            project_name=self.project_name,
            pusher=pusher,
        )

    async def get_json(self, url: str | None) -> Any | None:
        return await self.api.get_json(
            url, project_group=self.project_group, project_name=self.project_name
        )


Handler = Callable[[dict[str, Any], NormalizerContext], Awaitable[None]]


async def accept_only(payload: dict[str, Any], ctx: NormalizerContext) -> None:
    """Handler for events that are acknowledged but produce nothing (pings)."""
    logger.debug("webhook_acknowledged", project_group=ctx.project_group)


class ProviderRegistry:
    """Map ``(provider, event name)`` pairs to normalizer coroutines."""

    def __init__(self) -> None:
        self._handlers: dict[tuple[Provider, str], Handler] = {}

    def register(self, provider: Provider, event: str, handler: Handler) -> None:
        """Register *handler* for one provider event.

        Raises:
            ValueError: If *provider* is not a known provider or the pair is
                already registered.
        """
        if not isinstance(provider, Provider):
            raise ValueError(f"unknown provider {provider!r}")
        key = (provider, event)
        if key in self._handlers:
            raise ValueError(f"handler already registered for {provider.value} {event!r}")
        self._handlers[key] = handler

    def lookup(self, provider: Provider, event: str | None) -> Handler | None:
        if event is None:
            return None
        return self._handlers.get((provider, event))

    @property
    def providers(self) -> list[str]:
        return sorted({provider.value for provider, _ in self._handlers})


def default_registry() -> ProviderRegistry:
    """Build the registry holding every built-in provider."""
    from scmhook.services.providers import github, gitlab, travis

    registry = ProviderRegistry()
    github.register(registry)
    gitlab.register(registry)
    travis.register(registry)
    return registry
