"""Canonical event construction and delivery.

``EventEmitter`` is the single place where events are built: it shortens the
event URL, truncates commit ids, splits commit messages and hands the result
to the notification transport. Delivery is fire-and-forget: a transport
failure is logged and the next event is still attempted.
"""

from collections.abc import Sequence
from typing import Any

import structlog

from scmhook.exceptions import TransportError
from scmhook.schemas.events import Event, EventBase, EventCategory, EventName
from scmhook.schemas.scm import Identity
from scmhook.services.messages import split_message
from scmhook.services.shortener import UrlShortener
from scmhook.services.transport import NotificationTransport

logger = structlog.get_logger()


class EventEmitter:
    """Build canonical events and deliver them in call order."""

    def __init__(
        self,
        transport: NotificationTransport,
        shortener: UrlShortener,
        *,
        commit_id_size: int = 7,
    ) -> None:
        self.transport = transport
        self.shortener = shortener
        self.commit_id_size = commit_id_size
        self.emitted = 0

    async def _send(
        self,
        category: EventCategory,
        name: EventName,
        base: EventBase,
        url: str | None,
        **data: Any,
    ) -> None:
        event = Event(
            category=category,
            name=name,
            base=base.with_url(await self.shortener.shorten(url)),
            data=data,
        )
        try:
            await self.transport.send(event)
        except TransportError as exc:
            logger.warning("event_delivery_failed", event_name=name, repository=base.repository_name, error=str(exc))
            return
        self.emitted += 1
        logger.debug("event_emitted", event_name=name, repository=base.repository_name)

    async def branch_creation(self, base: EventBase, branch: str, url: str | None = None) -> None:
        await self._send("scm", "branch-creation", base, url, branch=branch)

    async def branch_deletion(self, base: EventBase, branch: str) -> None:
        await self._send("scm", "branch-deletion", base, None, branch=branch)

    async def tag_creation(
        self,
        base: EventBase,
        tag: str,
        url: str | None = None,
        previous_tag: str | None = None,
    ) -> None:
        await self._send("scm", "tag-creation", base, url, tag=tag, previous_tag=previous_tag)

    async def tag_deletion(self, base: EventBase, tag: str) -> None:
        await self._send("scm", "tag-deletion", base, None, tag=tag)

    async def commit(
        self,
        base: EventBase,
        commit_id: str,
        message: str,
        author: Identity,
        *,
        branch: str | None = None,
        url: str | None = None,
        files: str | None = None,
    ) -> None:
        subject, body = split_message(message)
        await self._send(
            "scm",
            "commit",
            base,
            url,
            id=commit_id[: self.commit_id_size],
            subject=subject,
            body=body,
            author_name=author.name,
            author_username=author.username,
            author_email=author.email,
            branch=branch,
            files=files or None,
        )

    async def commit_group(
        self, base: EventBase, size: int, *, branch: str | None = None, url: str | None = None
    ) -> None:
        await self._send("scm", "commit-group", base, url, size=size, branch=branch)

    async def push(self, base: EventBase, *, branch: str | None = None, url: str | None = None) -> None:
        await self._send("scm", "push", base, url, branch=branch)

    async def bug_report(
        self,
        base: EventBase,
        action: str,
        number: int,
        title: str,
        author: Identity,
        *,
        url: str | None = None,
        tags: Sequence[str] = (),
    ) -> None:
        await self._send(
            "bug-report",
            "bug-report",
            base,
            url,
            action=action,
            id=number,
            title=title,
            author_name=author.name,
            author_username=author.username,
            author_email=author.email,
            tags=list(tags) or None,
        )

    async def merge_request(
        self,
        base: EventBase,
        action: str,
        number: int,
        title: str,
        author: Identity,
        branch: str,
        *,
        url: str | None = None,
        tags: Sequence[str] = (),
    ) -> None:
        await self._send(
            "merge-request",
            "merge-request",
            base,
            url,
            action=action,
            id=number,
            title=title,
            author_name=author.name,
            author_username=author.username,
            author_email=author.email,
            branch=branch,
            tags=list(tags) or None,
        )

    async def ci_build(
        self,
        base: EventBase,
        action: str,
        number: int,
        branch: str,
        duration: int,
        *,
        url: str | None = None,
        **extra: Any,
    ) -> None:
        await self._send(
            "ci",
            "ci-build",
            base,
            url,
            action=action,
            id=number,
            branch=branch,
            duration=duration,
            **extra,
        )
