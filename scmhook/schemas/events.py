"""Pydantic models for the canonical notification events."""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from scmhook.schemas.scm import Identity

EventName = Literal[
    "branch-creation",
    "branch-deletion",
    "tag-creation",
    "tag-deletion",
    "commit",
    "commit-group",
    "push",
    "bug-report",
    "merge-request",
    "ci-build",
]

EventCategory = Literal["scm", "bug-report", "merge-request", "ci"]


class EventBase(BaseModel):
    """Identity shared by every event emitted for one push or webhook.

    Built once per unit of work. The per-event ``url`` is applied on a copy
    (``with_url``) so the original is never mutated.
    """

    model_config = ConfigDict(frozen=True)

    repository_name: str = Field(min_length=1)
    repository_url: str | None = None
    project_group: str | None = None
    project_name: str | None = None
    pusher: Identity
    url: str | None = None
    extra_data: dict[str, Any] = Field(default_factory=dict)

    @property
    def project(self) -> str:
        return self.project_name or self.repository_name

    def with_url(self, url: str | None) -> "EventBase":
        return self.model_copy(update={"url": url})


class Event(BaseModel):
    """One canonical event as handed to the notification transport."""

    model_config = ConfigDict(frozen=True)

    category: EventCategory
    name: EventName
    base: EventBase
    data: dict[str, Any] = Field(default_factory=dict)

    def to_message(self) -> dict[str, Any]:
        """Flatten into the JSON document delivered downstream."""
        base = self.base
        message: dict[str, Any] = {
            "category": self.category,
            "name": self.name,
            "repository-name": base.repository_name,
            "project": base.project,
            "pusher-name": base.pusher.name,
        }
        optional = {
            "repository-url": base.repository_url,
            "project-group": base.project_group,
            "pusher-username": base.pusher.username,
            "pusher-email": base.pusher.email,
            "url": base.url,
        }
        message.update({key: value for key, value in optional.items() if value is not None})
        message.update(base.extra_data)
        message.update(
            {key.replace("_", "-"): value for key, value in self.data.items() if value is not None}
        )
        return message
