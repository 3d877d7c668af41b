"""Value types describing repository activity: ref updates and commits."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict

ZERO_ID = "0" * 40


def is_zero_id(object_id: str | None) -> bool:
    """Return True for the all-zero sentinel (and for a missing id)."""
    return not object_id or object_id.strip("0") == ""


class RefKind(str, Enum):
    BRANCH = "branch"
    TAG = "tag"
    OTHER = "other"


_NAMESPACES: tuple[tuple[str, RefKind], ...] = (
    ("heads/", RefKind.BRANCH),
    ("tags/", RefKind.TAG),
)


class Identity(BaseModel):
    """A person as seen by the notification stream (pusher or author)."""

    model_config = ConfigDict(frozen=True)

    name: str
    username: str | None = None
    email: str | None = None


class RefUpdate(BaseModel):
    """One ``<old> <new> <ref>`` triple, from a hook line or a webhook payload."""

    model_config = ConfigDict(frozen=True)

    ref_name: str
    old_id: str
    new_id: str

    @classmethod
    def from_hook_line(cls, line: str) -> RefUpdate:
        """Parse a post-receive stdin line.

        Raises:
            ValueError: If the line does not hold exactly three fields.
        """
        fields = line.split()
        if len(fields) != 3:
            raise ValueError(f"expected '<old> <new> <ref>', got {line!r}")
        old_id, new_id, ref_name = fields
        return cls(ref_name=ref_name, old_id=old_id, new_id=new_id)

    @property
    def _relative_name(self) -> str:
        return self.ref_name.removeprefix("refs/")

    @property
    def kind(self) -> RefKind:
        name = self._relative_name
        for prefix, kind in _NAMESPACES:
            if name.startswith(prefix):
                return kind
        return RefKind.OTHER

    @property
    def short_name(self) -> str:
        name = self._relative_name
        for prefix, _ in _NAMESPACES:
            if name.startswith(prefix):
                return name[len(prefix):]
        return name


class Commit(BaseModel):
    """A commit selected for notification.

    ``changed_paths`` stays ``None`` until the commit is emitted on its own;
    group events never pay for a diff.
    """

    id: str
    author: Identity
    message: str
    parent_count: int = 1
    url: str | None = None
    changed_paths: list[str] | None = None
