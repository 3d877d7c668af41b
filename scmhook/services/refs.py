"""Ref update classification and previous-tag lookup."""

from dataclasses import dataclass
from enum import Enum

import structlog

from scmhook.exceptions import RepositoryError
from scmhook.schemas.scm import RefKind, RefUpdate, is_zero_id
from scmhook.services.repository import RepositoryAccess

logger = structlog.get_logger()


class RefAction(str, Enum):
    CREATION = "creation"
    DELETION = "deletion"
    UPDATE = "update"


@dataclass(frozen=True)
class RefClassification:
    kind: RefKind
    name: str
    action: RefAction


def classify(update: RefUpdate) -> RefClassification | None:
    """Classify a ref update, or return None for refs outside heads/ and tags/."""
    kind = update.kind
    if kind is RefKind.OTHER:
        logger.debug("ref_ignored", ref=update.ref_name)
        return None

    if is_zero_id(update.old_id) and not is_zero_id(update.new_id):
        action = RefAction.CREATION
    elif is_zero_id(update.new_id) and not is_zero_id(update.old_id):
        action = RefAction.DELETION
    else:
        action = RefAction.UPDATE
    return RefClassification(kind=kind, name=update.short_name, action=action)


def find_previous_tag(repository: RepositoryAccess, target_id: str, tag_name: str) -> str | None:
    """Find the tag closest to *target_id* in its ancestry.

    Walks ancestors from the target's first parent in topological order and
    returns the first tag found pointing at a visited commit (directly or
    through an annotated tag). This is best effort: it does not know about
    release ordering, and repository failures simply mean "no previous tag".
    """
    try:
        targets = repository.tag_targets()
        for commit_id in repository.iter_ancestors(f"{target_id}^"):
            names = [name for name in targets.get(commit_id, []) if name != tag_name]
            if names:
                return names[0]
    except RepositoryError as exc:
        logger.warning("previous_tag_lookup_failed", tag=tag_name, error=str(exc))
    return None
