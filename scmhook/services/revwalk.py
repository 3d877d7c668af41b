"""Revision range walking over a local repository.

Two passes over the same exclusive range ``(old, new]``: a cheap count pass
that decides between a group event and per-commit events, and an emit pass
(oldest first) that is only run when commits are announced one by one.
"""

from collections.abc import Iterator

import structlog

from scmhook.exceptions import RepositoryError
from scmhook.schemas.scm import Commit
from scmhook.services.repository import RepositoryAccess

logger = structlog.get_logger()


class RevisionRangeWalker:
    """Enumerate the commits a ref update introduced."""

    def __init__(self, repository: RepositoryAccess, old_id: str, new_id: str) -> None:
        self.repository = repository
        self.old_id = old_id
        self.new_id = new_id

    def count(self) -> int:
        """Number of commits in the range.

        Raises:
            RepositoryError: If the range cannot be counted at all.
        """
        return self.repository.count_commits(self.old_id, self.new_id)

    def iter_commits(self) -> Iterator[Commit]:
        """Yield the range oldest first.

        A traversal failure ends the walk: commits already yielded stand,
        the rest of the range is dropped and the failure is logged.
        """
        walked = 0
        try:
            for commit in self.repository.iter_commits(self.old_id, self.new_id, reverse=True):
                walked += 1
                yield commit
        except RepositoryError as exc:
            logger.warning(
                "revision_walk_interrupted",
                old=self.old_id,
                new=self.new_id,
                walked=walked,
                error=str(exc),
            )
