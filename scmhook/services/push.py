"""Push normalization shared by the post-receive hook and the webhook providers.

Events go out strictly in push order: the lifecycle event (creation or
deletion), then either one ``commit-group`` or one ``commit`` per commit, then
the ``push`` event. Where the commits come from is abstracted behind
``CommitSource``: a live repository walk for the hook, a payload array for
webhooks.
"""

from collections.abc import AsyncIterator, Awaitable, Callable, Sequence
from typing import Protocol

import structlog

from scmhook.schemas.events import EventBase
from scmhook.schemas.scm import Commit
from scmhook.services.emitter import EventEmitter
from scmhook.services.paths import summarize_paths
from scmhook.services.refs import RefAction
from scmhook.services.threshold import is_group

logger = structlog.get_logger()

PreviousTagLookup = Callable[[], Awaitable[str | None]]


class CommitSource(Protocol):
    """Commits introduced by one push."""

    async def count(self) -> int:
        """Number of commits; must not load commit bodies or diffs."""
        ...

    def iter_commits(self) -> AsyncIterator[Commit]:
        """Yield commits oldest first, with ``changed_paths`` filled in."""
        ...


class PayloadCommits:
    """A commit list already materialized in a webhook payload."""

    def __init__(self, commits: Sequence[Commit], size: int | None = None) -> None:
        self._commits = list(commits)
        self._size = size

    async def count(self) -> int:
        # Providers may truncate the array and report the real size separately
        if self._size is not None:
            return max(self._size, len(self._commits))
        return len(self._commits)

    async def iter_commits(self) -> AsyncIterator[Commit]:
        for commit in self._commits:
            yield commit


async def emit_commits(
    emitter: EventEmitter,
    base: EventBase,
    source: CommitSource,
    *,
    threshold: int,
    branch: str | None,
    diff_url: str | None,
    count: int | None = None,
) -> int:
    """Emit the commit stage of a push and return the number of commits.

    *count* skips the count pass when the caller already ran it.
    """
    if count is None:
        count = await source.count()
    if count == 0:
        return 0

    if is_group(count, threshold):
        await emitter.commit_group(base, count, branch=branch, url=diff_url)
        return count

    async for commit in source.iter_commits():
        await emitter.commit(
            base,
            commit.id,
            commit.message,
            commit.author,
            branch=branch,
            url=commit.url,
            files=summarize_paths(commit.changed_paths or []),
        )
    return count


async def emit_branch_push(
    emitter: EventEmitter,
    base: EventBase,
    branch: str,
    action: RefAction,
    source: CommitSource,
    *,
    threshold: int,
    branch_url: str | None = None,
    diff_url: str | None = None,
) -> None:
    """Emit the events for one branch update.

    The range is counted before anything is announced, so an unreadable
    range aborts the push without a dangling lifecycle event.
    """
    if action is RefAction.DELETION:
        await emitter.branch_deletion(base, branch)
        await emitter.push(base, branch=branch, url=diff_url)
        return

    count = await source.count()
    if action is RefAction.CREATION:
        await emitter.branch_creation(base, branch, url=branch_url)
    size = await emit_commits(
        emitter, base, source, threshold=threshold, branch=branch, diff_url=diff_url, count=count
    )
    logger.info("branch_push_processed", repository=base.repository_name, branch=branch, commits=size)
    await emitter.push(base, branch=branch, url=diff_url)


async def emit_tag_push(
    emitter: EventEmitter,
    base: EventBase,
    tag: str,
    action: RefAction,
    *,
    previous_tag: PreviousTagLookup,
    tag_url: str | None = None,
    push_url: str | None = None,
) -> None:
    """Emit the events for one tag update; a moved tag is a deletion then a creation."""
    if action is not RefAction.CREATION:
        await emitter.tag_deletion(base, tag)
    if action is not RefAction.DELETION:
        await emitter.tag_creation(base, tag, url=tag_url, previous_tag=await previous_tag())
    logger.info("tag_push_processed", repository=base.repository_name, tag=tag, action=action.value)
    await emitter.push(base, url=push_url)
