"""Local post-receive hook processing.

Reads ``<old> <new> <ref>`` lines, classifies each ref update and emits its
events, walking the local repository for the commits. Repository identity and
link templates come from Gitolite environment variables and from the
repository's own git config (``scmhook.*`` keys).
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Iterable, Mapping
from dataclasses import dataclass

import structlog

from scmhook.config import Settings
from scmhook.exceptions import RepositoryError
from scmhook.schemas.events import EventBase
from scmhook.schemas.scm import Commit, Identity, RefKind, RefUpdate, is_zero_id
from scmhook.services.emitter import EventEmitter
from scmhook.services.push import emit_branch_push, emit_tag_push
from scmhook.services.refs import classify, find_previous_tag
from scmhook.services.repository import GitRepository
from scmhook.services.revwalk import RevisionRangeWalker

logger = structlog.get_logger()

CONFIG_SECTION = "scmhook"
DEFAULT_PUSHER = "unknown"


@dataclass(frozen=True)
class UrlTemplates:
    """``str.format`` templates for the links attached to events.

    Fields: ``{repository}`` everywhere, ``{id}`` for commits, ``{old}`` and
    ``{new}`` for diffs, ``{name}`` for branches and tags.
    """

    repository: str
    commit: str | None = None
    diff: str | None = None
    branch: str | None = None
    tag: str | None = None

    def _format(self, template: str | None, **fields: str) -> str | None:
        if not template:
            return None
        try:
            return template.format(repository=self.repository, **fields)
        except (KeyError, IndexError, ValueError) as exc:
            logger.warning("url_template_invalid", template=template, error=str(exc))
            return None

    def commit_url(self, commit_id: str) -> str | None:
        return self._format(self.commit, id=commit_id)

    def diff_url(self, old_id: str, new_id: str) -> str | None:
        if is_zero_id(old_id) or is_zero_id(new_id):
            return None
        return self._format(self.diff, old=old_id, new=new_id)

    def branch_url(self, name: str) -> str | None:
        return self._format(self.branch, name=name)

    def tag_url(self, name: str) -> str | None:
        return self._format(self.tag, name=name)


def load_repository_identity(
    repository: GitRepository, environ: Mapping[str, str]
) -> tuple[EventBase, UrlTemplates]:
    """Build the event base and link templates for pushes to *repository*."""

    def config(key: str) -> str | None:
        return repository.config_get(f"{CONFIG_SECTION}.{key}")

    pusher = environ.get("GL_USER") or environ.get("USER") or DEFAULT_PUSHER
    repository_name = (
        environ.get("GL_REPO") or config("repository") or repository.guessed_name
    )
    base = EventBase(
        repository_name=repository_name,
        repository_url=config("url"),
        project_group=config("project-group"),
        project_name=config("project"),
        pusher=Identity(name=pusher, username=environ.get("GL_USER")),
    )
    templates = UrlTemplates(
        repository=repository_name,
        commit=config("commit-url"),
        diff=config("diff-url"),
        branch=config("branch-url"),
        tag=config("tag-url"),
    )
    return base, templates


class RepositoryCommits:
    """Commits of a ref update, read from the local repository.

    Blocking git work runs in worker threads so the event loop stays free for
    event delivery.
    """

    def __init__(self, repository: GitRepository, update: RefUpdate, templates: UrlTemplates) -> None:
        self._repository = repository
        self._walker = RevisionRangeWalker(repository, update.old_id, update.new_id)
        self._templates = templates

    async def count(self) -> int:
        return await asyncio.to_thread(self._walker.count)

    async def iter_commits(self) -> AsyncIterator[Commit]:
        commits = self._walker.iter_commits()
        while (commit := await asyncio.to_thread(next, commits, None)) is not None:
            try:
                paths = await asyncio.to_thread(self._repository.changed_paths, commit)
            except RepositoryError as exc:
                logger.warning("changed_paths_failed", commit=commit.id, error=str(exc))
                paths = None
            yield commit.model_copy(
                update={"changed_paths": paths, "url": self._templates.commit_url(commit.id)}
            )


async def process_ref_update(
    repository: GitRepository,
    update: RefUpdate,
    base: EventBase,
    templates: UrlTemplates,
    settings: Settings,
    emitter: EventEmitter,
) -> None:
    """Emit the events for one ref update.

    Raises:
        RepositoryError: If the commit range cannot be walked at all.
    """
    classification = classify(update)
    if classification is None:
        return

    name = classification.name
    if classification.kind is RefKind.BRANCH:
        await emit_branch_push(
            emitter,
            base,
            name,
            classification.action,
            RepositoryCommits(repository, update, templates),
            threshold=settings.merge_threshold,
            branch_url=templates.branch_url(name),
            diff_url=templates.diff_url(update.old_id, update.new_id),
        )
        return

    async def previous_tag() -> str | None:
        return await asyncio.to_thread(find_previous_tag, repository, update.new_id, name)

    await emit_tag_push(
        emitter,
        base,
        name,
        classification.action,
        previous_tag=previous_tag,
        tag_url=templates.tag_url(name),
    )


async def run_post_receive(
    lines: Iterable[str],
    repository: GitRepository,
    settings: Settings,
    emitter: EventEmitter,
    environ: Mapping[str, str],
) -> int:
    """Process every hook input line; return the number of ref updates handled.

    A malformed line or a failing ref update is logged and skipped, the
    remaining lines are still processed.
    """
    base, templates = load_repository_identity(repository, environ)
    handled = 0
    for line in lines:
        line = line.strip()
        if not line:
            continue
        try:
            update = RefUpdate.from_hook_line(line)
        except ValueError as exc:
            logger.warning("hook_line_malformed", line=line, error=str(exc))
            continue
        try:
            await process_ref_update(repository, update, base, templates, settings, emitter)
        except RepositoryError as exc:
            logger.error("push_aborted", ref=update.ref_name, error=str(exc))
            continue
        handled += 1
    return handled
