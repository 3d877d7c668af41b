"""GitLab webhook normalizers.

GitLab names its events after the hook (``X-Gitlab-Event: Push Hook``).
Pushes carry at most 20 commits inline; ``total_commits_count`` gives the
real size.
"""

from typing import Any
from urllib.parse import quote

import structlog

from scmhook.schemas.scm import Commit, Identity, RefKind, RefUpdate, is_zero_id
from scmhook.schemas.webhooks import (
    GitLabIssuePayload,
    GitLabPipelinePayload,
    GitLabProject,
    GitLabPushPayload,
    GitLabUser,
    Provider,
)
from scmhook.services.enrichment import gitlab_api_base
from scmhook.services.providers.registry import NormalizerContext, ProviderRegistry
from scmhook.services.push import PayloadCommits, emit_branch_push, emit_tag_push
from scmhook.services.refs import classify

logger = structlog.get_logger()

ISSUE_ACTIONS = {
    "open": "opening",
    "close": "closing",
    "reopen": "reopening",
}
MERGE_REQUEST_ACTIONS = {**ISSUE_ACTIONS, "merge": "merge"}

UNKNOWN_USER = "unknown"


def _display_name(name: str | None, username: str | None) -> str:
    if name and username:
        return f"{name} ({username})"
    return name or username or UNKNOWN_USER


def _user_identity(user: GitLabUser) -> Identity:
    return Identity(name=_display_name(user.name, user.username), username=user.username, email=user.email)


def _compare_url(project: GitLabProject, before: str, after: str) -> str | None:
    if is_zero_id(before) or is_zero_id(after):
        return None
    return f"{project.web_url}/compare/{before}...{after}"


async def handle_push(payload: dict[str, Any], ctx: NormalizerContext) -> None:
    """Handle both ``Push Hook`` and ``Tag Push Hook``."""
    push = GitLabPushPayload.model_validate(payload)
    classification = classify(RefUpdate(ref_name=push.ref, old_id=push.before, new_id=push.after))
    if classification is None:
        return

    project = push.project
    pusher = Identity(
        name=_display_name(push.user_name, push.user_username),
        username=push.user_username,
        email=push.user_email,
    )
    base = ctx.base(project.name, project.git_http_url, pusher)
    name = classification.name
    diff_url = _compare_url(project, push.before, push.after)

    if classification.kind is RefKind.BRANCH:
        commits = [
            Commit(
                id=commit.id,
                author=Identity(name=commit.author.name, email=commit.author.email),
                message=commit.message,
                url=commit.url,
                changed_paths=commit.paths,
            )
            for commit in push.commits
        ]
        await emit_branch_push(
            ctx.emitter,
            base,
            name,
            classification.action,
            PayloadCommits(commits, size=push.total_commits_count),
            threshold=ctx.settings.merge_threshold,
            branch_url=f"{project.web_url}/tree/{name}",
            diff_url=diff_url,
        )
        return

    async def previous_tag() -> str | None:
        if project.id is None:
            return None
        # Most recently updated first; index 0 is the tag just pushed
        tags = await ctx.get_json(
            f"{gitlab_api_base(project.web_url)}/projects/{project.id}/repository/tags"
        )
        if isinstance(tags, list) and len(tags) > 1 and isinstance(tags[1], dict):
            return tags[1].get("name")
        return None

    await emit_tag_push(
        ctx.emitter,
        base,
        name,
        classification.action,
        previous_tag=previous_tag,
        tag_url=f"{project.web_url}/-/tags/{quote(name)}",
        push_url=diff_url,
    )


async def handle_issue(payload: dict[str, Any], ctx: NormalizerContext) -> None:
    event = GitLabIssuePayload.model_validate(payload)
    attributes = event.object_attributes
    action = ISSUE_ACTIONS.get(attributes.action or "")
    if action is None:
        logger.debug("webhook_action_ignored", provider="gitlab", action=attributes.action)
        return

    author = _user_identity(event.user)
    base = ctx.base(event.project.name, event.project.git_http_url, author)
    await ctx.emitter.bug_report(
        base,
        action,
        attributes.iid,
        attributes.title,
        author,
        url=attributes.url,
        tags=[label.title for label in event.labels],
    )


async def handle_merge_request(payload: dict[str, Any], ctx: NormalizerContext) -> None:
    event = GitLabIssuePayload.model_validate(payload)
    attributes = event.object_attributes
    action = MERGE_REQUEST_ACTIONS.get(attributes.action or "")
    if action is None:
        logger.debug("webhook_action_ignored", provider="gitlab", action=attributes.action)
        return

    author = _user_identity(event.user)
    base = ctx.base(event.project.name, event.project.git_http_url, author)
    await ctx.emitter.merge_request(
        base,
        action,
        attributes.iid,
        attributes.title,
        author,
        attributes.target_branch or "",
        url=attributes.url,
        tags=[label.title for label in event.labels],
    )


async def handle_pipeline(payload: dict[str, Any], ctx: NormalizerContext) -> None:
    event = GitLabPipelinePayload.model_validate(payload)
    pipeline = event.object_attributes
    project = event.project
    base = ctx.base(project.name, project.git_http_url, _user_identity(event.user))
    await ctx.emitter.ci_build(
        base,
        pipeline.status,
        pipeline.id,
        pipeline.ref,
        pipeline.duration or 0,
        url=f"{project.web_url}/-/pipelines/{pipeline.id}",
    )


def register(registry: ProviderRegistry) -> None:
    registry.register(Provider.GITLAB, "Push Hook", handle_push)
    registry.register(Provider.GITLAB, "Tag Push Hook", handle_push)
    registry.register(Provider.GITLAB, "Issue Hook", handle_issue)
    registry.register(Provider.GITLAB, "Merge Request Hook", handle_merge_request)
    registry.register(Provider.GITLAB, "Pipeline Hook", handle_pipeline)
