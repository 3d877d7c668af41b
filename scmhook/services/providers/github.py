"""GitHub webhook normalizers: push, issues, pull_request and ping."""

from typing import Any

import structlog
from pydantic import ValidationError

from scmhook.schemas.scm import Commit, Identity, RefKind, RefUpdate
from scmhook.schemas.webhooks import (
    GitHubCommit,
    GitHubIssuesPayload,
    GitHubPullRequestPayload,
    GitHubPushPayload,
    GitHubUser,
    Provider,
)
from scmhook.services.providers.registry import NormalizerContext, ProviderRegistry, accept_only
from scmhook.services.push import PayloadCommits, emit_branch_push, emit_tag_push
from scmhook.services.refs import classify

logger = structlog.get_logger()

ISSUE_ACTIONS = {
    "opened": "opening",
    "closed": "closing",
    "reopened": "reopening",
}


async def fetch_user(ctx: NormalizerContext, user: GitHubUser) -> GitHubUser:
    """Return the full profile of *user*, or *user* itself if the lookup fails."""
    data = await ctx.get_json(user.url)
    if not isinstance(data, dict):
        return user
    try:
        return GitHubUser.model_validate(data)
    except ValidationError as exc:
        logger.warning("github_user_invalid", login=user.login, error=str(exc))
        return user


async def pusher_identity(ctx: NormalizerContext, sender: GitHubUser) -> Identity:
    user = await fetch_user(ctx, sender)
    name = f"{user.name} ({user.login})" if user.name else user.login
    return Identity(name=name, username=user.login, email=user.email)


async def author_identity(ctx: NormalizerContext, author: GitHubUser) -> Identity:
    user = await fetch_user(ctx, author)
    return Identity(name=user.name or user.login, username=user.login, email=user.email)


def _commit(commit: GitHubCommit) -> Commit:
    return Commit(
        id=commit.id,
        author=Identity(
            name=commit.author.name,
            username=commit.author.username,
            email=commit.author.email,
        ),
        message=commit.message,
        url=commit.url,
        changed_paths=commit.paths,
    )


async def handle_push(payload: dict[str, Any], ctx: NormalizerContext) -> None:
    push = GitHubPushPayload.model_validate(payload)
    classification = classify(RefUpdate(ref_name=push.ref, old_id=push.before, new_id=push.after))
    if classification is None:
        return

    repository = push.repository
    web_url = repository.web_url
    base = ctx.base(repository.name, repository.url, await pusher_identity(ctx, push.sender))
    name = classification.name

    if classification.kind is RefKind.BRANCH:
        await emit_branch_push(
            ctx.emitter,
            base,
            name,
            classification.action,
            PayloadCommits([_commit(commit) for commit in push.commits]),
            threshold=ctx.settings.merge_threshold,
            branch_url=f"{web_url}/tree/{name}" if web_url else None,
            diff_url=push.compare,
        )
        return

    async def previous_tag() -> str | None:
        # Newest first; index 0 is the tag just pushed
        tags = await ctx.get_json(repository.tags_url)
        if isinstance(tags, list) and len(tags) > 1 and isinstance(tags[1], dict):
            return tags[1].get("name")
        return None

    await emit_tag_push(
        ctx.emitter,
        base,
        name,
        classification.action,
        previous_tag=previous_tag,
        tag_url=f"{web_url}/releases/tag/{name}" if web_url else None,
        push_url=push.compare,
    )


async def handle_issues(payload: dict[str, Any], ctx: NormalizerContext) -> None:
    event = GitHubIssuesPayload.model_validate(payload)
    action = ISSUE_ACTIONS.get(event.action)
    if action is None:
        logger.debug("webhook_action_ignored", provider="github", action=event.action)
        return

    issue = event.issue
    repository = event.repository
    base = ctx.base(repository.name, repository.url, await pusher_identity(ctx, event.sender))
    await ctx.emitter.bug_report(
        base,
        action,
        issue.number,
        issue.title,
        await author_identity(ctx, issue.user),
        url=issue.html_url,
        tags=[label.name for label in issue.labels],
    )


async def handle_pull_request(payload: dict[str, Any], ctx: NormalizerContext) -> None:
    event = GitHubPullRequestPayload.model_validate(payload)
    pull = event.pull_request
    if event.action == "closed" and pull.merged:
        action = "merge"
    else:
        action = ISSUE_ACTIONS.get(event.action)
    if action is None:
        logger.debug("webhook_action_ignored", provider="github", action=event.action)
        return

    repository = event.repository
    base = ctx.base(repository.name, repository.url, await pusher_identity(ctx, event.sender))
    await ctx.emitter.merge_request(
        base,
        action,
        pull.number,
        pull.title,
        await author_identity(ctx, pull.user),
        pull.base.ref,
        url=pull.html_url,
        tags=[label.name for label in pull.labels],
    )


def register(registry: ProviderRegistry) -> None:
    registry.register(Provider.GITHUB, "push", handle_push)
    registry.register(Provider.GITHUB, "issues", handle_issues)
    registry.register(Provider.GITHUB, "pull_request", handle_pull_request)
    registry.register(Provider.GITHUB, "ping", accept_only)
