"""Travis CI build notifications."""

import re
from typing import Any

import structlog

from scmhook.schemas.scm import Identity
from scmhook.schemas.webhooks import Provider, TravisPayload
from scmhook.services.providers.registry import NormalizerContext, ProviderRegistry

logger = structlog.get_logger()

# Travis sends no event header; every request is a build notification
BUILD_EVENT = "build"
DEFAULT_PUSHER = "travis-ci"

_BUILD_NUMBER = re.compile(r"[0-9]+")


async def handle_build(payload: dict[str, Any], ctx: NormalizerContext) -> None:
    build = TravisPayload.model_validate(payload)
    if not _BUILD_NUMBER.fullmatch(build.number):
        logger.warning("travis_build_number_invalid", number=build.number)
        return

    pusher = Identity(name=build.committer_name or DEFAULT_PUSHER, email=build.committer_email)
    base = ctx.base(build.repository.name, build.repository.url, pusher)
    extra: dict[str, Any] = {}
    if build.pull_request:
        extra = {
            "pull_request_number": build.pull_request_number,
            "pull_request_title": build.pull_request_title,
            "pull_request_url": build.compare_url,
        }
    await ctx.emitter.ci_build(
        base,
        build.state,
        int(build.number),
        build.branch,
        build.duration or 0,
        url=build.build_url,
        **extra,
    )


def register(registry: ProviderRegistry) -> None:
    registry.register(Provider.TRAVIS, BUILD_EVENT, handle_build)
