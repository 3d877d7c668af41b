"""Webhook gateway router: ``POST /{project_group}[/{project_name}]``.

The sender is recognized from its request headers, authenticated against the
per-project secret, and the decoded payload is handed to the provider
normalizer registered for the event.
"""

import json
from collections.abc import Mapping
from typing import Annotated, Any
from urllib.parse import parse_qs

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import ValidationError

from scmhook.config import Settings
from scmhook.dependencies import get_api_client, get_emitter, get_registry, get_settings
from scmhook.exceptions import AuthenticationError, MalformedPayloadError
from scmhook.schemas.health import WebhookResponse
from scmhook.schemas.webhooks import Provider
from scmhook.services.auth import authenticate
from scmhook.services.emitter import EventEmitter
from scmhook.services.enrichment import ApiClient
from scmhook.services.providers.registry import NormalizerContext, ProviderRegistry
from scmhook.services.providers.travis import BUILD_EVENT

logger = structlog.get_logger()

router = APIRouter(tags=["webhooks"])

_EVENT_HEADERS = {
    Provider.GITHUB: "x-github-event",
    Provider.GITLAB: "x-gitlab-event",
}


def detect_provider(headers: Mapping[str, str]) -> Provider | None:
    """Recognize the webhook sender from User-Agent and provider headers."""
    user_agent = headers.get("user-agent", "")
    if user_agent.startswith("GitHub-Hookshot/"):
        return Provider.GITHUB
    if user_agent.startswith("Travis CI "):
        return Provider.TRAVIS
    if "x-gitlab-event" in headers:
        return Provider.GITLAB
    return None


def event_name(provider: Provider, headers: Mapping[str, str]) -> str | None:
    header = _EVENT_HEADERS.get(provider)
    if header is None:
        return BUILD_EVENT
    return headers.get(header)


def decode_payload(content_type: str, body: bytes) -> dict[str, Any]:
    """Decode a JSON body, or the ``payload`` field of a form body.

    Raises:
        MalformedPayloadError: If no JSON object can be extracted.
    """
    media_type = content_type.split(";", 1)[0].strip().lower()
    try:
        text = body.decode("utf-8")
        if media_type == "application/json":
            raw = text
        elif media_type == "application/x-www-form-urlencoded":
            raw = parse_qs(text).get("payload", [None])[0]
        else:
            raise MalformedPayloadError(f"unsupported Content-Type {media_type!r}")
        if raw is None:
            raise MalformedPayloadError("no payload field in form body")
        payload = json.loads(raw)
    except ValueError as exc:
        raise MalformedPayloadError(f"payload is not valid JSON: {exc}") from exc

    if not isinstance(payload, dict):
        raise MalformedPayloadError("payload is not a JSON object")
    return payload


def _bad_request(reason: str, **context: Any) -> HTTPException:
    logger.warning("webhook_rejected", reason=reason, **context)
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=reason)


@router.post("/{project_path:path}", response_model=WebhookResponse)
async def receive_webhook(
    project_path: str,
    request: Request,
    settings: Annotated[Settings, Depends(get_settings)],
    emitter: Annotated[EventEmitter, Depends(get_emitter)],
    api: Annotated[ApiClient, Depends(get_api_client)],
    registry: Annotated[ProviderRegistry, Depends(get_registry)],
) -> WebhookResponse:
    """Receive one webhook and emit its canonical events.

    Raises:
        HTTPException: 400 for malformed requests, 401 when authentication
            fails, 501 for events no normalizer handles.
    """
    headers = request.headers
    user_agent = headers.get("user-agent", "")

    content_type = headers.get("content-type")
    if content_type is None:
        raise _bad_request("missing Content-Type", user_agent=user_agent)

    project_group, _, project_name = project_path.partition("/")
    if not project_group:
        raise _bad_request("missing project group", user_agent=user_agent, path=project_path)

    provider = detect_provider(headers)
    if provider is None:
        raise _bad_request("unknown provider", user_agent=user_agent)

    body = await request.body()
    try:
        authenticate(
            provider,
            settings.webhook_secrets,
            project_group=project_group,
            project_name=project_name or None,
            body=body,
            headers=headers,
            query=request.query_params,
        )
    except AuthenticationError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication failed",
        ) from None

    try:
        payload = decode_payload(content_type, body)
    except MalformedPayloadError as exc:
        raise _bad_request(str(exc), provider=provider.value) from exc

    event = event_name(provider, headers)
    handler = registry.lookup(provider, event)
    if handler is None:
        logger.warning("webhook_event_unsupported", provider=provider.value, event_name=event)
        raise HTTPException(
            status_code=status.HTTP_501_NOT_IMPLEMENTED,
            detail=f"Unsupported event {event!r}",
        )

    ctx = NormalizerContext(
        project_group=project_group,
        project_name=project_name or None,
        settings=settings,
        emitter=emitter,
        api=api,
    )
    try:
        await handler(payload, ctx)
    except ValidationError as exc:
        raise _bad_request("payload failed validation", provider=provider.value, errors=exc.error_count()) from exc

    logger.info(
        "webhook_processed",
        provider=provider.value,
        event_name=event,
        project_group=project_group,
        events_emitted=emitter.emitted,
    )
    return WebhookResponse(status="ok", events_emitted=emitter.emitted)


@router.api_route(
    "/{project_path:path}",
    methods=["GET", "HEAD", "PUT", "PATCH", "DELETE", "OPTIONS"],
    include_in_schema=False,
)
async def reject_method(project_path: str, request: Request) -> None:
    """Only POST is accepted on webhook paths."""
    logger.warning("webhook_method_unsupported", method=request.method, path=project_path)
    raise HTTPException(
        status_code=status.HTTP_501_NOT_IMPLEMENTED,
        detail=f"Method {request.method} not supported",
    )
