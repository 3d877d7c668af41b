"""Webhook request authentication.

Each provider proves authenticity differently: GitHub signs the raw body
with HMAC (``X-Hub-Signature-256`` / legacy ``X-Hub-Signature``), GitLab
echoes the shared secret in ``X-Gitlab-Token``, and Travis CI requests carry
it in the ``secret`` query parameter. Secrets are looked up per project,
project name first, then project group.
"""

import hashlib
import hmac
from collections.abc import Mapping

import structlog

from scmhook.exceptions import AuthenticationError
from scmhook.schemas.webhooks import Provider

logger = structlog.get_logger()

_GITHUB_SIGNATURES = (
    ("x-hub-signature-256", "sha256", hashlib.sha256),
    ("x-hub-signature", "sha1", hashlib.sha1),
)


def resolve_secret(
    secrets: Mapping[str, str] | None,
    project_group: str,
    project_name: str | None = None,
) -> str:
    """Return the secret configured for a project.

    An empty string means requests are accepted without verification, which
    is also the answer when no secret store is configured at all.

    Raises:
        AuthenticationError: If a store exists but has no entry for the project.
    """
    if secrets is None:
        return ""
    for key in (project_name, project_group):
        if key is not None and key in secrets:
            return secrets[key]
    raise AuthenticationError(f"no secret configured for {project_group}/{project_name or ''}")


def _verify_github(secret: str, body: bytes, headers: Mapping[str, str]) -> None:
    for header, prefix, digestmod in _GITHUB_SIGNATURES:
        signature = headers.get(header)
        if signature is None:
            continue
        scheme, _, digest = signature.partition("=")
        if scheme.lower() != prefix:
            raise AuthenticationError(f"unsupported signature scheme in {header}")
        expected = hmac.new(secret.encode("utf-8"), msg=body, digestmod=digestmod).hexdigest()
        # Header values may carry any latin-1 text; compare as bytes
        if not hmac.compare_digest(expected.encode("ascii"), digest.lower().encode("utf-8", "replace")):
            raise AuthenticationError("signature mismatch")
        return
    raise AuthenticationError("missing signature header")


def _verify_token(secret: str, token: str | None, source: str) -> None:
    if token is None:
        raise AuthenticationError(f"missing {source}")
    if not hmac.compare_digest(secret.encode("utf-8"), token.encode("utf-8")):
        raise AuthenticationError(f"wrong {source}")


def authenticate(
    provider: Provider,
    secrets: Mapping[str, str] | None,
    *,
    project_group: str,
    project_name: str | None,
    body: bytes,
    headers: Mapping[str, str],
    query: Mapping[str, str],
) -> None:
    """Verify an inbound webhook request.

    Args:
        provider: Detected sender of the request.
        secrets: Secret store (project key to secret), or None when disabled.
        project_group: First path segment of the request.
        project_name: Optional second path segment.
        body: Raw request body, exactly as received.
        headers: Request headers; lookups are case-insensitive.
        query: Request query parameters.

    Raises:
        AuthenticationError: If the request must be rejected.
    """
    try:
        secret = resolve_secret(secrets, project_group, project_name)
        if not secret:
            return

        lowered = {key.lower(): value for key, value in headers.items()}
        if provider is Provider.GITHUB:
            _verify_github(secret, body, lowered)
        elif provider is Provider.GITLAB:
            _verify_token(secret, lowered.get("x-gitlab-token"), "X-Gitlab-Token header")
        else:
            _verify_token(secret, query.get("secret"), "secret query parameter")
    except AuthenticationError as exc:
        logger.warning(
            "webhook_auth_rejected",
            provider=provider.value,
            project_group=project_group,
            project_name=project_name,
            reason=str(exc),
        )
        raise
