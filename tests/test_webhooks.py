"""Tests for the webhook gateway endpoint: detection, authentication, decoding and dispatch."""

import hashlib
import hmac
import json
from urllib.parse import urlencode

import pytest
from httpx import AsyncClient

from scmhook.services.transport import InMemoryNotificationTransport
from tests.payloads import WEBHOOK_SECRET, github_push, gitlab_push, travis_build

GITHUB_UA = "GitHub-Hookshot/abc123"
TRAVIS_UA = "Travis CI Notifications"


def _sign(body: bytes, secret: str = WEBHOOK_SECRET) -> str:
    """Compute the GitHub-style HMAC-SHA1 signature for a payload."""
    digest = hmac.new(secret.encode("utf-8"), msg=body, digestmod=hashlib.sha1).hexdigest()
    return f"sha1={digest}"


def _github_headers(body: bytes, event: str = "push", **extra: str) -> dict[str, str]:
    return {
        "User-Agent": GITHUB_UA,
        "Content-Type": "application/json",
        "X-GitHub-Event": event,
        "X-Hub-Signature": _sign(body),
        **extra,
    }


# ---------------------------------------------------------------------------
# GitHub
# ---------------------------------------------------------------------------


@pytest.mark.anyio
async def test_github_push_emits_events(client: AsyncClient, mock_transport: InMemoryNotificationTransport) -> None:
    body = json.dumps(github_push(commits=3)).encode()

    response = await client.post("/acme/widget", content=body, headers=_github_headers(body))

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "events_emitted": 4}
    assert mock_transport.names == ["commit", "commit", "commit", "push"]
    assert mock_transport.events[0].base.project_name == "widget"


@pytest.mark.anyio
async def test_github_push_large_is_grouped(client: AsyncClient, mock_transport: InMemoryNotificationTransport) -> None:
    body = json.dumps(github_push(commits=10)).encode()

    response = await client.post("/acme", content=body, headers=_github_headers(body))

    assert response.status_code == 200
    assert mock_transport.names == ["commit-group", "push"]
    assert mock_transport.events[0].data["size"] == 10


@pytest.mark.anyio
async def test_github_invalid_signature(client: AsyncClient, mock_transport: InMemoryNotificationTransport) -> None:
    body = json.dumps(github_push()).encode()
    headers = _github_headers(body, **{"X-Hub-Signature": _sign(body, "wrong-secret")})

    response = await client.post("/acme/widget", content=body, headers=headers)

    assert response.status_code == 401
    assert mock_transport.events == []


@pytest.mark.anyio
async def test_github_missing_signature(client: AsyncClient) -> None:
    body = json.dumps(github_push()).encode()
    headers = _github_headers(body)
    del headers["X-Hub-Signature"]

    response = await client.post("/acme/widget", content=body, headers=headers)

    assert response.status_code == 401


@pytest.mark.anyio
async def test_unconfigured_project_rejected(client: AsyncClient) -> None:
    body = json.dumps(github_push()).encode()

    response = await client.post("/strangers/widget", content=body, headers=_github_headers(body))

    assert response.status_code == 401


@pytest.mark.anyio
async def test_open_project_needs_no_signature(client: AsyncClient) -> None:
    body = json.dumps(github_push()).encode()
    headers = _github_headers(body)
    del headers["X-Hub-Signature"]

    response = await client.post("/open/widget", content=body, headers=headers)

    assert response.status_code == 200


@pytest.mark.anyio
async def test_github_ping(client: AsyncClient, mock_transport: InMemoryNotificationTransport) -> None:
    body = b'{"zen": "Keep it logically awesome."}'

    response = await client.post("/acme", content=body, headers=_github_headers(body, event="ping"))

    assert response.status_code == 200
    assert response.json()["events_emitted"] == 0
    assert mock_transport.events == []


@pytest.mark.anyio
async def test_github_unknown_event(client: AsyncClient) -> None:
    body = b"{}"

    response = await client.post("/acme", content=body, headers=_github_headers(body, event="release"))

    assert response.status_code == 501


@pytest.mark.anyio
async def test_form_encoded_payload(client: AsyncClient, mock_transport: InMemoryNotificationTransport) -> None:
    body = urlencode({"payload": json.dumps(github_push(commits=1))}).encode()
    headers = _github_headers(body, **{"Content-Type": "application/x-www-form-urlencoded"})

    response = await client.post("/acme", content=body, headers=headers)

    assert response.status_code == 200
    assert mock_transport.names == ["commit", "push"]


# ---------------------------------------------------------------------------
# Malformed requests
# ---------------------------------------------------------------------------


@pytest.mark.anyio
async def test_missing_content_type(client: AsyncClient) -> None:
    response = await client.post("/open", content=b"{}", headers={"User-Agent": GITHUB_UA})
    assert response.status_code == 400


@pytest.mark.anyio
async def test_missing_project_group(client: AsyncClient) -> None:
    body = b"{}"
    response = await client.post("/", content=body, headers=_github_headers(body))
    assert response.status_code == 400


@pytest.mark.anyio
async def test_unknown_provider(client: AsyncClient) -> None:
    response = await client.post(
        "/open",
        content=b"{}",
        headers={"User-Agent": "curl/8.0", "Content-Type": "application/json"},
    )
    assert response.status_code == 400


@pytest.mark.anyio
async def test_invalid_json(client: AsyncClient) -> None:
    body = b"{not json"
    response = await client.post("/open", content=body, headers=_github_headers(body))
    assert response.status_code == 400


@pytest.mark.anyio
async def test_form_without_payload_field(client: AsyncClient) -> None:
    body = b"other=1"
    headers = _github_headers(body, **{"Content-Type": "application/x-www-form-urlencoded"})
    response = await client.post("/open", content=body, headers=headers)
    assert response.status_code == 400


@pytest.mark.anyio
async def test_payload_failing_validation(client: AsyncClient, mock_transport: InMemoryNotificationTransport) -> None:
    body = json.dumps({"ref": "refs/heads/main"}).encode()
    response = await client.post("/open", content=body, headers=_github_headers(body))
    assert response.status_code == 400
    assert mock_transport.events == []


@pytest.mark.anyio
async def test_non_post_method(client: AsyncClient) -> None:
    response = await client.get("/acme/widget")
    assert response.status_code == 501


# ---------------------------------------------------------------------------
# GitLab and Travis CI
# ---------------------------------------------------------------------------


@pytest.mark.anyio
async def test_gitlab_push_with_token(client: AsyncClient, mock_transport: InMemoryNotificationTransport) -> None:
    headers = {
        "Content-Type": "application/json",
        "User-Agent": "GitLab/16.0",
        "X-Gitlab-Event": "Push Hook",
        "X-Gitlab-Token": WEBHOOK_SECRET,
    }

    response = await client.post("/acme/widget", json=gitlab_push(), headers=headers)

    assert response.status_code == 200
    assert mock_transport.names == ["commit", "push"]


@pytest.mark.anyio
async def test_gitlab_wrong_token(client: AsyncClient) -> None:
    headers = {
        "Content-Type": "application/json",
        "X-Gitlab-Event": "Push Hook",
        "X-Gitlab-Token": "nope",
    }
    response = await client.post("/acme/widget", json=gitlab_push(), headers=headers)
    assert response.status_code == 401


@pytest.mark.anyio
async def test_travis_query_secret(client: AsyncClient, mock_transport: InMemoryNotificationTransport) -> None:
    body = urlencode({"payload": json.dumps(travis_build())})
    headers = {"User-Agent": TRAVIS_UA, "Content-Type": "application/x-www-form-urlencoded"}

    response = await client.post(f"/acme?secret={WEBHOOK_SECRET}", content=body, headers=headers)

    assert response.status_code == 200
    assert mock_transport.names == ["ci-build"]


@pytest.mark.anyio
async def test_travis_missing_secret(client: AsyncClient) -> None:
    body = urlencode({"payload": json.dumps(travis_build())})
    headers = {"User-Agent": TRAVIS_UA, "Content-Type": "application/x-www-form-urlencoded"}

    response = await client.post("/acme", content=body, headers=headers)

    assert response.status_code == 401


@pytest.mark.anyio
async def test_non_ascii_signature_rejected(client: AsyncClient, mock_transport: InMemoryNotificationTransport) -> None:
    body = json.dumps(github_push()).encode()
    headers = {**_github_headers(body), "X-Hub-Signature": b"sha1=\xe9\xe9"}

    response = await client.post("/acme/widget", content=body, headers=headers)

    assert response.status_code == 401
    assert mock_transport.events == []


@pytest.mark.anyio
@pytest.mark.parametrize("method", ["HEAD", "OPTIONS"])
async def test_other_methods_not_implemented(client: AsyncClient, method: str) -> None:
    response = await client.request(method, "/acme/widget")
    assert response.status_code == 501
