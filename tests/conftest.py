"""Shared test fixtures: settings, in-memory transport, app client and git repositories."""

import shutil
import subprocess
from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient

from scmhook.config import Settings, get_settings
from scmhook.dependencies import get_api_client, get_shortener, get_transport
from scmhook.main import app
from scmhook.schemas.events import EventBase
from scmhook.schemas.scm import Identity
from scmhook.services.emitter import EventEmitter
from scmhook.services.enrichment import ApiClient
from scmhook.services.shortener import UrlShortener
from scmhook.services.transport import InMemoryNotificationTransport
from tests.payloads import WEBHOOK_SECRET


@pytest.fixture
def anyio_backend() -> str:
    """Run anyio-marked tests on asyncio, the only async backend the project depends on."""
    return "asyncio"


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from the environment, with one secured and one open project."""
    return Settings(
        _env_file=None,
        webhook_secrets={"acme": WEBHOOK_SECRET, "open": ""},
    )


@pytest.fixture
def mock_transport() -> InMemoryNotificationTransport:
    """Create a fresh in-memory notification transport for test inspection."""
    return InMemoryNotificationTransport()


@pytest.fixture
def emitter(mock_transport: InMemoryNotificationTransport) -> EventEmitter:
    return EventEmitter(mock_transport, UrlShortener(None, (), enabled=False))


@pytest.fixture
def base() -> EventBase:
    return EventBase(repository_name="widget", pusher=Identity(name="alice"))


@pytest.fixture
async def client(
    settings: Settings,
    mock_transport: InMemoryNotificationTransport,
) -> AsyncGenerator[AsyncClient, None]:
    """Yield an httpx AsyncClient with dependencies overridden.

    Events land in the in-memory transport, enrichment lookups and URL
    shortening are disabled so no test touches the network.
    """
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_transport] = lambda: mock_transport
    app.dependency_overrides[get_api_client] = lambda: ApiClient(None)
    app.dependency_overrides[get_shortener] = lambda: UrlShortener(None, (), enabled=False)
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


class GitRepo:
    """Throwaway repository driven through the git command line."""

    def __init__(self, path: Path) -> None:
        self.path = path
        path.mkdir(parents=True, exist_ok=True)
        self.git("init", "-q", "-b", "main")
        self.git("config", "user.name", "Alice Example")
        self.git("config", "user.email", "alice@example.com")
        self.git("config", "commit.gpgsign", "false")
        self.git("config", "tag.gpgsign", "false")

    def git(self, *args: str) -> str:
        res = subprocess.run(
            ["git", *args],
            cwd=self.path,
            check=True,
            capture_output=True,
            text=True,
        )
        return res.stdout.strip()

    def commit(self, message: str, files: dict[str, str]) -> str:
        for name, content in files.items():
            target = self.path / name
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content)
            self.git("add", name)
        self.git("commit", "-q", "-m", message)
        return self.git("rev-parse", "HEAD")


@pytest.fixture
def git_repo(tmp_path: Path) -> GitRepo:
    if shutil.which("git") is None:
        pytest.skip("git executable not available")
    return GitRepo(tmp_path / "widget")
