"""Tests for the dependency initialization logic."""

from unittest.mock import patch

import httpx
import pytest

from scmhook import dependencies
from scmhook.config import Settings
from scmhook.dependencies import get_api_client, get_emitter, get_shortener, get_transport, init_production_deps
from scmhook.services.transport import HttpNotificationTransport, InMemoryNotificationTransport


@pytest.fixture(autouse=True)
def _restore_globals():
    with (
        patch.object(dependencies, "_transport", dependencies._transport),
        patch.object(dependencies, "_shortener", dependencies._shortener),
        patch.object(dependencies, "_api_client", dependencies._api_client),
    ):
        yield


def test_init_production_deps_swaps_globals():
    """init_production_deps replaces the in-memory transport when an endpoint is configured."""
    settings = Settings(_env_file=None, notification_url="https://events.example/hook", use_shortener=True)
    offline_api = get_api_client()

    init_production_deps(settings, httpx.AsyncClient())

    assert isinstance(get_transport(), HttpNotificationTransport)
    assert get_shortener().enabled is True
    assert get_api_client() is not offline_api


def test_init_production_deps_keeps_memory_transport_without_endpoint():
    settings = Settings(_env_file=None)

    init_production_deps(settings, httpx.AsyncClient())

    assert isinstance(get_transport(), InMemoryNotificationTransport)


def test_get_emitter_uses_commit_id_size():
    settings = Settings(_env_file=None, commit_id_size=12)
    emitter = get_emitter(settings, InMemoryNotificationTransport(), get_shortener())
    assert emitter.commit_id_size == 12
    assert emitter.emitted == 0
