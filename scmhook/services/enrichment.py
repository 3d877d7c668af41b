"""Follow-up API lookups for data missing from webhook payloads.

GitHub payloads carry only a login for users and nothing about other tags;
full profiles and tag lists are fetched from the provider API. Every lookup is
optional: a failure is logged and the caller falls back to the payload.
"""

from collections.abc import Mapping
from typing import Any
from urllib.parse import urlsplit

import httpx
import structlog

from scmhook.config import VERSION

logger = structlog.get_logger()

_HEADERS_BASE = {
    "Accept": "application/json",
    "User-Agent": f"scmhook/{VERSION}",
}


class ApiClient:
    """GET JSON documents with per-project extra headers (API tokens).

    Without an HTTP client every lookup returns None.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None,
        headers: Mapping[str, Mapping[str, str]] | None = None,
    ) -> None:
        self._client = client
        self._headers = headers or {}

    def headers_for(self, project_group: str | None, project_name: str | None) -> dict[str, str]:
        """Build request headers, project name entries taking precedence over the group's."""
        headers = dict(_HEADERS_BASE)
        for key in (project_group, project_name):
            if key is not None and key in self._headers:
                headers.update(self._headers[key])
        return headers

    async def get_json(
        self,
        url: str | None,
        *,
        project_group: str | None = None,
        project_name: str | None = None,
    ) -> Any | None:
        """Fetch and decode *url*, or return None on any failure."""
        if not url or self._client is None:
            return None
        try:
            resp = await self._client.get(url, headers=self.headers_for(project_group, project_name))
            resp.raise_for_status()
            return resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("api_lookup_failed", url=url, error=str(exc))
            return None


def gitlab_api_base(web_url: str) -> str:
    """Return the REST API root of the GitLab instance hosting *web_url*."""
    parts = urlsplit(web_url)
    return f"{parts.scheme}://{parts.netloc}/api/v4"
