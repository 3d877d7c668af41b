"""Ordered URL shortener chain.

Each configured service is tried in turn until one returns a short URL. A
notification never fails because of shortening: when every service fails the
original URL is used.
"""

from collections.abc import Sequence

import httpx
import structlog

from scmhook.schemas.shortener import ShortenerRule

logger = structlog.get_logger()


class UrlShortener:
    """Shorten URLs through a list of ``ShortenerRule`` services."""

    def __init__(
        self,
        client: httpx.AsyncClient | None,
        rules: Sequence[ShortenerRule],
        *,
        enabled: bool = True,
    ) -> None:
        self._client = client
        self._rules = tuple(rules)
        self.enabled = enabled and client is not None

    async def shorten(self, url: str | None) -> str | None:
        """Return a short URL for *url*, or *url* itself when none can be had."""
        if not self.enabled or not url:
            return url

        for rule in self._rules:
            if rule.prefix is not None and not url.startswith(rule.prefix):
                continue
            short_url = await self._try(rule, url)
            if short_url:
                return short_url

        logger.warning("url_shortening_failed", url=url)
        return url

    async def _try(self, rule: ShortenerRule, url: str) -> str | None:
        try:
            if rule.method == "GET":
                resp = await self._client.get(rule.endpoint, params={rule.field_name: url})
            else:
                resp = await self._client.request(
                    rule.method, rule.endpoint, data={rule.field_name: url}
                )
        except httpx.HTTPError as exc:
            logger.info("shortener_unreachable", shortener=rule.name, error=str(exc))
            return None

        if rule.expected_status is not None:
            succeeded = resp.status_code == rule.expected_status
        else:
            succeeded = resp.is_success
        if not succeeded:
            logger.info("shortener_rejected", shortener=rule.name, status=resp.status_code)
            return None

        if rule.response_header is not None:
            short_url = resp.headers.get(rule.response_header)
        else:
            short_url = resp.text.strip()
        return short_url or None
