"""
External feed fetcher.

Downloads an RSS/Atom document with httpx and parses it with
feedparser. The result is converted to plain dicts and lists so the
mapper can address fields by key or dotted path without knowing about
feedparser types. ``*_parsed`` time tuples become ISO-8601 strings.
"""

import calendar
import logging
import time
from datetime import datetime, timezone
from typing import Any

import feedparser
import httpx

from src.errors import FeedFetchError
from src.feeds.config import FeedsConfig
from src.feeds.schemas import ParsedFeed

logger = logging.getLogger(__name__)


def to_plain(value: Any) -> Any:
    """Recursively convert feedparser values to JSON-like Python values."""
    if isinstance(value, time.struct_time):
        return datetime.fromtimestamp(calendar.timegm(value), tz=timezone.utc).isoformat()
    if isinstance(value, dict):
        return {str(k): to_plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_plain(v) for v in value]
    return value


class FeedFetcher:
    """
    Fetch and parse one feed URL.

    Args:
        config: Feed settings (timeout, user agent)
        client: Optional shared httpx.AsyncClient; a short-lived client is
            created per fetch when omitted
    """

    def __init__(
        self,
        config: FeedsConfig | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._config = config or FeedsConfig()
        self._client = client

    async def fetch(self, url: str) -> ParsedFeed:
        """
        Download and parse ``url``.

        Raises:
            FeedFetchError: HTTP error, timeout, or a body that is not a feed
        """
        body = await self._download(url)

        parsed = feedparser.parse(body)
        if parsed.get("bozo") and not parsed.get("entries"):
            reason = parsed.get("bozo_exception") or "not a valid feed"
            raise FeedFetchError(url, f"unparseable feed: {reason}")

        items = [to_plain(entry) for entry in parsed.get("entries", [])]
        root = to_plain(parsed.get("feed", {}))
        logger.debug(f"Fetched {len(items)} items from {url}")
        return ParsedFeed(root_fields=root, items=items)

    async def _download(self, url: str) -> bytes:
        headers = {"User-Agent": self._config.user_agent}
        try:
            if self._client is not None:
                response = await self._client.get(
                    url, headers=headers, timeout=self._config.fetch_timeout_seconds
                )
            else:
                async with httpx.AsyncClient(
                    timeout=self._config.fetch_timeout_seconds,
                    follow_redirects=True,
                ) as client:
                    response = await client.get(url, headers=headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise FeedFetchError(url, f"HTTP {e.response.status_code}") from e
        except httpx.TimeoutException as e:
            raise FeedFetchError(url, "timed out") from e
        except httpx.HTTPError as e:
            raise FeedFetchError(url, str(e) or type(e).__name__) from e
        return response.content
