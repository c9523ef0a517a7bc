"""Fixtures for feed source tests."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from src.feeds.config import FeedsConfig
from src.feeds.schemas import FeedSource, FieldMapping, ParsedFeed


@pytest.fixture
def feeds_config() -> FeedsConfig:
    return FeedsConfig(tick_timeout_seconds=0.2, fetch_timeout_seconds=1.0)


@pytest.fixture
def feed_source() -> FeedSource:
    return FeedSource(
        id="src-1",
        url="https://blog.example.com/rss.xml",
        interval=3600,
        creator_id="user-1",
        mappings=[
            FieldMapping("title", "title"),
            FieldMapping("short_description", "summary"),
            FieldMapping("external_id", "id"),
        ],
    )


@pytest.fixture
def parsed_feed() -> ParsedFeed:
    return ParsedFeed(
        root_fields={"title": "Example Blog"},
        items=[
            {"title": "First <b>post</b>", "summary": "Hello <i>world</i>", "id": "post-1"},
            {"title": "Second post", "summary": "Another one", "id": "post-2"},
        ],
    )


@pytest.fixture
def mock_sources_repo(feed_source) -> AsyncMock:
    repo = AsyncMock()
    repo.get.return_value = feed_source
    repo.list_active.return_value = [feed_source]
    return repo


@pytest.fixture
def mock_fetcher(parsed_feed) -> AsyncMock:
    fetcher = AsyncMock()
    fetcher.fetch.return_value = parsed_feed
    return fetcher


@pytest.fixture
def mock_scheduler(mock_fetcher) -> MagicMock:
    """Scheduler double with awaitable task methods and a sync ``is_scheduled``."""
    scheduler = MagicMock()
    scheduler.schedule = AsyncMock(return_value=True)
    scheduler.unschedule = AsyncMock(return_value=True)
    scheduler.reschedule = AsyncMock(return_value=True)
    scheduler.is_scheduled.return_value = True
    scheduler.fetcher = mock_fetcher
    return scheduler
