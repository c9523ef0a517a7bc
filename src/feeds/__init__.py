"""RSS feed sources, their polling scheduler and ingestion into posts."""

from src.feeds.config import FeedsConfig
from src.feeds.fetcher import FeedFetcher
from src.feeds.mapper import FeedIngestionMapper, lookup_field, map_item
from src.feeds.registry import TaskHandle, TaskRegistry
from src.feeds.repository import FeedSourcesRepository
from src.feeds.scheduler import FeedScheduler
from src.feeds.schemas import (
    INTERNAL_FIELDS,
    FeedDescription,
    FeedSource,
    FeedSourcePatch,
    FieldMapping,
    IngestionReport,
    ParsedFeed,
)
from src.feeds.service import FeedSourcesService

__all__ = [
    "INTERNAL_FIELDS",
    "FeedDescription",
    "FeedFetcher",
    "FeedIngestionMapper",
    "FeedScheduler",
    "FeedSource",
    "FeedSourcePatch",
    "FeedSourcesRepository",
    "FeedSourcesService",
    "FeedsConfig",
    "FieldMapping",
    "IngestionReport",
    "ParsedFeed",
    "TaskHandle",
    "TaskRegistry",
    "lookup_field",
    "map_item",
]
