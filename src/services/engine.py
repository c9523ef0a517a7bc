"""
Content engine service - wires storage, media, tags, posts, mixins and feeds.

One instance owns the database pool, the blob store and every service
built on them. The API process and the CLI commands both start one.

Usage:
    engine = ContentEngine()
    await engine.start(with_scheduler=True)
    ...
    await engine.stop()
"""

import asyncio

import structlog

from src.config.settings import get_settings
from src.feeds.config import FeedsConfig
from src.feeds.fetcher import FeedFetcher
from src.feeds.mapper import FeedIngestionMapper
from src.feeds.repository import FeedSourcesRepository
from src.feeds.scheduler import FeedScheduler
from src.feeds.service import FeedSourcesService
from src.media.config import MediaConfig
from src.media.manager import MediaLifecycleManager
from src.media.repository import MediaRepository
from src.mixins.config import MixinsConfig
from src.mixins.repository import MixinsRepository
from src.mixins.service import MixinsService
from src.mixins.weaver import MixinWeaver
from src.posts.config import PostsConfig
from src.posts.repository import PostsRepository
from src.posts.service import PostsService
from src.storage.blob_store import BlobStore, S3BlobStore
from src.storage.database import Database
from src.tags.repository import TagsRepository
from src.tags.service import TagsService

logger = structlog.get_logger(__name__)


class ContentEngine:
    """
    Composition root for the engine's services.

    Construction is cheap and does no I/O; ``start()`` connects the pool,
    ensures the schema and the bucket, and optionally rehydrates the
    feed scheduler.
    """

    def __init__(
        self,
        database: Database | None = None,
        blob_store: BlobStore | None = None,
    ) -> None:
        media_config = MediaConfig()
        feeds_config = FeedsConfig()

        self.database = database or Database()
        self.blob_store = blob_store or S3BlobStore(timeout=media_config.upload_timeout_seconds)

        self.media_repository = MediaRepository(self.database)
        self.tags_repository = TagsRepository(self.database)
        self.posts_repository = PostsRepository(self.database, self.media_repository)
        self.mixins_repository = MixinsRepository(self.database)
        self.feeds_repository = FeedSourcesRepository(self.database)

        self.media = MediaLifecycleManager(self.media_repository, self.blob_store, media_config)
        self.weaver = MixinWeaver(self.mixins_repository, MixinsConfig())
        self.tags = TagsService(self.tags_repository)
        self.posts = PostsService(
            self.posts_repository, self.media, self.weaver, PostsConfig(), tags=self.tags
        )
        self.mixins = MixinsService(self.mixins_repository, self.media)

        self.scheduler = FeedScheduler(
            self.feeds_repository,
            FeedFetcher(feeds_config),
            FeedIngestionMapper(self.posts_repository, feeds_config),
            feeds_config,
        )
        self.feeds = FeedSourcesService(self.feeds_repository, self.scheduler, feeds_config)

        self._started = False

    async def ensure_schema(self) -> None:
        """Create every table. Media and tags come first: posts reference them."""
        await self.media_repository.create_table()
        await self.tags_repository.create_table()
        await self.posts_repository.create_tables()
        await self.mixins_repository.create_tables()
        await self.feeds_repository.create_tables()

    async def start(self, with_scheduler: bool = False) -> None:
        """Connect, prepare storage and optionally start polling feeds."""
        if self._started:
            return

        await self.database.connect()
        await self.ensure_schema()

        settings = get_settings()
        if settings.blob_store_configured:
            await self.blob_store.ensure_bucket()
        else:
            logger.warning("Object storage credentials not set, bucket check skipped")

        if with_scheduler:
            await self.scheduler.start()

        self._started = True
        logger.info("Content engine started", scheduler=with_scheduler)

    async def stop(self) -> None:
        """Stop polling and close the pool."""
        if self.scheduler.running:
            await self.scheduler.shutdown()
        await self.database.close()
        self._started = False
        logger.info("Content engine stopped")

    async def run_scheduler(self, stop_event: asyncio.Event) -> None:
        """Run only the feed scheduler until ``stop_event`` is set."""
        await self.start(with_scheduler=True)
        try:
            await stop_event.wait()
        finally:
            await self.stop()
