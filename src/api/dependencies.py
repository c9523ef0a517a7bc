"""
Dependency injection for FastAPI endpoints.
"""

from src.feeds.config import FeedsConfig
from src.feeds.service import FeedSourcesService
from src.mixins.service import MixinsService
from src.posts.service import PostsService
from src.services.engine import ContentEngine
from src.storage.database import Database
from src.tags.service import TagsService

# Global engine instance (started by the app lifespan)
_engine: ContentEngine | None = None


def get_engine() -> ContentEngine:
    """Get the engine instance, creating it (without I/O) on first use."""
    global _engine
    if _engine is None:
        _engine = ContentEngine()
    return _engine


async def init_dependencies() -> ContentEngine:
    """Start the engine: pool, schema, bucket and, if enabled, the feed scheduler."""
    engine = get_engine()
    await engine.start(with_scheduler=FeedsConfig().autostart)
    return engine


async def get_database() -> Database:
    return get_engine().database


async def get_posts_service() -> PostsService:
    return get_engine().posts


async def get_mixins_service() -> MixinsService:
    return get_engine().mixins


async def get_feeds_service() -> FeedSourcesService:
    return get_engine().feeds


async def get_tags_service() -> TagsService:
    return get_engine().tags


async def cleanup_dependencies() -> None:
    """Clean up global dependencies on shutdown."""
    global _engine

    if _engine is not None:
        await _engine.stop()
        _engine = None
