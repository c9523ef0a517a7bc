"""
Feed sources service.

Persists feed sources and keeps the scheduler in step with them:

    create          -> persist, schedule
    update(stop)    -> unschedule, persist
    update(resume)  -> persist, schedule
    update(interval)-> persist, restart the task
    delete          -> unschedule, then delete the record

Only persistence failures reach the caller. Scheduler errors are logged;
the next process start rebuilds the task set from the database.
"""

import structlog

from src.errors import NotFoundError
from src.feeds.config import FeedsConfig
from src.feeds.repository import FeedSourcesRepository
from src.feeds.scheduler import FeedScheduler
from src.feeds.schemas import FeedDescription, FeedSource, FeedSourcePatch, FieldMapping
from src.patch import UNSET, set_fields

logger = structlog.get_logger(__name__)

_SAMPLE_VALUE_LIMIT = 200


def _sample(value: object) -> object:
    if isinstance(value, str) and len(value) > _SAMPLE_VALUE_LIMIT:
        return value[:_SAMPLE_VALUE_LIMIT] + "..."
    return value


class FeedSourcesService:
    """Create, update, delete and inspect feed sources."""

    def __init__(
        self,
        repository: FeedSourcesRepository,
        scheduler: FeedScheduler,
        config: FeedsConfig | None = None,
    ) -> None:
        self._repo = repository
        self._scheduler = scheduler
        self._config = config or FeedsConfig()

    @property
    def scheduler(self) -> FeedScheduler:
        return self._scheduler

    async def create_source(
        self,
        url: str,
        interval: int,
        creator_id: str,
        mappings: list[FieldMapping] | None = None,
        is_stopped: bool = False,
    ) -> FeedSource:
        """Persist a new source and start polling it unless it is stopped."""
        self._check_interval(interval)
        source = FeedSource(
            url=url,
            interval=interval,
            creator_id=creator_id,
            mappings=list(mappings or []),
            is_stopped=is_stopped,
        )
        await self._repo.create(source)
        logger.info("Feed source created", source_id=source.id, url=url, interval=interval)

        if not source.is_stopped:
            await self._safe_schedule(source)
        return source

    async def update_source(self, source_id: str, patch: FeedSourcePatch) -> FeedSource:
        """
        Apply a partial update and adjust the source's task.

        Raises:
            NotFoundError: unknown source id
        """
        current = await self._repo.get(source_id)
        if current is None:
            raise NotFoundError("FeedSource", source_id)
        if patch.interval is not UNSET:
            self._check_interval(patch.interval)

        stopping = patch.is_stopped is True and not current.is_stopped
        if stopping:
            # Stop before persisting so no tick starts against the new state
            await self._safe_unschedule(source_id)

        fields = set_fields(patch, ("url", "interval", "is_stopped"))
        mappings = patch.mappings if patch.mappings is not UNSET else None
        updated = await self._repo.update(source_id, fields, mappings)
        if updated is None:
            raise NotFoundError("FeedSource", source_id)

        if not updated.is_stopped:
            if updated.interval != current.interval and self._scheduler.is_scheduled(source_id):
                await self._safe_reschedule(updated)
            else:
                await self._safe_schedule(updated)

        logger.info(
            "Feed source updated",
            source_id=source_id,
            fields=sorted(fields),
            mappings_replaced=mappings is not None,
            is_stopped=updated.is_stopped,
        )
        return updated

    async def delete_source(self, source_id: str) -> None:
        """Tear down the task, then delete the record."""
        if await self._repo.get(source_id) is None:
            raise NotFoundError("FeedSource", source_id)

        await self._safe_unschedule(source_id)
        if not await self._repo.delete(source_id):
            raise NotFoundError("FeedSource", source_id)
        logger.info("Feed source deleted", source_id=source_id)

    async def get_source(self, source_id: str) -> FeedSource:
        source = await self._repo.get(source_id)
        if source is None:
            raise NotFoundError("FeedSource", source_id)
        return source

    async def list_sources(self, creator_id: str | None = None) -> list[FeedSource]:
        if creator_id:
            return await self._repo.list_by_creator(creator_id)
        return await self._repo.list_all()

    async def describe_feed(self, url: str) -> FeedDescription:
        """
        Fetch a feed and list the fields a mapping can point at.

        Raises:
            FeedFetchError: the feed could not be fetched or parsed
        """
        feed = await self._scheduler.fetcher.fetch(url)
        first = feed.items[0] if feed.items else {}
        return FeedDescription(
            url=url,
            root_keys=sorted(feed.root_fields),
            item_keys=sorted(first),
            sample={k: _sample(v) for k, v in first.items()},
            item_count=len(feed.items),
        )

    def _check_interval(self, interval: int) -> None:
        if interval < self._config.min_interval_seconds:
            raise ValueError(
                f"Invalid interval {interval}. "
                f"Must be >= {self._config.min_interval_seconds} seconds."
            )

    async def _safe_schedule(self, source: FeedSource) -> None:
        try:
            await self._scheduler.schedule(source)
        except Exception as e:
            logger.error("Feed source scheduling failed", source_id=source.id, error=str(e))

    async def _safe_unschedule(self, source_id: str) -> None:
        try:
            await self._scheduler.unschedule(source_id)
        except Exception as e:
            logger.error("Feed source unscheduling failed", source_id=source_id, error=str(e))

    async def _safe_reschedule(self, source: FeedSource) -> None:
        try:
            await self._scheduler.reschedule(source)
        except Exception as e:
            logger.error("Feed source rescheduling failed", source_id=source.id, error=str(e))
