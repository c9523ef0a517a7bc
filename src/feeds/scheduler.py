"""
Dynamic feed scheduler.

One asyncio task per running feed source, keyed by the source id. The
population is rebuilt from the database on start and then follows
create/update/delete calls while the process runs.

Each task sleeps ``interval`` seconds, then ticks: re-read the source,
fetch its feed and ingest it. A tick is bounded by a timeout and its
failures are logged and counted, never raised; the next tick is a fresh
attempt with no carried state.
"""

import asyncio
import time

import structlog

from src.errors import FeedFetchError
from src.feeds.config import FeedsConfig
from src.feeds.fetcher import FeedFetcher
from src.feeds.mapper import FeedIngestionMapper
from src.feeds.registry import TaskHandle, TaskRegistry
from src.feeds.repository import FeedSourcesRepository
from src.feeds.schemas import FeedSource, IngestionReport
from src.observability.logging import scoped_context
from src.observability.metrics import get_metrics

logger = structlog.get_logger(__name__)


class FeedScheduler:
    """
    Owns the polling tasks of all feed sources.

    Usage:
        scheduler = FeedScheduler(repository, fetcher, mapper)
        await scheduler.start()          # rehydrate from the database
        await scheduler.schedule(source) # idempotent
        await scheduler.unschedule(source.id)
        await scheduler.shutdown()
    """

    def __init__(
        self,
        repository: FeedSourcesRepository,
        fetcher: FeedFetcher,
        mapper: FeedIngestionMapper,
        config: FeedsConfig | None = None,
        registry: TaskRegistry | None = None,
    ) -> None:
        self._repo = repository
        self._fetcher = fetcher
        self._mapper = mapper
        self._config = config or FeedsConfig()
        self._registry = registry or TaskRegistry(name_prefix="feed")
        self._metrics = get_metrics()
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    @property
    def fetcher(self) -> FeedFetcher:
        return self._fetcher

    async def start(self) -> int:
        """
        Schedule every source that is not stopped.

        Safe to call twice: already registered sources are skipped.

        Returns:
            Number of tasks started by this call.
        """
        self._running = True
        sources = await self._repo.list_active()
        started = 0
        for source in sources:
            if await self.schedule(source):
                started += 1
        logger.info("Feed scheduler started", sources=len(sources), started=started)
        return started

    async def schedule(self, source: FeedSource) -> bool:
        """Register the polling task for ``source``; False if not started."""
        if not self._running:
            logger.debug("Scheduler not running, source not scheduled", source_id=source.id)
            return False
        if source.is_stopped:
            return False

        interval = source.interval
        source_id = source.id
        added = await self._registry.register(
            source_id,
            lambda handle: self._run(handle, source_id, interval),
        )
        self._metrics.set_active_tasks(len(self._registry))
        if added:
            logger.info("Feed source scheduled", source_id=source_id, interval=interval)
        return added

    async def unschedule(self, source_id: str) -> bool:
        """Cancel the task for ``source_id``; an in-flight tick completes first."""
        removed = await self._registry.deregister(source_id)
        self._metrics.set_active_tasks(len(self._registry))
        if removed:
            logger.info("Feed source unscheduled", source_id=source_id)
        return removed

    async def reschedule(self, source: FeedSource) -> bool:
        """Restart the task so a new interval takes effect."""
        await self.unschedule(source.id)
        return await self.schedule(source)

    def active_task_ids(self) -> list[str]:
        return self._registry.keys()

    def is_scheduled(self, source_id: str) -> bool:
        return source_id in self._registry

    async def shutdown(self) -> None:
        """Stop all tasks and wait for them to finish."""
        self._running = False
        handles = await self._registry.clear()
        tasks = [h.task for h in handles if h.task is not None]
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._metrics.set_active_tasks(0)
        logger.info("Feed scheduler stopped", tasks=len(tasks))

    async def tick(self, source_id: str) -> IngestionReport | None:
        """
        Run one isolated ingestion attempt for ``source_id``.

        Never raises (except cancellation). Returns None when the tick was
        skipped or failed.
        """
        start = time.perf_counter()
        try:
            report = await asyncio.wait_for(
                self._tick_once(source_id),
                timeout=self._config.tick_timeout_seconds,
            )
        except asyncio.TimeoutError:
            self._metrics.record_feed_tick("timeout", time.perf_counter() - start)
            logger.warning(
                "Feed tick timed out",
                source_id=source_id,
                timeout=self._config.tick_timeout_seconds,
            )
            return None
        except FeedFetchError as e:
            self._metrics.record_feed_tick("failed", time.perf_counter() - start)
            logger.warning("Feed fetch failed", source_id=source_id, url=e.url, error=e.reason)
            return None
        except Exception as e:
            self._metrics.record_feed_tick("failed", time.perf_counter() - start)
            logger.error("Feed tick failed", source_id=source_id, error=str(e), exc_info=True)
            return None

        if report is None:
            self._metrics.record_feed_tick("skipped")
            return None

        self._metrics.record_feed_tick("success", time.perf_counter() - start)
        return report

    async def _tick_once(self, source_id: str) -> IngestionReport | None:
        source = await self._repo.get(source_id)
        if source is None or source.is_stopped:
            logger.info("Feed source gone or stopped, tick skipped", source_id=source_id)
            return None
        feed = await self._fetcher.fetch(source.url)
        return await self._mapper.ingest(source, feed)

    async def _run(self, handle: TaskHandle, source_id: str, interval: int) -> None:
        while not handle.stopped:
            await asyncio.sleep(interval)
            if handle.stopped:
                break
            handle.ticking = True
            try:
                with scoped_context(source_id=source_id):
                    await self.tick(source_id)
            finally:
                handle.ticking = False
        logger.debug("Feed task exited", source_id=source_id)
