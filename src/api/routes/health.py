"""
Health check endpoint: database connectivity and feed scheduler state.
"""

import time

import structlog
from fastapi import APIRouter, Depends

from src.api.dependencies import get_database, get_feeds_service
from src.api.models import ComponentHealth, HealthResponse
from src.feeds.service import FeedSourcesService
from src.storage.database import Database

router = APIRouter()
logger = structlog.get_logger(__name__)


async def _check_database(db: Database) -> ComponentHealth:
    """Check database connectivity and measure latency."""
    start = time.perf_counter()
    try:
        healthy = await db.health_check()
        latency_ms = (time.perf_counter() - start) * 1000
        return ComponentHealth(
            status="healthy" if healthy else "unhealthy",
            latency_ms=round(latency_ms, 2),
        )
    except Exception as e:
        latency_ms = (time.perf_counter() - start) * 1000
        logger.warning("Database health check failed", error=str(e))
        return ComponentHealth(
            status="unhealthy",
            latency_ms=round(latency_ms, 2),
            details={"error": str(e)},
        )


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    description="Check the health of the service and its dependencies.",
)
async def health_check(
    db: Database = Depends(get_database),
    feeds: FeedSourcesService = Depends(get_feeds_service),
) -> HealthResponse:
    """
    Status logic:
    - unhealthy: database is down
    - degraded: database is up but the feed scheduler is not running
    - healthy: all components operational
    """
    db_health = await _check_database(db)
    scheduler = feeds.scheduler
    active = len(scheduler.active_task_ids())

    if db_health.status == "unhealthy":
        status = "unhealthy"
    elif not scheduler.running:
        status = "degraded"
    else:
        status = "healthy"

    return HealthResponse(
        status=status,
        components={"database": db_health},
        scheduler_running=scheduler.running,
        active_feed_tasks=active,
    )
