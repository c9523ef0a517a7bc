"""
Prometheus metrics for the content engine.

Defines and exposes metrics for:
- Block reconciliation deltas
- Media lifecycle operations
- Mixin weaving
- Feed scheduler ticks and ingestion volume

Metrics are exposed via HTTP endpoint for Prometheus scraping.
"""

import logging

from prometheus_client import (
    REGISTRY,
    Counter,
    Gauge,
    Histogram,
    start_http_server,
)

from src.config.settings import get_settings

logger = logging.getLogger(__name__)

# Buckets for latency histograms (in seconds)
LATENCY_BUCKETS = (0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0)


class MetricsCollector:
    """
    Prometheus metrics collector for the content engine.

    Usage:
        metrics = get_metrics()
        metrics.start_server()

        metrics.record_delta("create", "applied")
        metrics.record_feed_tick("success", latency=0.4)
    """

    def __init__(self):
        """Initialize Prometheus metrics."""

        # Reconciliation
        self.block_deltas = Counter(
            "content_engine_block_deltas_total",
            "Block deltas processed by the reconciliation engine",
            ["action", "outcome"],  # create/update/delete, applied/failed/noop
        )

        self.reconcile_latency = Histogram(
            "content_engine_reconcile_latency_seconds",
            "Time to reconcile one batch of deltas against a document",
            buckets=LATENCY_BUCKETS,
        )

        # Media lifecycle
        self.media_operations = Counter(
            "content_engine_media_operations_total",
            "Media lifecycle operations",
            ["operation", "outcome"],  # attach/replace/release/blob_delete
        )

        # Mixins
        self.mixins_served = Counter(
            "content_engine_mixins_served_total",
            "Mixins woven into listings",
            ["concat_type"],
        )

        # Feed scheduler
        self.feed_ticks = Counter(
            "content_engine_feed_ticks_total",
            "Feed scheduler ticks by outcome",
            ["outcome"],  # success, failed, timeout, skipped
        )

        self.feed_documents = Counter(
            "content_engine_feed_documents_total",
            "Documents produced by feed ingestion",
            ["status"],  # inserted, duplicate, unmapped
        )

        self.feed_tick_latency = Histogram(
            "content_engine_feed_tick_latency_seconds",
            "Time to fetch, map and store one feed",
            buckets=LATENCY_BUCKETS,
        )

        self.scheduler_active_tasks = Gauge(
            "content_engine_scheduler_active_tasks",
            "Number of live feed polling tasks",
        )

        logger.info("Prometheus metrics initialized")

    def start_server(self, port: int | None = None) -> None:
        """
        Start Prometheus metrics HTTP server.

        Args:
            port: Port to expose metrics on (default from settings)
        """
        settings = get_settings()
        port = port or settings.metrics_port

        start_http_server(port, registry=REGISTRY)
        logger.info(f"Prometheus metrics server started on port {port}")

    # Convenience methods

    def record_delta(self, action: str, outcome: str) -> None:
        """Record one processed block delta."""
        self.block_deltas.labels(action=action, outcome=outcome).inc()

    def record_media(self, operation: str, outcome: str) -> None:
        """Record one media lifecycle operation."""
        self.media_operations.labels(operation=operation, outcome=outcome).inc()

    def record_mixins(self, concat_type: str, count: int) -> None:
        """Record mixins returned for a listing page."""
        if count > 0:
            self.mixins_served.labels(concat_type=concat_type).inc(count)

    def record_feed_tick(self, outcome: str, latency: float | None = None) -> None:
        """
        Record a scheduler tick.

        Args:
            outcome: success, failed, timeout or skipped
            latency: Optional tick duration in seconds
        """
        self.feed_ticks.labels(outcome=outcome).inc()
        if latency is not None:
            self.feed_tick_latency.observe(latency)

    def record_feed_documents(self, inserted: int, duplicates: int, unmapped: int) -> None:
        """Record the result of one ingestion batch."""
        if inserted:
            self.feed_documents.labels(status="inserted").inc(inserted)
        if duplicates:
            self.feed_documents.labels(status="duplicate").inc(duplicates)
        if unmapped:
            self.feed_documents.labels(status="unmapped").inc(unmapped)

    def set_active_tasks(self, count: int) -> None:
        """Set the number of live scheduler tasks."""
        self.scheduler_active_tasks.set(count)


# Global metrics instance
_metrics: MetricsCollector | None = None


def get_metrics() -> MetricsCollector:
    """Get global metrics collector instance."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics
