"""
Command-line interface for the content engine.

Provides commands to run the API server and the feed scheduler,
initialize the database, and run diagnostic checks.

Usage:
    content-engine serve                # Run the API (and the feed scheduler)
    content-engine scheduler            # Run only the feed scheduler
    content-engine init-db              # Initialize database
    content-engine describe-feed URL    # Show the fields of a feed
    content-engine health               # Check service health
"""

import asyncio
import json
import signal
import sys

import click

from src.config.settings import get_settings
from src.observability.logging import setup_logging
from src.observability.metrics import get_metrics


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
def main(debug: bool) -> None:
    """Content Engine - posts, media, mixins and feed ingestion."""
    setup_logging(log_level="DEBUG" if debug else None)


@main.command("init-db")
def init_db() -> None:
    """Initialize the database schema."""
    from src.services.engine import ContentEngine

    async def run():
        engine = ContentEngine()
        await engine.database.connect()
        try:
            await engine.ensure_schema()
            click.echo("Database initialized successfully")
        finally:
            await engine.database.close()

    asyncio.run(run())


@main.command()
@click.option("--host", default=None, help="API server host")
@click.option("--port", default=None, type=int, help="API server port")
@click.option("--reload", is_flag=True, help="Enable auto-reload (dev only)")
@click.option("--metrics-port", default=None, type=int, help="Metrics server port")
def serve(host: str | None, port: int | None, reload: bool, metrics_port: int | None) -> None:
    """Start the API server.

    The feed scheduler starts with the app unless FEEDS_AUTOSTART=false.
    """
    import uvicorn

    settings = get_settings()
    host = host or settings.api_host
    port = port or settings.api_port
    metrics_port = metrics_port or settings.metrics_port

    # Start metrics server on separate port
    get_metrics().start_server(port=metrics_port)

    click.echo(f"Starting API server on {host}:{port}")
    click.echo(f"Metrics available on http://localhost:{metrics_port}/metrics")
    click.echo(f"API docs available on http://localhost:{port}/docs")

    uvicorn.run(
        "src.api.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level="info",
    )


@main.command()
@click.option("--metrics/--no-metrics", default=True, help="Enable metrics server")
@click.option("--metrics-port", default=None, type=int, help="Metrics server port")
def scheduler(metrics: bool, metrics_port: int | None) -> None:
    """Run only the feed scheduler until SIGINT/SIGTERM."""
    from src.services.engine import ContentEngine

    async def run():
        engine = ContentEngine()

        if metrics:
            get_metrics().start_server(port=metrics_port)

        stop_event = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, stop_event.set)

        click.echo("Feed scheduler running (Ctrl+C to stop)")
        await engine.run_scheduler(stop_event)
        click.echo("Feed scheduler stopped")

    asyncio.run(run())


@main.command("describe-feed")
@click.argument("url")
def describe_feed(url: str) -> None:
    """Fetch a feed and print the fields a mapping can use.

    Example:
        content-engine describe-feed https://example.com/rss.xml
    """
    from src.errors import FeedFetchError
    from src.services.engine import ContentEngine

    async def run():
        engine = ContentEngine()
        try:
            description = await engine.feeds.describe_feed(url)
        except FeedFetchError as e:
            click.echo(click.style(str(e), fg="red"), err=True)
            sys.exit(1)

        click.echo(f"\nFeed: {description.url} ({description.item_count} items)")
        click.echo("-" * 60)
        click.echo("Root fields (use with the 'feed.' prefix):")
        for key in description.root_keys:
            click.echo(f"  feed.{key}")
        click.echo("\nItem fields:")
        for key in description.item_keys:
            click.echo(f"  {key}")
        click.echo("\nSample item:")
        click.echo(json.dumps(description.sample, indent=2, ensure_ascii=False))

    asyncio.run(run())


@main.command()
def health() -> None:
    """Check health of all dependencies."""
    import structlog
    logger = structlog.get_logger()

    async def check():
        results: dict[str, bool] = {}
        settings = get_settings()

        # Check PostgreSQL
        try:
            from src.storage.database import Database
            db = Database()
            await db.connect()
            results["postgres"] = await db.health_check()
            await db.close()
        except Exception as e:
            results["postgres"] = False
            logger.error("Postgres health check failed", error=str(e))

        # Check object storage
        results["blob_store_configured"] = settings.blob_store_configured
        if settings.blob_store_configured:
            from src.storage.blob_store import S3BlobStore
            results["blob_store"] = await S3BlobStore().health_check()

        # Print results
        click.echo("\nHealth Check Results:")
        click.echo("-" * 40)

        all_healthy = True
        for name, status in results.items():
            icon = "✓" if status else "✗"
            color = "green" if status else "red"
            click.echo(click.style(f"  {icon} {name}: {status}", fg=color))
            if name in ("postgres", "blob_store") and not status:
                all_healthy = False

        click.echo("-" * 40)

        if all_healthy:
            click.echo(click.style("All core services healthy!", fg="green"))
            sys.exit(0)
        else:
            click.echo(click.style("Some services unhealthy!", fg="red"))
            sys.exit(1)

    asyncio.run(check())


if __name__ == "__main__":
    main()
