"""Tests for the content-engine CLI commands."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from click.testing import CliRunner

from src.cli import main
from src.errors import FeedFetchError
from src.feeds.schemas import FeedDescription


# ── Fixtures ──────────────────────────────────────────────


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture(autouse=True)
def no_logging_setup():
    with patch("src.cli.setup_logging") as setup:
        yield setup


@pytest.fixture
def mock_engine():
    engine = MagicMock()
    engine.database.connect = AsyncMock()
    engine.database.close = AsyncMock()
    engine.ensure_schema = AsyncMock()
    engine.feeds.describe_feed = AsyncMock()
    engine.run_scheduler = AsyncMock()
    with patch("src.services.engine.ContentEngine", return_value=engine):
        yield engine


# ── Commands ──────────────────────────────────────────────


class TestMain:
    def test_debug_flag_sets_level(self, runner, no_logging_setup, mock_engine):
        result = runner.invoke(main, ["--debug", "init-db"])

        assert result.exit_code == 0
        no_logging_setup.assert_called_once_with(log_level="DEBUG")

    def test_help_lists_commands(self, runner):
        result = runner.invoke(main, ["--help"])

        assert result.exit_code == 0
        for command in ("init-db", "serve", "scheduler", "describe-feed", "health"):
            assert command in result.output


class TestInitDb:
    def test_creates_schema_and_closes(self, runner, mock_engine):
        result = runner.invoke(main, ["init-db"])

        assert result.exit_code == 0
        assert "Database initialized" in result.output
        mock_engine.ensure_schema.assert_awaited_once()
        mock_engine.database.close.assert_awaited_once()

    def test_closes_pool_on_failure(self, runner, mock_engine):
        mock_engine.ensure_schema.side_effect = RuntimeError("permission denied")

        result = runner.invoke(main, ["init-db"])

        assert result.exit_code != 0
        mock_engine.database.close.assert_awaited_once()


class TestDescribeFeed:
    def test_prints_fields(self, runner, mock_engine):
        mock_engine.feeds.describe_feed.return_value = FeedDescription(
            url="https://blog.example.com/rss.xml",
            root_keys=["title"],
            item_keys=["link", "title"],
            sample={"title": "Hello"},
            item_count=2,
        )

        result = runner.invoke(main, ["describe-feed", "https://blog.example.com/rss.xml"])

        assert result.exit_code == 0
        assert "feed.title" in result.output
        assert "  link" in result.output
        assert '"title": "Hello"' in result.output

    def test_fetch_error_exits_1(self, runner, mock_engine):
        mock_engine.feeds.describe_feed.side_effect = FeedFetchError("https://x", "HTTP 404")

        result = runner.invoke(main, ["describe-feed", "https://x"])

        assert result.exit_code == 1


class TestServe:
    def test_runs_app_factory(self, runner):
        metrics = MagicMock()
        with (
            patch("uvicorn.run") as run,
            patch("src.cli.get_metrics", return_value=metrics),
        ):
            result = runner.invoke(main, ["serve", "--port", "9001", "--metrics-port", "9101"])

        assert result.exit_code == 0
        metrics.start_server.assert_called_once_with(port=9101)
        args, kwargs = run.call_args
        assert args == ("src.api.app:create_app",)
        assert kwargs["factory"] is True
        assert kwargs["port"] == 9001


class TestScheduler:
    def test_runs_until_stopped(self, runner, mock_engine):
        with patch("src.cli.get_metrics") as get_metrics:
            result = runner.invoke(main, ["scheduler", "--no-metrics"])

        assert result.exit_code == 0
        assert "Feed scheduler stopped" in result.output
        mock_engine.run_scheduler.assert_awaited_once()
        get_metrics.return_value.start_server.assert_not_called()


class TestHealth:
    @pytest.fixture
    def mock_db(self):
        db = MagicMock()
        db.connect = AsyncMock()
        db.close = AsyncMock()
        db.health_check = AsyncMock(return_value=True)
        with patch("src.storage.database.Database", return_value=db):
            yield db

    def test_all_healthy(self, runner, mock_db):
        settings = MagicMock(blob_store_configured=False)
        with patch("src.cli.get_settings", return_value=settings):
            result = runner.invoke(main, ["health"])

        assert result.exit_code == 0
        assert "postgres: True" in result.output

    def test_database_down(self, runner, mock_db):
        mock_db.connect.side_effect = OSError("connection refused")
        settings = MagicMock(blob_store_configured=False)
        with patch("src.cli.get_settings", return_value=settings):
            result = runner.invoke(main, ["health"])

        assert result.exit_code == 1

    def test_blob_store_checked_when_configured(self, runner, mock_db):
        store = MagicMock()
        store.health_check = AsyncMock(return_value=False)
        settings = MagicMock(blob_store_configured=True)
        with (
            patch("src.cli.get_settings", return_value=settings),
            patch("src.storage.blob_store.S3BlobStore", return_value=store),
        ):
            result = runner.invoke(main, ["health"])

        assert result.exit_code == 1
        assert "blob_store: False" in result.output
