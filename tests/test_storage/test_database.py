"""Tests for Database helpers that need no live PostgreSQL."""

from unittest.mock import AsyncMock, patch

import pytest

from src.storage.database import Database, affected_rows


class TestAffectedRows:
    @pytest.mark.parametrize(
        "status,expected",
        [
            ("UPDATE 3", 3),
            ("DELETE 0", 0),
            ("INSERT 0 1", 1),
            ("", 0),
            (None, 0),
        ],
    )
    def test_parses_status(self, status, expected) -> None:
        assert affected_rows(status) == expected


class TestDatabase:
    def test_pool_requires_connect(self) -> None:
        db = Database(database_url="postgresql://localhost/none")
        with pytest.raises(RuntimeError, match="not connected"):
            _ = db.pool

    @pytest.mark.asyncio
    async def test_health_check_false_when_not_connected(self) -> None:
        db = Database(database_url="postgresql://localhost/none")
        assert await db.health_check() is False

    @pytest.mark.asyncio
    async def test_connect_passes_pool_limits(self) -> None:
        pool = AsyncMock()
        with patch("src.storage.database.asyncpg.create_pool", AsyncMock(return_value=pool)) as create:
            db = Database(
                database_url="postgresql://localhost/none",
                min_size=1,
                max_size=3,
                command_timeout=5.0,
            )
            await db.connect()
            await db.close()

        kwargs = create.await_args.kwargs
        assert (kwargs["min_size"], kwargs["max_size"], kwargs["command_timeout"]) == (1, 3, 5.0)
        pool.close.assert_awaited_once()
        with pytest.raises(RuntimeError):
            _ = db.pool
