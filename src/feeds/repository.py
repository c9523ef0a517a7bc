"""Feed sources repository.

Mappings live in their own table keyed by (source_id, position) and are
always written together with their source.
"""

import json
import logging
from typing import Any

from src.feeds.schemas import FeedSource, FieldMapping
from src.storage.database import Database, affected_rows

logger = logging.getLogger(__name__)

_CREATE_TABLES_SQL = """
CREATE TABLE IF NOT EXISTS feed_sources (
    id          TEXT PRIMARY KEY,
    url         TEXT NOT NULL,
    interval_seconds INTEGER NOT NULL CHECK (interval_seconds > 0),
    is_stopped  BOOLEAN NOT NULL DEFAULT FALSE,
    creator_id  TEXT NOT NULL,
    created_at  TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at  TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS idx_feed_sources_creator ON feed_sources(creator_id);
CREATE INDEX IF NOT EXISTS idx_feed_sources_active
    ON feed_sources(is_stopped) WHERE is_stopped = FALSE;

CREATE TABLE IF NOT EXISTS feed_field_mappings (
    source_id      TEXT NOT NULL REFERENCES feed_sources(id) ON DELETE CASCADE,
    position       INTEGER NOT NULL,
    internal_field TEXT NOT NULL,
    external_field TEXT NOT NULL,
    PRIMARY KEY (source_id, position)
);
"""

_SELECT_SOURCE = """
SELECT s.*,
       COALESCE(
           (SELECT json_agg(json_build_object(
                'internal_field', m.internal_field,
                'external_field', m.external_field
            ) ORDER BY m.position)::text
            FROM feed_field_mappings m WHERE m.source_id = s.id),
           '[]'
       ) AS mappings
FROM feed_sources s
"""

# Patch field -> column
_COLUMNS = {"url": "url", "interval": "interval_seconds", "is_stopped": "is_stopped"}


def _row_to_source(row: Any) -> FeedSource:
    """Convert an asyncpg Record to a FeedSource."""
    raw = row["mappings"]
    mappings = json.loads(raw) if isinstance(raw, str) else (raw or [])
    return FeedSource(
        id=row["id"],
        url=row["url"],
        interval=row["interval_seconds"],
        is_stopped=row["is_stopped"],
        creator_id=row["creator_id"],
        mappings=[FieldMapping(**m) for m in mappings],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


async def _replace_mappings(conn: Any, source_id: str, mappings: list[FieldMapping]) -> None:
    await conn.execute("DELETE FROM feed_field_mappings WHERE source_id = $1", source_id)
    if mappings:
        await conn.executemany(
            """
            INSERT INTO feed_field_mappings (source_id, position, internal_field, external_field)
            VALUES ($1, $2, $3, $4)
            """,
            [
                (source_id, pos, m.internal_field, m.external_field)
                for pos, m in enumerate(mappings)
            ],
        )


class FeedSourcesRepository:
    """CRUD for feed sources and their field mappings."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def create_tables(self) -> None:
        """Create feed tables (idempotent)."""
        await self._db.execute(_CREATE_TABLES_SQL)
        logger.info("Feed source tables ensured")

    async def create(self, source: FeedSource) -> FeedSource:
        async with self._db.transaction() as conn:
            await conn.execute(
                """
                INSERT INTO feed_sources (
                    id, url, interval_seconds, is_stopped, creator_id, created_at, updated_at
                ) VALUES ($1, $2, $3, $4, $5, $6, $7)
                """,
                source.id,
                source.url,
                source.interval,
                source.is_stopped,
                source.creator_id,
                source.created_at,
                source.updated_at,
            )
            await _replace_mappings(conn, source.id, source.mappings)
        return source

    async def get(self, source_id: str) -> FeedSource | None:
        row = await self._db.fetchrow(_SELECT_SOURCE + "WHERE s.id = $1", source_id)
        return _row_to_source(row) if row else None

    async def list_by_creator(self, creator_id: str) -> list[FeedSource]:
        rows = await self._db.fetch(
            _SELECT_SOURCE + "WHERE s.creator_id = $1 ORDER BY s.created_at DESC",
            creator_id,
        )
        return [_row_to_source(row) for row in rows]

    async def list_all(self) -> list[FeedSource]:
        rows = await self._db.fetch(_SELECT_SOURCE + "ORDER BY s.created_at DESC")
        return [_row_to_source(row) for row in rows]

    async def list_active(self) -> list[FeedSource]:
        """Every source that should have a polling task."""
        rows = await self._db.fetch(
            _SELECT_SOURCE + "WHERE s.is_stopped = FALSE ORDER BY s.created_at"
        )
        return [_row_to_source(row) for row in rows]

    async def update(
        self,
        source_id: str,
        fields: dict[str, Any],
        mappings: list[FieldMapping] | None = None,
    ) -> FeedSource | None:
        """Overwrite columns and optionally the mapping list; None if missing."""
        unknown = set(fields) - set(_COLUMNS)
        if unknown:
            raise ValueError(f"Cannot update columns: {', '.join(sorted(unknown))}")

        assignments = ["updated_at = NOW()"]
        params: list[Any] = [source_id]
        for name, value in fields.items():
            params.append(value)
            assignments.append(f"{_COLUMNS[name]} = ${len(params)}")

        async with self._db.transaction() as conn:
            status = await conn.execute(
                f"UPDATE feed_sources SET {', '.join(assignments)} WHERE id = $1",
                *params,
            )
            if affected_rows(status) == 0:
                return None
            if mappings is not None:
                await _replace_mappings(conn, source_id, mappings)

        return await self.get(source_id)

    async def delete(self, source_id: str) -> bool:
        status = await self._db.execute("DELETE FROM feed_sources WHERE id = $1", source_id)
        return affected_rows(status) > 0
