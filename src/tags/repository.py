"""Tags repository. The ``tags`` table must exist before ``post_tags``."""

import logging
from typing import Any

from src.errors import NotFoundError
from src.storage.database import Database, affected_rows
from src.tags.schemas import Tag

logger = logging.getLogger(__name__)

_CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS tags (
    id         TEXT PRIMARY KEY,
    name       TEXT NOT NULL UNIQUE,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
"""

# Re-submitting an existing name returns the stored tag unchanged
_UPSERT_SQL = """
INSERT INTO tags (id, name, created_at, updated_at)
VALUES ($1, $2, $3, $4)
ON CONFLICT (name) DO UPDATE SET name = EXCLUDED.name
RETURNING *
"""


def _row_to_tag(row: Any) -> Tag:
    """Convert an asyncpg Record to a Tag."""
    return Tag(
        id=row["id"],
        name=row["name"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class TagsRepository:
    """Batch CRUD for the ``tags`` table."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def create_table(self) -> None:
        await self._db.execute(_CREATE_TABLE_SQL)
        logger.info("Tags table ensured")

    async def create_many(self, tags: list[Tag]) -> list[Tag]:
        """Insert tags in one transaction; names that already exist are reused."""
        created: list[Tag] = []
        async with self._db.transaction() as conn:
            for tag in tags:
                row = await conn.fetchrow(
                    _UPSERT_SQL, tag.id, tag.name, tag.created_at, tag.updated_at
                )
                created.append(_row_to_tag(row))
        return created

    async def rename_many(self, renames: list[tuple[str, str]]) -> list[Tag]:
        """
        Rename tags in one transaction.

        Raises:
            NotFoundError: an id does not exist; no tag is renamed
        """
        renamed: list[Tag] = []
        async with self._db.transaction() as conn:
            for tag_id, name in renames:
                row = await conn.fetchrow(
                    "UPDATE tags SET name = $2, updated_at = NOW() WHERE id = $1 RETURNING *",
                    tag_id,
                    name,
                )
                if row is None:
                    raise NotFoundError("Tag", tag_id)
                renamed.append(_row_to_tag(row))
        return renamed

    async def delete_many(self, tag_ids: list[str]) -> int:
        """Delete tags; their ``post_tags`` links go with them (ON DELETE CASCADE)."""
        if not tag_ids:
            return 0
        status = await self._db.execute(
            "DELETE FROM tags WHERE id = ANY($1::text[])",
            tag_ids,
        )
        return affected_rows(status)

    async def list_all(self) -> list[Tag]:
        rows = await self._db.fetch("SELECT * FROM tags ORDER BY name")
        return [_row_to_tag(row) for row in rows]

    async def existing_ids(self, tag_ids: list[str]) -> set[str]:
        if not tag_ids:
            return set()
        rows = await self._db.fetch(
            "SELECT id FROM tags WHERE id = ANY($1::text[])",
            tag_ids,
        )
        return {row["id"] for row in rows}
