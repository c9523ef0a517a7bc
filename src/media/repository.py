"""Database repository for media records and owner slot pointers."""

import logging
from typing import Any

from src.media.schemas import Media, OwnerKind, OwnerSlot
from src.storage.database import Database

logger = logging.getLogger(__name__)

_CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS media (
    id            TEXT PRIMARY KEY,
    original_name TEXT NOT NULL,
    mime_type     TEXT NOT NULL,
    size          BIGINT NOT NULL,
    encoding      TEXT NOT NULL DEFAULT '7bit',
    storage_key   TEXT NOT NULL UNIQUE,
    owner_kind    TEXT,
    owner_id      TEXT,
    created_at    TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS idx_media_owner
    ON media(owner_kind, owner_id);
"""

_INSERT_SQL = """
INSERT INTO media (
    id, original_name, mime_type, size, encoding,
    storage_key, owner_kind, owner_id, created_at
) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9)
"""

# Table holding the media_id pointer for each owner kind
_SLOT_TABLES: dict[OwnerKind, str] = {
    OwnerKind.DOCUMENT: "posts",
    OwnerKind.BLOCK: "post_blocks",
    OwnerKind.MIXIN: "mixins",
}


def _row_to_media(row: Any) -> Media:
    """Convert an asyncpg Record to a Media."""
    owner_kind = row["owner_kind"]
    return Media(
        id=row["id"],
        original_name=row["original_name"],
        mime_type=row["mime_type"],
        size=row["size"],
        encoding=row["encoding"],
        storage_key=row["storage_key"],
        owner_kind=OwnerKind(owner_kind) if owner_kind else None,
        owner_id=row["owner_id"],
        created_at=row["created_at"],
    )


def _media_params(media: Media) -> tuple:
    return (
        media.id,
        media.original_name,
        media.mime_type,
        media.size,
        media.encoding,
        media.storage_key,
        media.owner_kind.value if media.owner_kind else None,
        media.owner_id,
        media.created_at,
    )


class MediaRepository:
    """CRUD for the media table.

    Every write that touches an owner's ``media_id`` pointer runs in one
    transaction with the media row change, so a slot is never observed
    pointing at a deleted record or at two records.
    """

    def __init__(self, database: Database) -> None:
        self._db = database

    async def create_table(self) -> None:
        """Create the media table (idempotent). Must run before owner tables."""
        await self._db.execute(_CREATE_TABLE_SQL)
        logger.info("Media table ensured")

    async def get(self, media_id: str) -> Media | None:
        row = await self._db.fetchrow("SELECT * FROM media WHERE id = $1", media_id)
        return _row_to_media(row) if row else None

    async def get_many(self, media_ids: list[str]) -> dict[str, Media]:
        """Fetch several records keyed by id; unknown ids are absent."""
        if not media_ids:
            return {}
        rows = await self._db.fetch(
            "SELECT * FROM media WHERE id = ANY($1::text[])",
            list(set(media_ids)),
        )
        return {row["id"]: _row_to_media(row) for row in rows}

    async def get_for_slot(self, slot: OwnerSlot) -> Media | None:
        """Return the live media of a slot, if any."""
        row = await self._db.fetchrow(
            """
            SELECT * FROM media
            WHERE owner_kind = $1 AND owner_id = $2
            ORDER BY created_at DESC
            LIMIT 1
            """,
            slot.kind.value,
            slot.owner_id,
        )
        return _row_to_media(row) if row else None

    async def swap(
        self,
        slot: OwnerSlot,
        new: Media | None,
        old_id: str | None,
    ) -> None:
        """
        Atomically make ``new`` the media of ``slot`` and drop ``old_id``.

        Inserts the new record, repoints the owner row, then deletes the
        old record, all in one transaction. ``new=None`` just clears the
        slot. The owner row may not exist yet (a block being created in
        the same batch); the pointer update then touches nothing and the
        owner is saved later with the id.
        """
        table = _SLOT_TABLES[slot.kind]
        async with self._db.transaction() as conn:
            if new is not None:
                await conn.execute(_INSERT_SQL, *_media_params(new))
            await conn.execute(
                f"UPDATE {table} SET media_id = $1 WHERE id = $2",
                new.id if new is not None else None,
                slot.owner_id,
            )
            if old_id is not None and (new is None or old_id != new.id):
                await conn.execute("DELETE FROM media WHERE id = $1", old_id)

    async def delete(self, media_id: str) -> Media | None:
        """Delete one record; owner pointers clear through ON DELETE SET NULL."""
        row = await self._db.fetchrow(
            "DELETE FROM media WHERE id = $1 RETURNING *",
            media_id,
        )
        return _row_to_media(row) if row else None

    async def delete_owned(
        self,
        conn: Any,
        kind: OwnerKind,
        owner_ids: list[str],
    ) -> list[Media]:
        """
        Delete every record owned by the given owners inside a caller's transaction.

        Used by cascading deletes so record removal commits together with
        the owners themselves.
        """
        if not owner_ids:
            return []
        rows = await conn.fetch(
            """
            DELETE FROM media
            WHERE owner_kind = $1 AND owner_id = ANY($2::text[])
            RETURNING *
            """,
            kind.value,
            owner_ids,
        )
        return [_row_to_media(row) for row in rows]
