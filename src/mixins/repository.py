"""Mixins repository for mixin and mixin setting CRUD."""

import logging
from typing import Any

from src.mixins.schemas import Mixin, MixinFilter, MixinSetting, MixinStatus, MixinType
from src.storage.database import Database, affected_rows

logger = logging.getLogger(__name__)

_CREATE_TABLES_SQL = """
CREATE TABLE IF NOT EXISTS mixins (
    id               TEXT PRIMARY KEY,
    concat_types     TEXT[] NOT NULL DEFAULT '{}',
    order_percentage INTEGER NOT NULL
        CHECK (order_percentage BETWEEN 0 AND 100),
    type             TEXT NOT NULL,
    status           TEXT NOT NULL DEFAULT 'HIDDEN',
    text             TEXT,
    link_url         TEXT,
    link_text        TEXT,
    post_id          TEXT,
    media_id         TEXT REFERENCES media(id) ON DELETE SET NULL,
    created_at       TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at       TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS idx_mixins_concat_types ON mixins USING GIN (concat_types);
CREATE INDEX IF NOT EXISTS idx_mixins_status ON mixins(status);

CREATE TABLE IF NOT EXISTS mixin_settings (
    id              TEXT PRIMARY KEY,
    concat_type     TEXT NOT NULL UNIQUE,
    amount_per_page INTEGER NOT NULL CHECK (amount_per_page >= 0),
    created_at      TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at      TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
"""

_MIXIN_COLUMNS = (
    "concat_types",
    "order_percentage",
    "type",
    "status",
    "text",
    "link_url",
    "link_text",
    "post_id",
    "media_id",
)


def _row_to_mixin(row: Any) -> Mixin:
    """Convert an asyncpg Record to a Mixin."""
    return Mixin(
        id=row["id"],
        concat_types=list(row["concat_types"] or []),
        order_percentage=row["order_percentage"],
        type=MixinType(row["type"]),
        status=MixinStatus(row["status"]),
        text=row["text"],
        link_url=row["link_url"],
        link_text=row["link_text"],
        post_id=row["post_id"],
        media_id=row["media_id"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _row_to_setting(row: Any) -> MixinSetting:
    """Convert an asyncpg Record to a MixinSetting."""
    return MixinSetting(
        id=row["id"],
        concat_type=row["concat_type"],
        amount_per_page=row["amount_per_page"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _db_value(value: Any) -> Any:
    return value.value if isinstance(value, (MixinType, MixinStatus)) else value


class MixinsRepository:
    """Persistence for the ``mixins`` and ``mixin_settings`` tables."""

    def __init__(self, database: Database) -> None:
        self._db = database

    async def create_tables(self) -> None:
        """Create mixin tables (idempotent). Requires the media table."""
        await self._db.execute(_CREATE_TABLES_SQL)
        logger.info("Mixin tables ensured")

    # ── Mixins ──────────────────────────────────────────────

    async def create(self, mixin: Mixin) -> Mixin:
        sql = """
            INSERT INTO mixins (
                id, concat_types, order_percentage, type, status,
                text, link_url, link_text, post_id, media_id,
                created_at, updated_at
            ) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12)
            RETURNING *
        """
        row = await self._db.fetchrow(
            sql,
            mixin.id,
            mixin.concat_types,
            mixin.order_percentage,
            mixin.type.value,
            mixin.status.value,
            mixin.text,
            mixin.link_url,
            mixin.link_text,
            mixin.post_id,
            mixin.media_id,
            mixin.created_at,
            mixin.updated_at,
        )
        return _row_to_mixin(row)

    async def get(self, mixin_id: str) -> Mixin | None:
        row = await self._db.fetchrow("SELECT * FROM mixins WHERE id = $1", mixin_id)
        return _row_to_mixin(row) if row else None

    async def update(self, mixin_id: str, fields: dict[str, Any]) -> Mixin | None:
        """Overwrite the given columns; returns None if the mixin does not exist."""
        unknown = set(fields) - set(_MIXIN_COLUMNS)
        if unknown:
            raise ValueError(f"Cannot update columns: {', '.join(sorted(unknown))}")

        assignments = ["updated_at = NOW()"]
        params: list[Any] = [mixin_id]
        for column, value in fields.items():
            params.append(_db_value(value))
            assignments.append(f"{column} = ${len(params)}")

        row = await self._db.fetchrow(
            f"UPDATE mixins SET {', '.join(assignments)} WHERE id = $1 RETURNING *",
            *params,
        )
        return _row_to_mixin(row) if row else None

    async def delete(self, mixin_id: str) -> Mixin | None:
        """Delete a mixin and return the row as it was."""
        row = await self._db.fetchrow(
            "DELETE FROM mixins WHERE id = $1 RETURNING *",
            mixin_id,
        )
        return _row_to_mixin(row) if row else None

    async def list_mixins(self, filters: MixinFilter) -> tuple[list[Mixin], int]:
        """Page of mixins by priority, plus the total matching count."""
        conditions: list[str] = []
        params: list[Any] = []
        param_idx = 1

        if filters.concat_types:
            conditions.append(f"concat_types && ${param_idx}::text[]")
            params.append(filters.concat_types)
            param_idx += 1
        if filters.type is not None:
            conditions.append(f"type = ${param_idx}")
            params.append(filters.type.value)
            param_idx += 1
        if filters.status is not None:
            conditions.append(f"status = ${param_idx}")
            params.append(filters.status.value)
            param_idx += 1

        where_clause = ""
        if conditions:
            where_clause = "WHERE " + " AND ".join(conditions)

        total = await self._db.fetchval(f"SELECT COUNT(*) FROM mixins {where_clause}", *params)
        rows = await self._db.fetch(
            f"""
            SELECT * FROM mixins
            {where_clause}
            ORDER BY order_percentage DESC, id
            LIMIT ${param_idx} OFFSET ${param_idx + 1}
            """,
            *params,
            filters.limit,
            filters.offset,
        )
        return [_row_to_mixin(row) for row in rows], total or 0

    async def list_visible_for(self, concat_type: str) -> list[Mixin]:
        """Every VISIBLE mixin eligible for a listing context."""
        rows = await self._db.fetch(
            """
            SELECT * FROM mixins
            WHERE status = $1 AND $2 = ANY(concat_types)
            ORDER BY order_percentage DESC, id
            """,
            MixinStatus.VISIBLE.value,
            concat_type,
        )
        return [_row_to_mixin(row) for row in rows]

    # ── Settings ────────────────────────────────────────────

    async def create_setting(self, setting: MixinSetting) -> MixinSetting | None:
        """Insert a setting; returns None if the concat type already has one."""
        row = await self._db.fetchrow(
            """
            INSERT INTO mixin_settings (id, concat_type, amount_per_page, created_at, updated_at)
            VALUES ($1, $2, $3, $4, $5)
            ON CONFLICT (concat_type) DO NOTHING
            RETURNING *
            """,
            setting.id,
            setting.concat_type,
            setting.amount_per_page,
            setting.created_at,
            setting.updated_at,
        )
        return _row_to_setting(row) if row else None

    async def get_setting(self, concat_type: str) -> MixinSetting | None:
        row = await self._db.fetchrow(
            "SELECT * FROM mixin_settings WHERE concat_type = $1",
            concat_type,
        )
        return _row_to_setting(row) if row else None

    async def update_setting(self, setting_id: str, amount_per_page: int) -> MixinSetting | None:
        row = await self._db.fetchrow(
            """
            UPDATE mixin_settings
            SET amount_per_page = $2, updated_at = NOW()
            WHERE id = $1
            RETURNING *
            """,
            setting_id,
            amount_per_page,
        )
        return _row_to_setting(row) if row else None

    async def delete_setting(self, setting_id: str) -> bool:
        status = await self._db.execute("DELETE FROM mixin_settings WHERE id = $1", setting_id)
        return affected_rows(status) > 0

    async def list_settings(self) -> list[MixinSetting]:
        rows = await self._db.fetch("SELECT * FROM mixin_settings ORDER BY concat_type")
        return [_row_to_setting(row) for row in rows]
