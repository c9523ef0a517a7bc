"""Posts repository: documents, their blocks and tag references.

Block ``order`` is stored as ``sort_order``. The (document_id, sort_order)
uniqueness constraint is deferred to commit so a batch save can move
blocks through colliding intermediate positions.
"""

import logging
from typing import Any

from src.media.repository import MediaRepository
from src.media.schemas import Media, OwnerKind
from src.posts.schemas import Block, BlockKind, Document, ListOptions, PostStatus
from src.storage.database import Database, affected_rows

logger = logging.getLogger(__name__)

_CREATE_TABLES_SQL = """
CREATE TABLE IF NOT EXISTS posts (
    id                TEXT PRIMARY KEY,
    title             TEXT NOT NULL,
    short_description TEXT NOT NULL DEFAULT '',
    status            TEXT NOT NULL DEFAULT 'DRAFT',
    creator_id        TEXT NOT NULL,
    media_id          TEXT REFERENCES media(id) ON DELETE SET NULL,
    feed_source_id    TEXT,
    natural_key       TEXT,
    created_at        TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at        TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    deleted_at        TIMESTAMPTZ
);

CREATE INDEX IF NOT EXISTS idx_posts_status ON posts(status);
CREATE INDEX IF NOT EXISTS idx_posts_creator ON posts(creator_id);
CREATE INDEX IF NOT EXISTS idx_posts_created_at ON posts(created_at DESC);
CREATE UNIQUE INDEX IF NOT EXISTS idx_posts_feed_natural_key
    ON posts(feed_source_id, natural_key);

CREATE TABLE IF NOT EXISTS post_blocks (
    id          TEXT PRIMARY KEY,
    document_id TEXT NOT NULL REFERENCES posts(id) ON DELETE CASCADE,
    sort_order  INTEGER NOT NULL CHECK (sort_order > 0),
    kind        TEXT NOT NULL,
    content     TEXT,
    media_id    TEXT REFERENCES media(id) ON DELETE SET NULL,
    created_at  TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at  TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    CONSTRAINT uq_post_blocks_order UNIQUE (document_id, sort_order)
        DEFERRABLE INITIALLY DEFERRED
);

CREATE INDEX IF NOT EXISTS idx_post_blocks_document ON post_blocks(document_id);

CREATE TABLE IF NOT EXISTS post_tags (
    post_id  TEXT NOT NULL REFERENCES posts(id) ON DELETE CASCADE,
    tag_id   TEXT NOT NULL REFERENCES tags(id) ON DELETE CASCADE,
    position INTEGER NOT NULL,
    PRIMARY KEY (post_id, tag_id)
);

CREATE INDEX IF NOT EXISTS idx_post_tags_tag ON post_tags(tag_id);
"""

# Tag ids come back as one ordered array column
_SELECT_DOCUMENT = """
SELECT p.*,
       COALESCE(
           (SELECT array_agg(t.tag_id ORDER BY t.position)
            FROM post_tags t WHERE t.post_id = p.id),
           '{}'
       ) AS tag_ids
FROM posts p
"""

_INSERT_DOCUMENT_SQL = """
INSERT INTO posts (
    id, title, short_description, status, creator_id, media_id,
    feed_source_id, natural_key, created_at, updated_at, deleted_at
) VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11)
"""

_UPSERT_BLOCK_SQL = """
INSERT INTO post_blocks (
    id, document_id, sort_order, kind, content, media_id, created_at, updated_at
) VALUES ($1, $2, $3, $4, $5, $6, $7, NOW())
ON CONFLICT (id) DO UPDATE SET
    sort_order = EXCLUDED.sort_order,
    kind = EXCLUDED.kind,
    content = EXCLUDED.content,
    media_id = EXCLUDED.media_id,
    updated_at = NOW()
"""

# Document columns a patch may write
_UPDATABLE_COLUMNS = ("title", "short_description", "status", "media_id", "deleted_at")


def _row_to_block(row: Any) -> Block:
    """Convert an asyncpg Record to a Block."""
    return Block(
        id=row["id"],
        document_id=row["document_id"],
        order=row["sort_order"],
        kind=BlockKind(row["kind"]),
        content=row["content"],
        media_id=row["media_id"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _row_to_document(row: Any, blocks: list[Block] | None = None) -> Document:
    """Convert an asyncpg Record to a Document."""
    return Document(
        id=row["id"],
        title=row["title"],
        short_description=row["short_description"],
        status=PostStatus(row["status"]),
        creator_id=row["creator_id"],
        media_id=row["media_id"],
        tag_ids=list(row["tag_ids"] or []),
        blocks=blocks or [],
        feed_source_id=row["feed_source_id"],
        natural_key=row["natural_key"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        deleted_at=row["deleted_at"],
    )


def _document_params(doc: Document) -> tuple:
    return (
        doc.id,
        doc.title,
        doc.short_description,
        doc.status.value,
        doc.creator_id,
        doc.media_id,
        doc.feed_source_id,
        doc.natural_key,
        doc.created_at,
        doc.updated_at,
        doc.deleted_at,
    )


def _block_params(block: Block) -> tuple:
    return (
        block.id,
        block.document_id,
        block.order,
        block.kind.value,
        block.content,
        block.media_id,
        block.created_at,
    )


async def _replace_tags(conn: Any, document_id: str, tag_ids: list[str]) -> None:
    await conn.execute("DELETE FROM post_tags WHERE post_id = $1", document_id)
    unique = list(dict.fromkeys(tag_ids))
    if unique:
        await conn.executemany(
            "INSERT INTO post_tags (post_id, tag_id, position) VALUES ($1, $2, $3)",
            [(document_id, tag_id, pos) for pos, tag_id in enumerate(unique)],
        )


class PostsRepository:
    """Persistence for documents, blocks and tags.

    Writes that span several tables (create, batch update, cascading
    delete, feed ingestion) each run in a single transaction.
    """

    def __init__(self, database: Database, media_repository: MediaRepository) -> None:
        self._db = database
        self._media_repo = media_repository

    async def create_tables(self) -> None:
        """Create posts tables (idempotent). Requires the media and tags tables."""
        await self._db.execute(_CREATE_TABLES_SQL)
        logger.info("Posts tables ensured")

    async def insert_document(self, doc: Document) -> None:
        """Insert a document with its tags and blocks."""
        async with self._db.transaction() as conn:
            await conn.execute(_INSERT_DOCUMENT_SQL, *_document_params(doc))
            await _replace_tags(conn, doc.id, doc.tag_ids)
            if doc.blocks:
                await conn.executemany(_UPSERT_BLOCK_SQL, [_block_params(b) for b in doc.blocks])

    async def get_document(self, document_id: str) -> Document | None:
        """Fetch a document with its blocks ordered by position."""
        row = await self._db.fetchrow(_SELECT_DOCUMENT + "WHERE p.id = $1", document_id)
        if row is None:
            return None
        block_rows = await self._db.fetch(
            "SELECT * FROM post_blocks WHERE document_id = $1 ORDER BY sort_order, created_at",
            document_id,
        )
        return _row_to_document(row, [_row_to_block(r) for r in block_rows])

    async def apply_update(
        self,
        document_id: str,
        fields: dict[str, Any],
        tag_ids: list[str] | None,
        deleted_block_ids: list[str],
        blocks: list[Block],
    ) -> list[Media] | None:
        """
        Persist one reconciled update in a single transaction.

        Media owned by the deleted blocks is deleted in the same transaction,
        so a failed save leaves those blocks and their media intact.

        Args:
            document_id: Document being updated
            fields: Document columns to overwrite (subset of the updatable ones)
            tag_ids: Replacement tag list, or None to keep the current tags
            deleted_block_ids: Blocks removed by the batch
            blocks: Final block sequence (upserted)

        Returns:
            The deleted media records (their blobs are still in the store),
            or None if the document does not exist.
        """
        unknown = set(fields) - set(_UPDATABLE_COLUMNS)
        if unknown:
            raise ValueError(f"Cannot update columns: {', '.join(sorted(unknown))}")

        assignments = ["updated_at = NOW()"]
        params: list[Any] = [document_id]
        for column, value in fields.items():
            params.append(value.value if isinstance(value, PostStatus) else value)
            assignments.append(f"{column} = ${len(params)}")

        async with self._db.transaction() as conn:
            status = await conn.execute(
                f"UPDATE posts SET {', '.join(assignments)} WHERE id = $1",
                *params,
            )
            if affected_rows(status) == 0:
                return None

            if tag_ids is not None:
                await _replace_tags(conn, document_id, tag_ids)
            released = await self._media_repo.delete_owned(
                conn, OwnerKind.BLOCK, deleted_block_ids
            )
            if deleted_block_ids:
                await conn.execute(
                    "DELETE FROM post_blocks WHERE document_id = $1 AND id = ANY($2::text[])",
                    document_id,
                    deleted_block_ids,
                )
            if blocks:
                await conn.executemany(_UPSERT_BLOCK_SQL, [_block_params(b) for b in blocks])
        return released

    async def delete_document(self, document_id: str) -> list[Media] | None:
        """
        Hard-delete a document, its blocks and every media record they own.

        Returns:
            The deleted media records (their blobs are still in the store),
            or None if the document does not exist.
        """
        async with self._db.transaction() as conn:
            exists = await conn.fetchval(
                "SELECT id FROM posts WHERE id = $1 FOR UPDATE",
                document_id,
            )
            if exists is None:
                return None

            block_ids = [
                r["id"]
                for r in await conn.fetch(
                    "SELECT id FROM post_blocks WHERE document_id = $1",
                    document_id,
                )
            ]
            released = await self._media_repo.delete_owned(conn, OwnerKind.BLOCK, block_ids)
            released += await self._media_repo.delete_owned(
                conn, OwnerKind.DOCUMENT, [document_id]
            )
            await conn.execute("DELETE FROM posts WHERE id = $1", document_id)
        return released

    async def list_documents(self, options: ListOptions) -> tuple[list[Document], int]:
        """Filtered, sorted page of documents (without blocks) plus the total count."""
        conditions: list[str] = []
        params: list[Any] = []
        param_idx = 1

        if not options.include_deleted:
            conditions.append("p.deleted_at IS NULL")
        if options.search:
            conditions.append(f"p.title ILIKE ${param_idx}")
            params.append(f"%{options.search}%")
            param_idx += 1
        if options.status is not None:
            conditions.append(f"p.status = ${param_idx}")
            params.append(options.status.value)
            param_idx += 1
        if options.creator_id:
            conditions.append(f"p.creator_id = ${param_idx}")
            params.append(options.creator_id)
            param_idx += 1
        if options.tag_ids:
            conditions.append(
                "EXISTS (SELECT 1 FROM post_tags t "
                f"WHERE t.post_id = p.id AND t.tag_id = ANY(${param_idx}::text[]))"
            )
            params.append(options.tag_ids)
            param_idx += 1

        where_clause = ""
        if conditions:
            where_clause = "WHERE " + " AND ".join(conditions)

        total = await self._db.fetchval(
            f"SELECT COUNT(*) FROM posts p {where_clause}",
            *params,
        )

        # sort_by is whitelisted by ListOptions
        direction = "ASC" if options.sort_order == "asc" else "DESC"
        sql = f"""
            {_SELECT_DOCUMENT}
            {where_clause}
            ORDER BY p.{options.sort_by} {direction}, p.id
            LIMIT ${param_idx} OFFSET ${param_idx + 1}
        """
        rows = await self._db.fetch(sql, *params, options.limit, options.offset)
        return [_row_to_document(row) for row in rows], total or 0

    async def search_titles(self, query: str, limit: int = 20) -> list[tuple[str, str]]:
        """(id, title) pairs of live PUBLISHED documents whose title contains ``query``."""
        rows = await self._db.fetch(
            """
            SELECT id, title FROM posts
            WHERE status = $1 AND deleted_at IS NULL AND title ILIKE $2
            ORDER BY created_at DESC
            LIMIT $3
            """,
            PostStatus.PUBLISHED.value,
            f"%{query}%",
            limit,
        )
        return [(row["id"], row["title"]) for row in rows]

    async def insert_ingested(self, docs: list[Document]) -> int:
        """
        Insert feed documents, skipping any whose natural key already exists
        for the same feed source.

        Returns:
            Number of documents actually inserted.
        """
        inserted = 0
        async with self._db.transaction() as conn:
            for doc in docs:
                new_id = await conn.fetchval(
                    _INSERT_DOCUMENT_SQL
                    + " ON CONFLICT (feed_source_id, natural_key) DO NOTHING RETURNING id",
                    *_document_params(doc),
                )
                if new_id is None:
                    continue
                inserted += 1
                if doc.blocks:
                    await conn.executemany(
                        _UPSERT_BLOCK_SQL, [_block_params(b) for b in doc.blocks]
                    )
        return inserted
