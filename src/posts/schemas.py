"""Data models for documents, blocks and block deltas."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from src.media.schemas import Media
from src.patch import UNSET, Maybe


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


class PostStatus(str, Enum):
    HIDDEN = "HIDDEN"
    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"


class BlockKind(str, Enum):
    RICH_TEXT = "RICH_TEXT"
    MEDIA = "MEDIA"


@dataclass
class Block:
    """One ordered unit of a document body.

    ``content`` is meaningful for RICH_TEXT blocks and ``media_id`` for
    MEDIA blocks; the other field is carried but ignored by renderers.
    """

    document_id: str
    order: int
    kind: BlockKind
    content: str | None = None
    media_id: str | None = None
    id: str = field(default_factory=_new_id)
    media: Media | None = None
    created_at: datetime = field(default_factory=_utc_now)
    updated_at: datetime = field(default_factory=_utc_now)


@dataclass
class Document:
    """A post: metadata, tags, optional primary media and ordered blocks."""

    title: str
    creator_id: str
    short_description: str = ""
    status: PostStatus = PostStatus.DRAFT
    tag_ids: list[str] = field(default_factory=list)
    media_id: str | None = None
    blocks: list[Block] = field(default_factory=list)
    id: str = field(default_factory=_new_id)
    created_at: datetime = field(default_factory=_utc_now)
    updated_at: datetime = field(default_factory=_utc_now)
    deleted_at: datetime | None = None
    feed_source_id: str | None = None
    natural_key: str | None = None
    media: Media | None = None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


# ── Block deltas ────────────────────────────────────────────


@dataclass
class CreateBlock:
    kind: BlockKind
    order: int
    content: str | None = None
    file_ref: str | None = None

    action = "create"


@dataclass
class UpdateBlock:
    """Partial update of one block.

    Every field defaults to UNSET (leave untouched). ``file_ref=None``
    clears the block's media; a string replaces it with that upload.
    """

    block_id: str
    kind: Maybe[BlockKind] = UNSET
    content: Maybe[str | None] = UNSET
    order: Maybe[int] = UNSET
    file_ref: Maybe[str | None] = UNSET

    action = "update"


@dataclass
class DeleteBlock:
    block_id: str

    action = "delete"


BlockDelta = CreateBlock | UpdateBlock | DeleteBlock


@dataclass
class DeltaError:
    """A failed delta; siblings in the batch still apply."""

    index: int
    action: str
    code: str
    message: str
    block_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "action": self.action,
            "code": self.code,
            "message": self.message,
            "block_id": self.block_id,
        }


@dataclass
class ReconcileResult:
    blocks: list[Block]
    deleted_ids: list[str] = field(default_factory=list)
    created_ids: list[str] = field(default_factory=list)
    updated_ids: list[str] = field(default_factory=list)
    # Media attached to blocks created in this batch; their owner rows
    # only exist once the blocks are saved.
    created_media_ids: list[str] = field(default_factory=list)
    errors: list[DeltaError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


# ── Service requests and responses ──────────────────────────


@dataclass
class NewPost:
    title: str
    creator_id: str
    short_description: str = ""
    status: PostStatus = PostStatus.DRAFT
    tag_ids: list[str] = field(default_factory=list)
    media_ref: str | None = None
    blocks: list[CreateBlock] = field(default_factory=list)


@dataclass
class PostPatch:
    """Document-level fields of an update; UNSET means untouched."""

    title: Maybe[str] = UNSET
    short_description: Maybe[str] = UNSET
    status: Maybe[PostStatus] = UNSET
    tag_ids: Maybe[list[str]] = UNSET
    media_ref: Maybe[str | None] = UNSET
    deleted_at: Maybe[datetime | None] = UNSET


SORTABLE_FIELDS = ("created_at", "updated_at", "title", "status")


@dataclass
class ListOptions:
    page: int = 1
    limit: int = 10
    search: str | None = None
    tag_ids: list[str] = field(default_factory=list)
    status: PostStatus | None = None
    creator_id: str | None = None
    include_deleted: bool = False
    sort_by: str = "created_at"
    sort_order: str = "desc"
    mixin_concat_type: str | None = None

    def __post_init__(self) -> None:
        if self.page < 1:
            raise ValueError(f"page must be >= 1, got {self.page}")
        if self.limit < 1:
            raise ValueError(f"limit must be >= 1, got {self.limit}")
        if self.sort_by not in SORTABLE_FIELDS:
            raise ValueError(
                f"sort_by must be one of {', '.join(SORTABLE_FIELDS)}, got {self.sort_by!r}"
            )
        self.sort_order = self.sort_order.lower()
        if self.sort_order not in ("asc", "desc"):
            raise ValueError(f"sort_order must be 'asc' or 'desc', got {self.sort_order!r}")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass
class PaginationMeta:
    count: int
    limit: int
    page: int
    total_pages: int

    @classmethod
    def build(cls, count: int, limit: int, page: int) -> "PaginationMeta":
        return cls(count=count, limit=limit, page=page, total_pages=-(-count // limit))


@dataclass
class PostPage:
    items: list[Document]
    pagination: PaginationMeta
    mixins: list[Any] | None = None


@dataclass
class UpdateOutcome:
    document: Document
    errors: list[DeltaError] = field(default_factory=list)
