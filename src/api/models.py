"""
Request and response models for the content engine API.

Update requests distinguish an absent field from an explicit null
through ``model_fields_set``: absent maps to UNSET (leave untouched),
null maps to None (clear).
"""

import datetime as dt
from typing import Any, Literal

from pydantic import BaseModel, Field, HttpUrl, model_validator

from src.feeds.schemas import FeedDescription, FeedSource, FeedSourcePatch, FieldMapping
from src.media.schemas import Media
from src.mixins.schemas import Mixin, MixinPatch, MixinSetting, MixinStatus, MixinType
from src.patch import UNSET
from src.posts.schemas import (
    Block,
    BlockDelta,
    BlockKind,
    CreateBlock,
    DeleteBlock,
    DeltaError,
    Document,
    PaginationMeta,
    PostPatch,
    PostStatus,
    UpdateBlock,
)
from src.tags.schemas import Tag


def _maybe(model: BaseModel, name: str) -> Any:
    return getattr(model, name) if name in model.model_fields_set else UNSET


def _iso(value: dt.datetime | None) -> str | None:
    return value.isoformat() if value else None


class ErrorResponse(BaseModel):
    """Response model for errors."""

    detail: str = Field(..., description="Error message")
    error_type: str = Field(default="error", description="Error type")


# Health models


class ComponentHealth(BaseModel):
    """Health of one dependency."""

    status: str = Field(..., description="healthy or unhealthy")
    latency_ms: float | None = Field(default=None, description="Check latency")
    details: dict[str, Any] = Field(default_factory=dict)


class HealthResponse(BaseModel):
    """Response model for health check."""

    status: str = Field(
        ...,
        description="Overall service status: healthy, degraded, or unhealthy",
    )
    components: dict[str, ComponentHealth] = Field(default_factory=dict)
    scheduler_running: bool = Field(default=False)
    active_feed_tasks: int = Field(default=0, description="Live feed polling tasks")


# Media


class MediaItem(BaseModel):
    id: str
    original_name: str
    mime_type: str
    size: int
    encoding: str
    url: str | None = Field(default=None, description="Presigned URL (expires)")

    @classmethod
    def from_media(cls, media: Media | None) -> "MediaItem | None":
        if media is None:
            return None
        return cls(
            id=media.id,
            original_name=media.original_name,
            mime_type=media.mime_type,
            size=media.size,
            encoding=media.encoding,
            url=media.url,
        )


# Posts


class CreateBlockRequest(BaseModel):
    """Initial block of a new post."""

    kind: BlockKind
    order: int = Field(..., description="Requested position; renumbered to 1..N")
    content: str | None = None
    file_ref: str | None = Field(
        default=None,
        description="Reference of an uploaded file in the same request",
    )

    def to_delta(self) -> CreateBlock:
        return CreateBlock(
            kind=self.kind,
            order=self.order,
            content=self.content,
            file_ref=self.file_ref,
        )


class BlockDeltaRequest(BaseModel):
    """One tagged block change: create, update or delete."""

    action: Literal["create", "update", "delete"]
    block_id: str | None = None
    kind: BlockKind | None = None
    order: int | None = None
    content: str | None = None
    file_ref: str | None = None

    @model_validator(mode="after")
    def _check_action_fields(self) -> "BlockDeltaRequest":
        if self.action == "create":
            if self.kind is None or self.order is None:
                raise ValueError("create requires kind and order")
        elif not self.block_id:
            raise ValueError(f"{self.action} requires block_id")
        if self.action == "update":
            for name in ("kind", "order"):
                if name in self.model_fields_set and getattr(self, name) is None:
                    raise ValueError(f"{name} cannot be null")
        return self

    def to_delta(self) -> BlockDelta:
        if self.action == "create":
            return CreateBlock(
                kind=self.kind,
                order=self.order,
                content=self.content,
                file_ref=self.file_ref,
            )
        if self.action == "delete":
            return DeleteBlock(block_id=self.block_id)
        return UpdateBlock(
            block_id=self.block_id,
            kind=_maybe(self, "kind"),
            content=_maybe(self, "content"),
            order=_maybe(self, "order"),
            file_ref=_maybe(self, "file_ref"),
        )


class CreatePostRequest(BaseModel):
    """JSON ``payload`` part of a multipart create request."""

    title: str = Field(..., min_length=1, max_length=500)
    short_description: str = Field(default="", max_length=2000)
    status: PostStatus = PostStatus.DRAFT
    tag_ids: list[str] = Field(default_factory=list)
    media_ref: str | None = None
    blocks: list[CreateBlockRequest] = Field(default_factory=list)


class UpdatePostRequest(BaseModel):
    """JSON ``payload`` part of a multipart update request."""

    title: str | None = Field(default=None, min_length=1, max_length=500)
    short_description: str | None = Field(default=None, max_length=2000)
    status: PostStatus | None = None
    tag_ids: list[str] | None = None
    media_ref: str | None = None
    deleted_at: dt.datetime | None = None
    deltas: list[BlockDeltaRequest] = Field(default_factory=list)

    def to_patch(self) -> PostPatch:
        return PostPatch(
            title=_maybe(self, "title"),
            short_description=_maybe(self, "short_description"),
            status=_maybe(self, "status"),
            tag_ids=_maybe(self, "tag_ids"),
            media_ref=_maybe(self, "media_ref"),
            deleted_at=_maybe(self, "deleted_at"),
        )

    def to_deltas(self) -> list[BlockDelta]:
        return [d.to_delta() for d in self.deltas]


class BlockItem(BaseModel):
    id: str
    order: int
    kind: BlockKind
    content: str | None = None
    media: MediaItem | None = None

    @classmethod
    def from_block(cls, block: Block) -> "BlockItem":
        return cls(
            id=block.id,
            order=block.order,
            kind=block.kind,
            content=block.content,
            media=MediaItem.from_media(block.media),
        )


class PostItem(BaseModel):
    id: str
    title: str
    short_description: str
    status: PostStatus
    creator_id: str
    tag_ids: list[str]
    media: MediaItem | None = None
    blocks: list[BlockItem] = Field(default_factory=list)
    feed_source_id: str | None = None
    created_at: str | None = None
    updated_at: str | None = None
    deleted_at: str | None = None

    @classmethod
    def from_document(cls, doc: Document) -> "PostItem":
        return cls(
            id=doc.id,
            title=doc.title,
            short_description=doc.short_description,
            status=doc.status,
            creator_id=doc.creator_id,
            tag_ids=doc.tag_ids,
            media=MediaItem.from_media(doc.media),
            blocks=[BlockItem.from_block(b) for b in doc.blocks],
            feed_source_id=doc.feed_source_id,
            created_at=_iso(doc.created_at),
            updated_at=_iso(doc.updated_at),
            deleted_at=_iso(doc.deleted_at),
        )


class DeltaErrorItem(BaseModel):
    index: int
    action: str
    code: str
    message: str
    block_id: str | None = None

    @classmethod
    def from_error(cls, error: DeltaError) -> "DeltaErrorItem":
        return cls(**error.to_dict())


class PostResponse(BaseModel):
    """A post plus the deltas that could not be applied."""

    post: PostItem
    errors: list[DeltaErrorItem] = Field(default_factory=list)
    latency_ms: float = Field(..., description="Processing latency in milliseconds")


class PaginationItem(BaseModel):
    count: int
    limit: int
    page: int
    total_pages: int

    @classmethod
    def from_meta(cls, meta: PaginationMeta) -> "PaginationItem":
        return cls(
            count=meta.count,
            limit=meta.limit,
            page=meta.page,
            total_pages=meta.total_pages,
        )


class PostSearchHit(BaseModel):
    id: str
    title: str


# Mixins


class MixinItem(BaseModel):
    id: str
    concat_types: list[str]
    order_percentage: int
    type: MixinType
    status: MixinStatus
    text: str | None = None
    link_url: str | None = None
    link_text: str | None = None
    post_id: str | None = None
    media: MediaItem | None = None
    created_at: str | None = None
    updated_at: str | None = None

    @classmethod
    def from_mixin(cls, mixin: Mixin) -> "MixinItem":
        return cls(
            id=mixin.id,
            concat_types=mixin.concat_types,
            order_percentage=mixin.order_percentage,
            type=mixin.type,
            status=mixin.status,
            text=mixin.text,
            link_url=mixin.link_url,
            link_text=mixin.link_text,
            post_id=mixin.post_id,
            media=MediaItem.from_media(mixin.media),
            created_at=_iso(mixin.created_at),
            updated_at=_iso(mixin.updated_at),
        )


class PostsListResponse(BaseModel):
    items: list[PostItem]
    pagination: PaginationItem
    mixins: list[MixinItem] | None = None
    latency_ms: float = Field(..., description="Processing latency in milliseconds")


class CreateMixinRequest(BaseModel):
    """JSON ``payload`` part of a multipart mixin create request."""

    concat_types: list[str] = Field(..., min_length=1)
    order_percentage: int = Field(..., ge=0, le=100)
    type: MixinType
    status: MixinStatus = MixinStatus.HIDDEN
    text: str | None = None
    link_url: HttpUrl | None = None
    link_text: str | None = None
    post_id: str | None = None

    def to_mixin(self) -> Mixin:
        return Mixin(
            concat_types=self.concat_types,
            order_percentage=self.order_percentage,
            type=self.type,
            status=self.status,
            text=self.text,
            link_url=str(self.link_url) if self.link_url else None,
            link_text=self.link_text,
            post_id=self.post_id,
        )


class UpdateMixinRequest(BaseModel):
    """JSON ``payload`` part of a multipart mixin update request."""

    concat_types: list[str] | None = Field(default=None, min_length=1)
    order_percentage: int | None = Field(default=None, ge=0, le=100)
    type: MixinType | None = None
    status: MixinStatus | None = None
    text: str | None = None
    link_url: HttpUrl | None = None
    link_text: str | None = None
    post_id: str | None = None
    media_ref: str | None = None

    def to_patch(self) -> MixinPatch:
        link_url = _maybe(self, "link_url")
        return MixinPatch(
            concat_types=_maybe(self, "concat_types"),
            order_percentage=_maybe(self, "order_percentage"),
            type=_maybe(self, "type"),
            status=_maybe(self, "status"),
            text=_maybe(self, "text"),
            link_url=str(link_url) if link_url else link_url,
            link_text=_maybe(self, "link_text"),
            post_id=_maybe(self, "post_id"),
            media_ref=_maybe(self, "media_ref"),
        )


class MixinsListResponse(BaseModel):
    items: list[MixinItem]
    pagination: PaginationItem


class MixinSettingRequest(BaseModel):
    concat_type: str = Field(..., min_length=1, max_length=100)
    amount_per_page: int = Field(..., ge=0, le=100)


class MixinSettingUpdateRequest(BaseModel):
    amount_per_page: int = Field(..., ge=0, le=100)


class MixinSettingItem(BaseModel):
    id: str
    concat_type: str
    amount_per_page: int

    @classmethod
    def from_setting(cls, setting: MixinSetting) -> "MixinSettingItem":
        return cls(
            id=setting.id,
            concat_type=setting.concat_type,
            amount_per_page=setting.amount_per_page,
        )


# Tags


class CreateTagsRequest(BaseModel):
    tags: list[str] = Field(..., min_length=1, max_length=100)


class TagRename(BaseModel):
    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=100)


class UpdateTagsRequest(BaseModel):
    tags: list[TagRename] = Field(..., min_length=1, max_length=100)


class TagItem(BaseModel):
    id: str
    name: str

    @classmethod
    def from_tag(cls, tag: Tag) -> "TagItem":
        return cls(id=tag.id, name=tag.name)


class DeleteTagsResponse(BaseModel):
    is_affected: bool
    deleted: int


# Feeds


class FieldMappingModel(BaseModel):
    internal_field: Literal["title", "short_description", "content", "external_id"]
    external_field: str = Field(..., min_length=1, max_length=200)

    def to_mapping(self) -> FieldMapping:
        return FieldMapping(self.internal_field, self.external_field)


class CreateFeedSourceRequest(BaseModel):
    url: HttpUrl
    interval: int = Field(..., gt=0, description="Polling interval in seconds")
    is_stopped: bool = False
    mappings: list[FieldMappingModel] = Field(default_factory=list)


class UpdateFeedSourceRequest(BaseModel):
    url: HttpUrl | None = None
    interval: int | None = Field(default=None, gt=0)
    is_stopped: bool | None = None
    mappings: list[FieldMappingModel] | None = None

    def to_patch(self) -> FeedSourcePatch:
        url = _maybe(self, "url")
        mappings = _maybe(self, "mappings")
        return FeedSourcePatch(
            url=str(url) if url else url,
            interval=_maybe(self, "interval"),
            is_stopped=_maybe(self, "is_stopped"),
            mappings=[m.to_mapping() for m in mappings] if mappings else mappings,
        )


class FeedSourceItem(BaseModel):
    id: str
    url: str
    interval: int
    is_stopped: bool
    creator_id: str
    mappings: list[FieldMappingModel]
    scheduled: bool = Field(default=False, description="Whether a polling task is live")
    created_at: str | None = None
    updated_at: str | None = None

    @classmethod
    def from_source(cls, source: FeedSource, scheduled: bool = False) -> "FeedSourceItem":
        return cls(
            id=source.id,
            url=source.url,
            interval=source.interval,
            is_stopped=source.is_stopped,
            creator_id=source.creator_id,
            mappings=[
                FieldMappingModel(
                    internal_field=m.internal_field,
                    external_field=m.external_field,
                )
                for m in source.mappings
            ],
            scheduled=scheduled,
            created_at=_iso(source.created_at),
            updated_at=_iso(source.updated_at),
        )


class FeedDescriptionResponse(BaseModel):
    url: str
    root_keys: list[str]
    item_keys: list[str]
    sample: dict[str, Any]
    item_count: int

    @classmethod
    def from_description(cls, description: FeedDescription) -> "FeedDescriptionResponse":
        return cls(
            url=description.url,
            root_keys=description.root_keys,
            item_keys=description.item_keys,
            sample=description.sample,
            item_count=description.item_count,
        )
