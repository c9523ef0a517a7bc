"""Data models for media records, uploads and owner slots."""

import uuid
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from src.errors import MediaResolutionError


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class OwnerKind(str, Enum):
    """Kinds of rows that can own a media record through a ``media_id`` column."""

    DOCUMENT = "document"
    BLOCK = "block"
    MIXIN = "mixin"


@dataclass(frozen=True)
class OwnerSlot:
    """The single media position of one document, block or mixin."""

    kind: OwnerKind
    owner_id: str

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.owner_id}"


@dataclass
class UploadedFile:
    """
    One file of a request's upload batch.

    ``ref`` is the symbolic handle deltas use to point at this file; it is
    assigned by the caller and never derived from the filename.
    """

    ref: str
    filename: str
    content_type: str
    data: bytes = field(repr=False)
    encoding: str = "7bit"

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass
class Media:
    """A stored binary and the slot that owns it.

    ``url`` is filled on read from the storage key and is never persisted.
    """

    original_name: str
    mime_type: str
    size: int
    storage_key: str
    encoding: str = "7bit"
    owner_kind: OwnerKind | None = None
    owner_id: str | None = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=_utc_now)
    url: str | None = None

    @property
    def slot(self) -> OwnerSlot | None:
        if self.owner_kind is None or self.owner_id is None:
            return None
        return OwnerSlot(self.owner_kind, self.owner_id)

    @classmethod
    def from_upload(cls, upload: UploadedFile, storage_key: str, slot: OwnerSlot) -> "Media":
        return cls(
            original_name=upload.filename,
            mime_type=upload.content_type,
            size=upload.size,
            storage_key=storage_key,
            encoding=upload.encoding,
            owner_kind=slot.kind,
            owner_id=slot.owner_id,
        )


def index_uploads(uploads: Sequence[UploadedFile]) -> dict[str, UploadedFile]:
    """Key an upload batch by the caller-assigned ``ref``."""
    return {upload.ref: upload for upload in uploads}


def resolve_upload(index: dict[str, UploadedFile], file_ref: str) -> UploadedFile:
    upload = index.get(file_ref)
    if upload is None:
        raise MediaResolutionError(file_ref)
    return upload
