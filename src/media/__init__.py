"""Media: binary uploads owned by documents, blocks and mixins."""

from src.media.config import MediaConfig
from src.media.manager import MediaLifecycleManager
from src.media.repository import MediaRepository
from src.media.schemas import (
    Media,
    OwnerKind,
    OwnerSlot,
    UploadedFile,
    index_uploads,
    resolve_upload,
)

__all__ = [
    "Media",
    "MediaConfig",
    "MediaLifecycleManager",
    "MediaRepository",
    "OwnerKind",
    "OwnerSlot",
    "UploadedFile",
    "index_uploads",
    "resolve_upload",
]
