"""
Media lifecycle manager.

Owns every transition of a binary object: upload, attach to a slot,
replace, release. A record and its blob are deleted exactly when the
slot that owns them is cleared. Replacement uploads first and commits
the new attachment before the old record goes, so a failed upload never
leaves a slot empty.

Blob deletions are best-effort: once the record is gone the blob is
unreachable from the domain, so a storage failure there is logged and
counted but never surfaced to the caller.
"""

import asyncio
from collections.abc import Iterable

import structlog

from src.errors import UnsupportedMediaTypeError, UploadFailedError
from src.media.config import MediaConfig
from src.media.repository import MediaRepository
from src.media.schemas import Media, OwnerSlot, UploadedFile
from src.observability.metrics import get_metrics
from src.storage.blob_store import BlobStore
from src.storage.locks import KeyedLock

logger = structlog.get_logger(__name__)


class MediaLifecycleManager:
    """
    Upload, attach, replace and release media for owner slots.

    Operations on the same slot are serialized; different slots proceed
    concurrently.
    """

    def __init__(
        self,
        repository: MediaRepository,
        blob_store: BlobStore,
        config: MediaConfig | None = None,
    ) -> None:
        self._repo = repository
        self._blobs = blob_store
        self._config = config or MediaConfig()
        self._slot_locks = KeyedLock()
        self._metrics = get_metrics()

    @property
    def repository(self) -> MediaRepository:
        return self._repo

    async def attach(self, slot: OwnerSlot, upload: UploadedFile) -> Media:
        """
        Upload ``upload`` and make it the media of ``slot``.

        An occupied slot is handled as a replacement, so a slot never ends
        up with two live records.

        Raises:
            UploadFailedError: the blob store rejected the write; the slot
                is left exactly as it was.
        """
        return await self._put(slot, upload, operation="attach")

    async def replace(self, slot: OwnerSlot, upload: UploadedFile | None) -> Media | None:
        """
        Replace the media of ``slot``; ``None`` detaches and deletes it.

        Returns:
            The new Media, or None when the slot was cleared.
        """
        if upload is None:
            await self._clear(slot)
            return None
        return await self._put(slot, upload, operation="replace")

    async def release(self, media_id: str) -> None:
        """Delete a record and its blob. Unknown ids are a no-op."""
        media = await self._repo.delete(media_id)
        if media is None:
            logger.debug("Release of unknown media ignored", media_id=media_id)
            return

        self._metrics.record_media("release", "success")
        logger.info("Media released", media_id=media_id, slot=str(media.slot))
        await self._delete_blob(media.storage_key)

    async def discard_blobs(self, media: Iterable[Media]) -> None:
        """Best-effort removal of blobs whose records were already deleted."""
        keys = [m.storage_key for m in media]
        if keys:
            await asyncio.gather(*(self._delete_blob(k) for k in keys))

    async def resolve_url(self, media: Media) -> Media:
        """Fill ``media.url`` with a presigned URL and return the same object."""
        media.url = await self._blobs.url_for(media.storage_key, self._config.url_ttl_seconds)
        return media

    async def _clear(self, slot: OwnerSlot) -> None:
        async with self._slot_locks.hold(str(slot)):
            current = await self._repo.get_for_slot(slot)
            if current is None:
                return
            await self._repo.swap(slot, None, current.id)
            self._metrics.record_media("replace", "cleared")
            logger.info("Media detached", slot=str(slot), media_id=current.id)
            await self._delete_blob(current.storage_key)

    async def _put(self, slot: OwnerSlot, upload: UploadedFile, operation: str) -> Media:
        async with self._slot_locks.hold(str(slot)):
            current = await self._repo.get_for_slot(slot)
            new = await self._upload(slot, upload)
            try:
                await self._repo.swap(slot, new, current.id if current else None)
            except Exception:
                # The record never committed, so its blob would be an orphan
                await self._delete_blob(new.storage_key)
                self._metrics.record_media(operation, "failed")
                raise

            self._metrics.record_media(operation, "success")
            logger.info(
                "Media attached",
                slot=str(slot),
                media_id=new.id,
                replaced=current.id if current else None,
            )
            if current is not None:
                await self._delete_blob(current.storage_key)
            return new

    async def _upload(self, slot: OwnerSlot, upload: UploadedFile) -> Media:
        if not self._config.accepts(upload.content_type):
            self._metrics.record_media("upload", "rejected")
            raise UnsupportedMediaTypeError(upload.content_type)

        try:
            key = await asyncio.wait_for(
                self._blobs.put(upload.data, upload.content_type, upload.filename),
                timeout=self._config.upload_timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            self._metrics.record_media("upload", "timeout")
            raise UploadFailedError(
                f"Upload of {upload.filename!r} timed out after "
                f"{self._config.upload_timeout_seconds}s"
            ) from e
        except Exception as e:
            self._metrics.record_media("upload", "failed")
            raise UploadFailedError(f"Upload of {upload.filename!r} failed: {e}") from e

        return Media.from_upload(upload, key, slot)

    async def _delete_blob(self, key: str) -> None:
        try:
            await asyncio.wait_for(
                self._blobs.delete(key),
                timeout=self._config.upload_timeout_seconds,
            )
            self._metrics.record_media("blob_delete", "success")
        except Exception as e:
            self._metrics.record_media("blob_delete", "failed")
            logger.warning("Blob delete failed, object orphaned", storage_key=key, error=str(e))
