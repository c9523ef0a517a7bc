"""Tests for MediaLifecycleManager."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from src.errors import UnsupportedMediaTypeError, UploadFailedError
from src.media.config import MediaConfig
from src.media.manager import MediaLifecycleManager
from src.media.schemas import Media, OwnerKind, OwnerSlot

SLOT = OwnerSlot(OwnerKind.BLOCK, "block-a")


class TestAttach:
    @pytest.mark.asyncio
    async def test_empty_slot_uploads_and_commits(
        self, manager, mock_media_repo, mock_blob_store, make_upload
    ) -> None:
        media = await manager.attach(SLOT, make_upload())

        mock_blob_store.put.assert_awaited_once()
        mock_media_repo.swap.assert_awaited_once_with(SLOT, media, None)
        mock_blob_store.delete.assert_not_called()
        assert media.storage_key == "new-key.png"
        assert media.slot == SLOT
        assert media.original_name == "photo.png"

    @pytest.mark.asyncio
    async def test_occupied_slot_replaces_previous(
        self, manager, mock_media_repo, mock_blob_store, make_upload, sample_media
    ) -> None:
        mock_media_repo.get_for_slot.return_value = sample_media

        media = await manager.attach(SLOT, make_upload())

        mock_media_repo.swap.assert_awaited_once_with(SLOT, media, "media-1")
        mock_blob_store.delete.assert_awaited_once_with("0f3c1a.png")


class TestReplace:
    @pytest.mark.asyncio
    async def test_new_upload_swaps_then_deletes_old_blob(
        self, manager, mock_media_repo, mock_blob_store, make_upload, sample_media
    ) -> None:
        mock_media_repo.get_for_slot.return_value = sample_media
        calls: list[str] = []
        mock_media_repo.swap.side_effect = lambda *a: calls.append("swap")
        mock_blob_store.delete.side_effect = lambda key: calls.append(f"delete:{key}")

        media = await manager.replace(SLOT, make_upload())

        assert media is not None
        assert calls == ["swap", "delete:0f3c1a.png"]

    @pytest.mark.asyncio
    async def test_none_clears_slot(
        self, manager, mock_media_repo, mock_blob_store, sample_media
    ) -> None:
        mock_media_repo.get_for_slot.return_value = sample_media

        result = await manager.replace(SLOT, None)

        assert result is None
        mock_media_repo.swap.assert_awaited_once_with(SLOT, None, "media-1")
        mock_blob_store.delete.assert_awaited_once_with("0f3c1a.png")
        mock_blob_store.put.assert_not_called()

    @pytest.mark.asyncio
    async def test_none_on_empty_slot_is_noop(
        self, manager, mock_media_repo, mock_blob_store
    ) -> None:
        assert await manager.replace(SLOT, None) is None
        mock_media_repo.swap.assert_not_called()
        mock_blob_store.delete.assert_not_called()


class TestUploadFailures:
    @pytest.mark.asyncio
    async def test_unsupported_type_rejected_before_upload(
        self, manager, mock_media_repo, mock_blob_store, make_upload
    ) -> None:
        with pytest.raises(UnsupportedMediaTypeError):
            await manager.attach(SLOT, make_upload(content_type="application/x-msdownload"))

        mock_blob_store.put.assert_not_called()
        mock_media_repo.swap.assert_not_called()

    @pytest.mark.asyncio
    async def test_failed_upload_leaves_slot_untouched(
        self, manager, mock_media_repo, mock_blob_store, make_upload, sample_media
    ) -> None:
        mock_media_repo.get_for_slot.return_value = sample_media
        mock_blob_store.put.side_effect = ConnectionError("storage down")

        with pytest.raises(UploadFailedError, match="storage down"):
            await manager.replace(SLOT, make_upload())

        mock_media_repo.swap.assert_not_called()
        mock_blob_store.delete.assert_not_called()

    @pytest.mark.asyncio
    async def test_upload_timeout(
        self, mock_media_repo, mock_blob_store, make_upload
    ) -> None:
        async def slow_put(*args, **kwargs):
            await asyncio.sleep(5)
            return "never.png"

        mock_blob_store.put.side_effect = slow_put
        manager = MediaLifecycleManager(
            mock_media_repo,
            mock_blob_store,
            MediaConfig(allowed_mime_types="*", upload_timeout_seconds=0.05),
        )

        with pytest.raises(UploadFailedError, match="timed out"):
            await manager.attach(SLOT, make_upload())
        mock_media_repo.swap.assert_not_called()

    @pytest.mark.asyncio
    async def test_failed_commit_removes_fresh_blob(
        self, manager, mock_media_repo, mock_blob_store, make_upload
    ) -> None:
        mock_media_repo.swap.side_effect = RuntimeError("constraint violation")

        with pytest.raises(RuntimeError):
            await manager.attach(SLOT, make_upload())

        mock_blob_store.delete.assert_awaited_once_with("new-key.png")


class TestRelease:
    @pytest.mark.asyncio
    async def test_release_deletes_record_and_blob(
        self, manager, mock_media_repo, mock_blob_store, sample_media
    ) -> None:
        mock_media_repo.delete.return_value = sample_media

        await manager.release("media-1")

        mock_media_repo.delete.assert_awaited_once_with("media-1")
        mock_blob_store.delete.assert_awaited_once_with("0f3c1a.png")

    @pytest.mark.asyncio
    async def test_release_unknown_is_noop(self, manager, mock_blob_store) -> None:
        await manager.release("missing")
        mock_blob_store.delete.assert_not_called()

    @pytest.mark.asyncio
    async def test_blob_delete_failure_is_swallowed(
        self, manager, mock_media_repo, mock_blob_store, sample_media
    ) -> None:
        mock_media_repo.delete.return_value = sample_media
        mock_blob_store.delete.side_effect = ConnectionError("gone")

        await manager.release("media-1")  # does not raise

    @pytest.mark.asyncio
    async def test_discard_blobs(self, manager, mock_blob_store, sample_media) -> None:
        other = Media(original_name="b.png", mime_type="image/png", size=1, storage_key="b.png")

        await manager.discard_blobs([sample_media, other])

        deleted = {c.args[0] for c in mock_blob_store.delete.await_args_list}
        assert deleted == {"0f3c1a.png", "b.png"}


class TestResolveUrl:
    @pytest.mark.asyncio
    async def test_uses_configured_ttl(
        self, manager, mock_blob_store: AsyncMock, sample_media
    ) -> None:
        media = await manager.resolve_url(sample_media)

        mock_blob_store.url_for.assert_awaited_once_with("0f3c1a.png", 3600)
        assert media.url.startswith("https://blobs.example.com/")


class TestMediaConfig:
    def test_accepts_allow_list(self) -> None:
        config = MediaConfig(allowed_mime_types="image/png, image/jpeg")
        assert config.accepts("image/png")
        assert config.accepts("IMAGE/JPEG")
        assert not config.accepts("text/html")

    def test_wildcard_accepts_anything(self) -> None:
        assert MediaConfig(allowed_mime_types="*").accepts("application/octet-stream")

    def test_default_url_ttl_is_one_day(self) -> None:
        assert MediaConfig().url_ttl_seconds == 86400
