"""Mixins service: mixin and mixin setting management with media."""

from collections.abc import Sequence

import structlog

from src.errors import NotFoundError
from src.media.manager import MediaLifecycleManager
from src.media.schemas import (
    OwnerKind,
    OwnerSlot,
    UploadedFile,
    index_uploads,
    resolve_upload,
)
from src.mixins.repository import MixinsRepository
from src.mixins.schemas import Mixin, MixinFilter, MixinPatch, MixinSetting
from src.patch import UNSET, set_fields

logger = structlog.get_logger(__name__)

_PATCH_COLUMNS = (
    "concat_types",
    "order_percentage",
    "type",
    "status",
    "text",
    "link_url",
    "link_text",
    "post_id",
)


class MixinsService:
    """CRUD for mixins (with optional media) and per-context settings."""

    def __init__(self, repository: MixinsRepository, media: MediaLifecycleManager) -> None:
        self._repo = repository
        self._media = media

    @property
    def repository(self) -> MixinsRepository:
        return self._repo

    async def create_mixin(self, mixin: Mixin, upload: UploadedFile | None = None) -> Mixin:
        """Persist a mixin, attaching ``upload`` as its media when given."""
        if upload is not None:
            media = await self._media.attach(OwnerSlot(OwnerKind.MIXIN, mixin.id), upload)
            mixin.media_id = media.id

        try:
            created = await self._repo.create(mixin)
        except Exception:
            if mixin.media_id:
                await self._media.release(mixin.media_id)
            raise

        logger.info("Mixin created", mixin_id=created.id, concat_types=created.concat_types)
        return await self._with_media(created)

    async def update_mixin(
        self,
        mixin_id: str,
        patch: MixinPatch,
        uploads: Sequence[UploadedFile] = (),
    ) -> Mixin:
        """
        Apply a partial update.

        Raises:
            NotFoundError: unknown mixin id
            MediaResolutionError: ``patch.media_ref`` names no upload
            UploadFailedError: the media replacement failed
        """
        if await self._repo.get(mixin_id) is None:
            raise NotFoundError("Mixin", mixin_id)

        fields = set_fields(patch, _PATCH_COLUMNS)
        if "concat_types" in fields:
            # Normalize through the dataclass validator
            fields["concat_types"] = Mixin(
                concat_types=fields["concat_types"], order_percentage=0
            ).concat_types

        if patch.media_ref is not UNSET:
            upload = (
                resolve_upload(index_uploads(uploads), patch.media_ref)
                if patch.media_ref is not None
                else None
            )
            media = await self._media.replace(OwnerSlot(OwnerKind.MIXIN, mixin_id), upload)
            fields["media_id"] = media.id if media else None

        updated = await self._repo.update(mixin_id, fields)
        if updated is None:
            raise NotFoundError("Mixin", mixin_id)

        logger.info("Mixin updated", mixin_id=mixin_id, fields=sorted(fields))
        return await self._with_media(updated)

    async def delete_mixin(self, mixin_id: str) -> None:
        """Delete a mixin and release its media."""
        mixin = await self._repo.delete(mixin_id)
        if mixin is None:
            raise NotFoundError("Mixin", mixin_id)
        if mixin.media_id:
            await self._media.release(mixin.media_id)
        logger.info("Mixin deleted", mixin_id=mixin_id)

    async def get_mixin(self, mixin_id: str) -> Mixin:
        mixin = await self._repo.get(mixin_id)
        if mixin is None:
            raise NotFoundError("Mixin", mixin_id)
        return await self._with_media(mixin)

    async def list_mixins(self, filters: MixinFilter | None = None) -> tuple[list[Mixin], int]:
        mixins, total = await self._repo.list_mixins(filters or MixinFilter())
        for mixin in mixins:
            await self._with_media(mixin)
        return mixins, total

    # ── Settings ────────────────────────────────────────────

    async def create_setting(self, concat_type: str, amount_per_page: int) -> MixinSetting:
        """
        Create the setting for a listing context.

        Raises:
            ValueError: the context already has a setting
        """
        setting = MixinSetting(concat_type=concat_type, amount_per_page=amount_per_page)
        created = await self._repo.create_setting(setting)
        if created is None:
            raise ValueError(f"Mixin setting for {setting.concat_type!r} already exists")
        logger.info(
            "Mixin setting created",
            concat_type=created.concat_type,
            amount_per_page=created.amount_per_page,
        )
        return created

    async def update_setting(self, setting_id: str, amount_per_page: int) -> MixinSetting:
        if amount_per_page < 0:
            raise ValueError(f"Invalid amount_per_page {amount_per_page}. Must be >= 0.")
        updated = await self._repo.update_setting(setting_id, amount_per_page)
        if updated is None:
            raise NotFoundError("MixinSetting", setting_id)
        return updated

    async def delete_setting(self, setting_id: str) -> None:
        if not await self._repo.delete_setting(setting_id):
            raise NotFoundError("MixinSetting", setting_id)

    async def list_settings(self) -> list[MixinSetting]:
        return await self._repo.list_settings()

    async def _with_media(self, mixin: Mixin) -> Mixin:
        if mixin.media_id:
            media = await self._media.repository.get(mixin.media_id)
            mixin.media = await self._media.resolve_url(media) if media else None
        return mixin
