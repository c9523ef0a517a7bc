"""Mixin endpoints and per-context mixin settings."""

import structlog
from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status

from src.api.auth import verify_api_key
from src.api.dependencies import get_mixins_service
from src.api.models import (
    CreateMixinRequest,
    ErrorResponse,
    MixinItem,
    MixinSettingItem,
    MixinSettingRequest,
    MixinSettingUpdateRequest,
    MixinsListResponse,
    PaginationItem,
    UpdateMixinRequest,
)
from src.api.uploads import parse_payload, read_uploads
from src.mixins.schemas import MixinFilter, MixinStatus, MixinType
from src.mixins.service import MixinsService
from src.posts.schemas import PaginationMeta

logger = structlog.get_logger(__name__)
router = APIRouter(prefix="/mixins")

_ERRORS = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
}


# Settings routes are declared first so "/settings" never matches "/{mixin_id}".


@router.get(
    "/settings",
    response_model=list[MixinSettingItem],
    responses=_ERRORS,
    summary="List mixin settings",
)
async def list_settings(
    api_key: str = Depends(verify_api_key),
    service: MixinsService = Depends(get_mixins_service),
) -> list[MixinSettingItem]:
    return [MixinSettingItem.from_setting(s) for s in await service.list_settings()]


@router.post(
    "/settings",
    response_model=MixinSettingItem,
    status_code=status.HTTP_201_CREATED,
    responses=_ERRORS,
    summary="Create the setting for a listing context",
)
async def create_setting(
    request: MixinSettingRequest,
    api_key: str = Depends(verify_api_key),
    service: MixinsService = Depends(get_mixins_service),
) -> MixinSettingItem:
    setting = await service.create_setting(request.concat_type, request.amount_per_page)
    return MixinSettingItem.from_setting(setting)


@router.put(
    "/settings/{setting_id}",
    response_model=MixinSettingItem,
    responses=_ERRORS,
    summary="Change how many mixins a context shows per page",
)
async def update_setting(
    setting_id: str,
    request: MixinSettingUpdateRequest,
    api_key: str = Depends(verify_api_key),
    service: MixinsService = Depends(get_mixins_service),
) -> MixinSettingItem:
    setting = await service.update_setting(setting_id, request.amount_per_page)
    return MixinSettingItem.from_setting(setting)


@router.delete(
    "/settings/{setting_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses=_ERRORS,
    summary="Delete a mixin setting",
)
async def delete_setting(
    setting_id: str,
    api_key: str = Depends(verify_api_key),
    service: MixinsService = Depends(get_mixins_service),
) -> None:
    await service.delete_setting(setting_id)


@router.get(
    "",
    response_model=MixinsListResponse,
    responses=_ERRORS,
    summary="List mixins with filters",
)
async def list_mixins(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    concat_types: list[str] = Query(default=[]),
    mixin_type: MixinType | None = Query(default=None, alias="type"),
    mixin_status: MixinStatus | None = Query(default=None, alias="status"),
    api_key: str = Depends(verify_api_key),
    service: MixinsService = Depends(get_mixins_service),
) -> MixinsListResponse:
    filters = MixinFilter(
        page=page,
        limit=limit,
        concat_types=concat_types,
        type=mixin_type,
        status=mixin_status,
    )
    mixins, total = await service.list_mixins(filters)
    return MixinsListResponse(
        items=[MixinItem.from_mixin(m) for m in mixins],
        pagination=PaginationItem.from_meta(PaginationMeta.build(total, limit, page)),
    )


@router.post(
    "",
    response_model=MixinItem,
    status_code=status.HTTP_201_CREATED,
    responses=_ERRORS,
    summary="Create a mixin with optional media",
)
async def create_mixin(
    payload: str = Form(..., description="CreateMixinRequest as JSON"),
    file: UploadFile | None = File(default=None),
    api_key: str = Depends(verify_api_key),
    service: MixinsService = Depends(get_mixins_service),
) -> MixinItem:
    request = parse_payload(CreateMixinRequest, payload)
    uploads = await read_uploads([file] if file is not None else [], [])

    mixin = await service.create_mixin(request.to_mixin(), uploads[0] if uploads else None)
    return MixinItem.from_mixin(mixin)


@router.get(
    "/{mixin_id}",
    response_model=MixinItem,
    responses=_ERRORS,
    summary="Get a mixin",
)
async def get_mixin(
    mixin_id: str,
    api_key: str = Depends(verify_api_key),
    service: MixinsService = Depends(get_mixins_service),
) -> MixinItem:
    return MixinItem.from_mixin(await service.get_mixin(mixin_id))


@router.patch(
    "/{mixin_id}",
    response_model=MixinItem,
    responses=_ERRORS,
    summary="Partially update a mixin",
)
async def update_mixin(
    mixin_id: str,
    payload: str = Form(default="{}", description="UpdateMixinRequest as JSON"),
    files: list[UploadFile] = File(default=[]),
    refs: list[str] = Form(default=[]),
    api_key: str = Depends(verify_api_key),
    service: MixinsService = Depends(get_mixins_service),
) -> MixinItem:
    request = parse_payload(UpdateMixinRequest, payload)
    uploads = await read_uploads(files, refs)

    mixin = await service.update_mixin(mixin_id, request.to_patch(), uploads)
    return MixinItem.from_mixin(mixin)


@router.delete(
    "/{mixin_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses=_ERRORS,
    summary="Delete a mixin and its media",
)
async def delete_mixin(
    mixin_id: str,
    api_key: str = Depends(verify_api_key),
    service: MixinsService = Depends(get_mixins_service),
) -> None:
    await service.delete_mixin(mixin_id)
