"""Tag vocabulary endpoints. Every write takes a batch."""

from fastapi import APIRouter, Depends, Query, status

from src.api.auth import verify_api_key
from src.api.dependencies import get_tags_service
from src.api.models import (
    CreateTagsRequest,
    DeleteTagsResponse,
    ErrorResponse,
    TagItem,
    UpdateTagsRequest,
)
from src.tags.service import TagsService

router = APIRouter(prefix="/tags")

_ERRORS = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
}


@router.get(
    "",
    response_model=list[TagItem],
    responses=_ERRORS,
    summary="List all tags",
)
async def list_tags(
    api_key: str = Depends(verify_api_key),
    service: TagsService = Depends(get_tags_service),
) -> list[TagItem]:
    return [TagItem.from_tag(t) for t in await service.list_tags()]


@router.post(
    "",
    response_model=list[TagItem],
    status_code=status.HTTP_201_CREATED,
    responses=_ERRORS,
    summary="Create tags by name",
)
async def create_tags(
    request: CreateTagsRequest,
    api_key: str = Depends(verify_api_key),
    service: TagsService = Depends(get_tags_service),
) -> list[TagItem]:
    return [TagItem.from_tag(t) for t in await service.create_tags(request.tags)]


@router.put(
    "",
    response_model=list[TagItem],
    responses=_ERRORS,
    summary="Rename tags",
)
async def rename_tags(
    request: UpdateTagsRequest,
    api_key: str = Depends(verify_api_key),
    service: TagsService = Depends(get_tags_service),
) -> list[TagItem]:
    renamed = await service.rename_tags([(t.id, t.name) for t in request.tags])
    return [TagItem.from_tag(t) for t in renamed]


@router.delete(
    "",
    response_model=DeleteTagsResponse,
    responses=_ERRORS,
    summary="Delete tags and unlink them from posts",
)
async def delete_tags(
    ids: str = Query(..., min_length=1, description="Comma-separated tag ids"),
    api_key: str = Depends(verify_api_key),
    service: TagsService = Depends(get_tags_service),
) -> DeleteTagsResponse:
    tag_ids = [i.strip() for i in ids.split(",") if i.strip()]
    if not tag_ids:
        raise ValueError("At least one tag id is required")
    deleted = await service.delete_tags(tag_ids)
    return DeleteTagsResponse(is_affected=deleted > 0, deleted=deleted)
