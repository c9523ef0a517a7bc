"""Feed source endpoints; writes adjust the live polling tasks."""

from fastapi import APIRouter, Depends, Query, status

from src.api.auth import get_user_id, verify_api_key
from src.api.dependencies import get_feeds_service
from src.api.models import (
    CreateFeedSourceRequest,
    ErrorResponse,
    FeedDescriptionResponse,
    FeedSourceItem,
    UpdateFeedSourceRequest,
)
from src.feeds.service import FeedSourcesService

router = APIRouter(prefix="/feeds")

_ERRORS = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    502: {"model": ErrorResponse},
}


def _item(service: FeedSourcesService, source) -> FeedSourceItem:
    return FeedSourceItem.from_source(source, service.scheduler.is_scheduled(source.id))


@router.get(
    "/describe",
    response_model=FeedDescriptionResponse,
    responses=_ERRORS,
    summary="Fetch a feed and list its mappable fields",
)
async def describe_feed(
    url: str = Query(..., min_length=1, max_length=2000),
    api_key: str = Depends(verify_api_key),
    service: FeedSourcesService = Depends(get_feeds_service),
) -> FeedDescriptionResponse:
    return FeedDescriptionResponse.from_description(await service.describe_feed(url))


@router.get(
    "",
    response_model=list[FeedSourceItem],
    responses=_ERRORS,
    summary="List feed sources",
)
async def list_sources(
    creator_id: str | None = Query(default=None),
    api_key: str = Depends(verify_api_key),
    service: FeedSourcesService = Depends(get_feeds_service),
) -> list[FeedSourceItem]:
    return [_item(service, s) for s in await service.list_sources(creator_id)]


@router.post(
    "",
    response_model=FeedSourceItem,
    status_code=status.HTTP_201_CREATED,
    responses=_ERRORS,
    summary="Create a feed source and start polling it",
)
async def create_source(
    request: CreateFeedSourceRequest,
    user_id: str = Depends(get_user_id),
    api_key: str = Depends(verify_api_key),
    service: FeedSourcesService = Depends(get_feeds_service),
) -> FeedSourceItem:
    source = await service.create_source(
        url=str(request.url),
        interval=request.interval,
        creator_id=user_id,
        mappings=[m.to_mapping() for m in request.mappings],
        is_stopped=request.is_stopped,
    )
    return _item(service, source)


@router.get(
    "/{source_id}",
    response_model=FeedSourceItem,
    responses=_ERRORS,
    summary="Get a feed source",
)
async def get_source(
    source_id: str,
    api_key: str = Depends(verify_api_key),
    service: FeedSourcesService = Depends(get_feeds_service),
) -> FeedSourceItem:
    return _item(service, await service.get_source(source_id))


@router.patch(
    "/{source_id}",
    response_model=FeedSourceItem,
    responses=_ERRORS,
    summary="Update a feed source (stop, resume, retime, remap)",
)
async def update_source(
    source_id: str,
    request: UpdateFeedSourceRequest,
    api_key: str = Depends(verify_api_key),
    service: FeedSourcesService = Depends(get_feeds_service),
) -> FeedSourceItem:
    source = await service.update_source(source_id, request.to_patch())
    return _item(service, source)


@router.delete(
    "/{source_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses=_ERRORS,
    summary="Stop polling and delete a feed source",
)
async def delete_source(
    source_id: str,
    api_key: str = Depends(verify_api_key),
    service: FeedSourcesService = Depends(get_feeds_service),
) -> None:
    await service.delete_source(source_id)
