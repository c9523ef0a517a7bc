"""Post endpoints: multipart create/update with block deltas, reads and listing."""

import time

import structlog
from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status

from src.api.auth import get_user_id, verify_api_key
from src.api.dependencies import get_posts_service
from src.api.models import (
    CreatePostRequest,
    DeltaErrorItem,
    ErrorResponse,
    MixinItem,
    PaginationItem,
    PostItem,
    PostResponse,
    PostSearchHit,
    PostsListResponse,
    UpdatePostRequest,
)
from src.api.uploads import parse_payload, read_uploads
from src.posts.schemas import ListOptions, NewPost, PostStatus, UpdateOutcome
from src.posts.service import PostsService

logger = structlog.get_logger(__name__)
router = APIRouter(prefix="/posts")

_ERRORS = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    502: {"model": ErrorResponse},
}


def _outcome_response(outcome: UpdateOutcome, start: float) -> PostResponse:
    return PostResponse(
        post=PostItem.from_document(outcome.document),
        errors=[DeltaErrorItem.from_error(e) for e in outcome.errors],
        latency_ms=round((time.perf_counter() - start) * 1000, 2),
    )


@router.post(
    "",
    response_model=PostResponse,
    status_code=status.HTTP_201_CREATED,
    responses=_ERRORS,
    summary="Create a post with optional media and initial blocks",
)
async def create_post(
    payload: str = Form(..., description="CreatePostRequest as JSON"),
    files: list[UploadFile] = File(default=[]),
    refs: list[str] = Form(default=[], description="Reference for each file, in order"),
    user_id: str = Depends(get_user_id),
    api_key: str = Depends(verify_api_key),
    service: PostsService = Depends(get_posts_service),
) -> PostResponse:
    start = time.perf_counter()
    request = parse_payload(CreatePostRequest, payload)
    uploads = await read_uploads(files, refs)

    outcome = await service.create_post(
        NewPost(
            title=request.title,
            creator_id=user_id,
            short_description=request.short_description,
            status=request.status,
            tag_ids=request.tag_ids,
            media_ref=request.media_ref,
            blocks=[b.to_delta() for b in request.blocks],
        ),
        uploads,
    )
    return _outcome_response(outcome, start)


@router.patch(
    "/{post_id}",
    response_model=PostResponse,
    responses=_ERRORS,
    summary="Update post fields and reconcile its blocks",
)
async def update_post(
    post_id: str,
    payload: str = Form(default="{}", description="UpdatePostRequest as JSON"),
    files: list[UploadFile] = File(default=[]),
    refs: list[str] = Form(default=[], description="Reference for each file, in order"),
    api_key: str = Depends(verify_api_key),
    service: PostsService = Depends(get_posts_service),
) -> PostResponse:
    start = time.perf_counter()
    request = parse_payload(UpdatePostRequest, payload)
    uploads = await read_uploads(files, refs)

    outcome = await service.update_post(
        post_id,
        request.to_patch(),
        request.to_deltas(),
        uploads,
    )
    if outcome.errors:
        logger.info("Post updated with rejected deltas", post_id=post_id, errors=len(outcome.errors))
    return _outcome_response(outcome, start)


@router.get(
    "",
    response_model=PostsListResponse,
    responses=_ERRORS,
    summary="List posts with filters, pagination and woven mixins",
)
async def list_posts(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    search: str | None = Query(default=None, max_length=200),
    tag_ids: list[str] = Query(default=[]),
    post_status: PostStatus | None = Query(default=None, alias="status"),
    creator_id: str | None = Query(default=None),
    include_deleted: bool = Query(default=False),
    sort_by: str = Query(default="created_at"),
    sort_order: str = Query(default="desc"),
    concat_type: str | None = Query(default=None, description="Weave mixins for this context"),
    api_key: str = Depends(verify_api_key),
    service: PostsService = Depends(get_posts_service),
) -> PostsListResponse:
    start = time.perf_counter()
    options = ListOptions(
        page=page,
        limit=limit,
        search=search,
        tag_ids=tag_ids,
        status=post_status,
        creator_id=creator_id,
        include_deleted=include_deleted,
        sort_by=sort_by,
        sort_order=sort_order,
        mixin_concat_type=concat_type,
    )
    result = await service.list_posts(options)

    return PostsListResponse(
        items=[PostItem.from_document(d) for d in result.items],
        pagination=PaginationItem.from_meta(result.pagination),
        mixins=(
            [MixinItem.from_mixin(m) for m in result.mixins]
            if result.mixins is not None
            else None
        ),
        latency_ms=round((time.perf_counter() - start) * 1000, 2),
    )


@router.get(
    "/search",
    response_model=list[PostSearchHit],
    responses=_ERRORS,
    summary="Search published post titles",
)
async def search_posts(
    q: str = Query(..., min_length=1, max_length=200),
    api_key: str = Depends(verify_api_key),
    service: PostsService = Depends(get_posts_service),
) -> list[PostSearchHit]:
    hits = await service.search_posts(q)
    return [PostSearchHit(**hit) for hit in hits]


@router.get(
    "/{post_id}",
    response_model=PostItem,
    responses=_ERRORS,
    summary="Get a post with its ordered blocks",
)
async def get_post(
    post_id: str,
    api_key: str = Depends(verify_api_key),
    service: PostsService = Depends(get_posts_service),
) -> PostItem:
    return PostItem.from_document(await service.get_post(post_id))


@router.delete(
    "/{post_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses=_ERRORS,
    summary="Delete a post, its blocks and their media",
)
async def delete_post(
    post_id: str,
    api_key: str = Depends(verify_api_key),
    service: PostsService = Depends(get_posts_service),
) -> None:
    await service.delete_post(post_id)
