"""Documents (posts), their ordered blocks and block reconciliation."""

from src.posts.config import PostsConfig
from src.posts.reconciler import BlockReconciler
from src.posts.repository import PostsRepository
from src.posts.schemas import (
    Block,
    BlockDelta,
    BlockKind,
    CreateBlock,
    DeleteBlock,
    DeltaError,
    Document,
    ListOptions,
    NewPost,
    PaginationMeta,
    PostPage,
    PostPatch,
    PostStatus,
    ReconcileResult,
    UpdateBlock,
    UpdateOutcome,
)
from src.posts.service import PostsService

__all__ = [
    "Block",
    "BlockDelta",
    "BlockKind",
    "BlockReconciler",
    "CreateBlock",
    "DeleteBlock",
    "DeltaError",
    "Document",
    "ListOptions",
    "NewPost",
    "PaginationMeta",
    "PostPage",
    "PostPatch",
    "PostStatus",
    "PostsConfig",
    "PostsRepository",
    "PostsService",
    "ReconcileResult",
    "UpdateBlock",
    "UpdateOutcome",
]
