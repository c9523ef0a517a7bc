"""Posts service: the document-level API over reconciliation and media."""

import asyncio
from collections.abc import Sequence
from typing import Any

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
from src.mixins.weaver import MixinWeaver
from src.patch import UNSET, set_fields
from src.posts.config import PostsConfig
from src.posts.reconciler import BlockReconciler
from src.posts.repository import PostsRepository
from src.posts.schemas import (
    BlockDelta,
    Document,
    ListOptions,
    NewPost,
    PaginationMeta,
    PostPage,
    PostPatch,
    UpdateOutcome,
)
from src.storage.locks import KeyedLock
from src.tags.service import TagsService

logger = structlog.get_logger(__name__)

_PATCH_COLUMNS = ("title", "short_description", "status", "deleted_at")


def _validate_patch(patch: PostPatch) -> None:
    for name in ("title", "short_description", "status"):
        if getattr(patch, name) is None:
            raise ValueError(f"{name} cannot be cleared")
    if isinstance(patch.title, str) and not patch.title.strip():
        raise ValueError("title must not be empty")


class PostsService:
    """
    Create, update, read, list and delete documents.

    Writes against one document are serialized by a per-document lock;
    different documents never wait on each other.
    """

    def __init__(
        self,
        repository: PostsRepository,
        media: MediaLifecycleManager,
        weaver: MixinWeaver | None = None,
        config: PostsConfig | None = None,
        tags: TagsService | None = None,
    ) -> None:
        self._repo = repository
        self._media = media
        self._weaver = weaver
        self._tags = tags
        self._config = config or PostsConfig()
        self._reconciler = BlockReconciler(media)
        self._locks = KeyedLock()

    @property
    def repository(self) -> PostsRepository:
        return self._repo

    async def create_post(
        self,
        new: NewPost,
        uploads: Sequence[UploadedFile] = (),
    ) -> UpdateOutcome:
        """
        Create a document with optional primary media and initial blocks.

        Initial blocks go through the reconciler as Create deltas, so their
        orders come back canonical and an unresolved block file is reported
        per block rather than failing the whole post.

        Raises:
            ValueError: empty title or unknown tag ids
            MediaResolutionError: ``media_ref`` names no upload
            UploadFailedError: the primary media upload failed
        """
        if not new.title.strip():
            raise ValueError("title must not be empty")
        await self._check_tags(new.tag_ids)

        upload_index = index_uploads(uploads)
        primary = resolve_upload(upload_index, new.media_ref) if new.media_ref else None

        doc = Document(
            title=new.title,
            creator_id=new.creator_id,
            short_description=new.short_description,
            status=new.status,
            tag_ids=list(new.tag_ids),
        )

        async with self._locks.hold(doc.id):
            if primary is not None:
                media = await self._media.attach(OwnerSlot(OwnerKind.DOCUMENT, doc.id), primary)
                doc.media_id = media.id

            result = await self._reconciler.reconcile(doc.id, [], new.blocks, uploads)
            doc.blocks = result.blocks

            try:
                await self._repo.insert_document(doc)
            except Exception:
                await self._release_all([doc.media_id, *result.created_media_ids])
                raise

        logger.info(
            "Post created",
            document_id=doc.id,
            creator_id=doc.creator_id,
            blocks=len(doc.blocks),
            errors=len(result.errors),
        )
        created = await self.get_post(doc.id)
        return UpdateOutcome(document=created, errors=result.errors)

    async def update_post(
        self,
        document_id: str,
        patch: PostPatch | None = None,
        deltas: Sequence[BlockDelta] = (),
        uploads: Sequence[UploadedFile] = (),
    ) -> UpdateOutcome:
        """
        Apply a document patch and a batch of block deltas.

        Document-level fields follow tri-state semantics (see PostPatch).
        Block deltas are reconciled with per-delta error reporting; a
        failed delta never rolls back its siblings.

        Raises:
            NotFoundError: unknown document id
            ValueError: invalid patch or unknown tag ids
            MediaResolutionError: ``patch.media_ref`` names no upload
            UploadFailedError: the primary media replacement failed
        """
        patch = patch or PostPatch()
        _validate_patch(patch)
        if patch.tag_ids:
            await self._check_tags(patch.tag_ids)
        upload_index = index_uploads(uploads)

        async with self._locks.hold(document_id):
            doc = await self._repo.get_document(document_id)
            if doc is None:
                raise NotFoundError("Post", document_id)

            fields = set_fields(patch, _PATCH_COLUMNS)

            if patch.media_ref is not UNSET:
                # Resolve before any side effect
                upload = (
                    resolve_upload(upload_index, patch.media_ref)
                    if patch.media_ref is not None
                    else None
                )
                media = await self._media.replace(
                    OwnerSlot(OwnerKind.DOCUMENT, document_id), upload
                )
                fields["media_id"] = media.id if media else None

            result = await self._reconciler.reconcile(document_id, doc.blocks, deltas, uploads)

            try:
                released = await self._repo.apply_update(
                    document_id,
                    fields,
                    patch.tag_ids if patch.tag_ids is not UNSET else None,
                    result.deleted_ids,
                    result.blocks,
                )
            except Exception:
                await self._release_all(result.created_media_ids)
                raise
            if released is None:
                await self._release_all(result.created_media_ids)
                raise NotFoundError("Post", document_id)

        await self._media.discard_blobs(released)
        logger.info(
            "Post updated",
            document_id=document_id,
            fields=sorted(fields),
            deltas=len(deltas),
            errors=len(result.errors),
        )
        updated = await self.get_post(document_id)
        return UpdateOutcome(document=updated, errors=result.errors)

    async def get_post(self, document_id: str) -> Document:
        """Fetch a document with ordered blocks and presigned media URLs."""
        doc = await self._repo.get_document(document_id)
        if doc is None:
            raise NotFoundError("Post", document_id)
        await self._load_media([doc, *doc.blocks])
        return doc

    async def delete_post(self, document_id: str) -> None:
        """Cascade-delete a document, its blocks and all media they own."""
        async with self._locks.hold(document_id):
            released = await self._repo.delete_document(document_id)
            if released is None:
                raise NotFoundError("Post", document_id)

        logger.info("Post deleted", document_id=document_id, media=len(released))
        await self._media.discard_blobs(released)

    async def list_posts(self, options: ListOptions | None = None) -> PostPage:
        """
        One page of documents, optionally with the mixins woven for it.

        Raises:
            InvalidConcatTypeError: ``mixin_concat_type`` has no setting
        """
        options = options or ListOptions(
            page=self._config.default_page,
            limit=self._config.default_limit,
        )
        if options.limit > self._config.max_limit:
            options.limit = self._config.max_limit

        docs, total = await self._repo.list_documents(options)
        await self._load_media(docs)

        mixins = None
        if options.mixin_concat_type:
            if self._weaver is None:
                raise RuntimeError("Mixin weaving is not configured")
            mixins = await self._weaver.weave(
                options.mixin_concat_type,
                options.page,
                options.limit,
                docs,
            )
            await self._load_media(mixins)

        return PostPage(
            items=docs,
            pagination=PaginationMeta.build(total, options.limit, options.page),
            mixins=mixins,
        )

    async def search_posts(self, query: str) -> list[dict[str, str]]:
        """Id/title pairs of published documents whose title contains ``query``."""
        query = query.strip()
        if not query:
            return []
        hits = await self._repo.search_titles(query, limit=self._config.search_limit)
        return [{"id": doc_id, "title": title} for doc_id, title in hits]

    async def _check_tags(self, tag_ids: Sequence[str]) -> None:
        if self._tags is not None:
            await self._tags.ensure_exist(tag_ids)

    async def _release_all(self, media_ids: Sequence[str | None]) -> None:
        """Release media whose owner rows were never saved."""
        for media_id in filter(None, media_ids):
            await self._media.release(media_id)

    async def _load_media(self, owners: Sequence[Any]) -> None:
        """Fill ``.media`` (with a resolved URL) on anything carrying a ``media_id``."""
        ids = [o.media_id for o in owners if o.media_id]
        if not ids:
            return
        found = await self._media.repository.get_many(ids)
        await asyncio.gather(*(self._media.resolve_url(m) for m in found.values()))
        for owner in owners:
            if owner.media_id:
                owner.media = found.get(owner.media_id)
