"""
Block reconciliation engine.

Applies a batch of block deltas to a document's current blocks. Deltas
are processed in a fixed order regardless of how they were submitted:

1. Deletes (a missing id is a no-op)
2. Updates (a block deleted earlier in the batch is rejected)
3. Creates
4. Renumbering: stable sort by ``order`` then ``order = 1..N``

The working sequence is the current blocks sorted by their order,
followed by new blocks in submission order. Ties in the final sort keep
that sequence.

A failing Create or Update is reported as a DeltaError and skipped; the
rest of the batch still applies. Media of created and updated blocks goes
through the MediaLifecycleManager so a block never holds two live media
records. Media of deleted blocks is left alone here: its records are
removed in the same transaction that deletes the block rows.
"""

import dataclasses
import time
from collections.abc import Sequence

import structlog

from src.errors import MediaResolutionError, UploadFailedError
from src.media.manager import MediaLifecycleManager
from src.media.schemas import (
    OwnerKind,
    OwnerSlot,
    UploadedFile,
    index_uploads,
    resolve_upload,
)
from src.observability.metrics import get_metrics
from src.patch import UNSET
from src.posts.schemas import (
    Block,
    BlockDelta,
    CreateBlock,
    DeleteBlock,
    DeltaError,
    ReconcileResult,
    UpdateBlock,
)

logger = structlog.get_logger(__name__)


def renumber(blocks: Sequence[Block]) -> list[Block]:
    """Stable sort by ``order`` and assign ``1..N`` in place."""
    ordered = sorted(blocks, key=lambda b: b.order)
    for position, block in enumerate(ordered, start=1):
        block.order = position
    return ordered


class BlockReconciler:
    """Apply Create/Update/Delete deltas to a document's block sequence."""

    def __init__(self, media: MediaLifecycleManager) -> None:
        self._media = media
        self._metrics = get_metrics()

    async def reconcile(
        self,
        document_id: str,
        current_blocks: Sequence[Block],
        deltas: Sequence[BlockDelta],
        uploads: Sequence[UploadedFile] = (),
    ) -> ReconcileResult:
        """
        Reconcile ``current_blocks`` against ``deltas``.

        The input blocks are not mutated; the result holds copies.

        Args:
            document_id: Owner of the blocks
            current_blocks: Blocks as currently persisted
            deltas: Batch of CreateBlock/UpdateBlock/DeleteBlock
            uploads: Files the deltas may reference by ``file_ref``

        Returns:
            ReconcileResult with the final ordered blocks, the ids that
            were deleted, created and updated, and per-delta errors.
        """
        start = time.perf_counter()
        upload_index = index_uploads(uploads)

        working: dict[str, Block] = {
            block.id: dataclasses.replace(block)
            for block in sorted(current_blocks, key=lambda b: b.order)
        }
        result = ReconcileResult(blocks=[])

        indexed = list(enumerate(deltas))
        for index, delta in indexed:
            if isinstance(delta, DeleteBlock):
                self._apply_delete(delta, working, result)
        for index, delta in indexed:
            if isinstance(delta, UpdateBlock):
                await self._apply_update(index, delta, working, upload_index, result)
        for index, delta in indexed:
            if isinstance(delta, CreateBlock):
                await self._apply_create(index, document_id, delta, working, upload_index, result)

        result.blocks = renumber(list(working.values()))

        self._metrics.reconcile_latency.observe(time.perf_counter() - start)
        logger.info(
            "Blocks reconciled",
            document_id=document_id,
            deltas=len(deltas),
            deleted=len(result.deleted_ids),
            updated=len(result.updated_ids),
            created=len(result.created_ids),
            errors=len(result.errors),
            blocks=len(result.blocks),
        )
        return result

    def _apply_delete(
        self,
        delta: DeleteBlock,
        working: dict[str, Block],
        result: ReconcileResult,
    ) -> None:
        block = working.pop(delta.block_id, None)
        if block is None:
            self._metrics.record_delta("delete", "noop")
            return

        result.deleted_ids.append(block.id)
        self._metrics.record_delta("delete", "applied")

    async def _apply_update(
        self,
        index: int,
        delta: UpdateBlock,
        working: dict[str, Block],
        upload_index: dict[str, UploadedFile],
        result: ReconcileResult,
    ) -> None:
        block = working.get(delta.block_id)
        if block is None:
            deleted = delta.block_id in result.deleted_ids
            self._fail(
                result,
                DeltaError(
                    index=index,
                    action=delta.action,
                    code="DELETED_IN_BATCH" if deleted else "NOT_FOUND",
                    message=(
                        f"Block {delta.block_id!r} is deleted in this batch"
                        if deleted
                        else f"Block {delta.block_id!r} not found"
                    ),
                    block_id=delta.block_id,
                ),
            )
            return

        if delta.file_ref is not UNSET:
            try:
                upload = (
                    resolve_upload(upload_index, delta.file_ref)
                    if delta.file_ref is not None
                    else None
                )
                media = await self._media.replace(OwnerSlot(OwnerKind.BLOCK, block.id), upload)
            except (MediaResolutionError, UploadFailedError) as e:
                self._fail(result, self._media_error(index, delta.action, block.id, e))
                return
            block.media_id = media.id if media else None
            block.media = media

        if delta.kind is not UNSET:
            block.kind = delta.kind
        if delta.content is not UNSET:
            block.content = delta.content
        if delta.order is not UNSET:
            block.order = delta.order

        result.updated_ids.append(block.id)
        self._metrics.record_delta("update", "applied")

    async def _apply_create(
        self,
        index: int,
        document_id: str,
        delta: CreateBlock,
        working: dict[str, Block],
        upload_index: dict[str, UploadedFile],
        result: ReconcileResult,
    ) -> None:
        block = Block(
            document_id=document_id,
            order=delta.order,
            kind=delta.kind,
            content=delta.content,
        )

        if delta.file_ref is not None:
            try:
                upload = resolve_upload(upload_index, delta.file_ref)
                media = await self._media.attach(OwnerSlot(OwnerKind.BLOCK, block.id), upload)
            except (MediaResolutionError, UploadFailedError) as e:
                self._fail(result, self._media_error(index, delta.action, None, e))
                return
            block.media_id = media.id
            block.media = media
            result.created_media_ids.append(media.id)

        working[block.id] = block
        result.created_ids.append(block.id)
        self._metrics.record_delta("create", "applied")

    def _fail(self, result: ReconcileResult, error: DeltaError) -> None:
        result.errors.append(error)
        self._metrics.record_delta(error.action, "failed")
        logger.warning(
            "Block delta rejected",
            index=error.index,
            action=error.action,
            code=error.code,
            block_id=error.block_id,
            error=error.message,
        )

    @staticmethod
    def _media_error(
        index: int,
        action: str,
        block_id: str | None,
        error: Exception,
    ) -> DeltaError:
        code = "MEDIA_RESOLUTION" if isinstance(error, MediaResolutionError) else "UPLOAD_FAILED"
        return DeltaError(
            index=index,
            action=action,
            code=code,
            message=str(error),
            block_id=block_id,
        )
