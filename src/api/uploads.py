"""Multipart helpers: JSON ``payload`` parts and upload batches."""

from typing import TypeVar

from fastapi import UploadFile
from pydantic import BaseModel

from src.media.schemas import UploadedFile

ModelT = TypeVar("ModelT", bound=BaseModel)


def parse_payload(model: type[ModelT], payload: str | None) -> ModelT:
    """Validate the JSON ``payload`` form field (empty means ``{}``)."""
    return model.model_validate_json(payload or "{}")


async def read_uploads(
    files: list[UploadFile] | None,
    refs: list[str] | None,
) -> list[UploadedFile]:
    """
    Read the request's files into an upload batch.

    ``refs[i]`` names ``files[i]``; files without an explicit ref are
    addressed by their position (``"0"``, ``"1"``, ...).
    """
    refs = refs or []
    batch = []
    for position, upload in enumerate(files or []):
        ref = refs[position] if position < len(refs) and refs[position] else str(position)
        batch.append(
            UploadedFile(
                ref=ref,
                filename=upload.filename or f"upload-{position}",
                content_type=upload.content_type or "application/octet-stream",
                data=await upload.read(),
            )
        )
    return batch
