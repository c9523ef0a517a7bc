"""Tags service: batch create, rename, delete and list."""

from collections.abc import Sequence

import asyncpg
import structlog

from src.tags.repository import TagsRepository
from src.tags.schemas import Tag, normalize_tag_name

logger = structlog.get_logger(__name__)


class TagsService:
    """Manage the tag vocabulary documents draw from."""

    def __init__(self, repository: TagsRepository) -> None:
        self._repo = repository

    @property
    def repository(self) -> TagsRepository:
        return self._repo

    async def create_tags(self, names: Sequence[str]) -> list[Tag]:
        """
        Create tags by name. Duplicate names collapse to one tag and names
        that already exist return the stored tag.

        Raises:
            ValueError: empty list, or an empty or oversized name
        """
        unique = list(dict.fromkeys(normalize_tag_name(n) for n in names))
        if not unique:
            raise ValueError("At least one tag name is required")
        tags = await self._repo.create_many([Tag(name=n) for n in unique])
        logger.info("Tags created", count=len(tags))
        return tags

    async def rename_tags(self, renames: Sequence[tuple[str, str]]) -> list[Tag]:
        """
        Rename several tags at once; all or nothing.

        Raises:
            NotFoundError: an id does not exist
            ValueError: invalid name, or a name already used by another tag
        """
        cleaned = [(tag_id, normalize_tag_name(name)) for tag_id, name in renames]
        if not cleaned:
            raise ValueError("At least one tag is required")
        names = [name for _, name in cleaned]
        if len(set(names)) != len(names):
            raise ValueError("Tag names in one request must be distinct")
        try:
            tags = await self._repo.rename_many(cleaned)
        except asyncpg.UniqueViolationError as e:
            raise ValueError("Tag name already in use") from e
        logger.info("Tags renamed", count=len(tags))
        return tags

    async def delete_tags(self, tag_ids: Sequence[str]) -> int:
        """Delete tags by id and unlink them from documents. Returns the count."""
        deleted = await self._repo.delete_many(list(dict.fromkeys(tag_ids)))
        logger.info("Tags deleted", requested=len(tag_ids), deleted=deleted)
        return deleted

    async def list_tags(self) -> list[Tag]:
        return await self._repo.list_all()

    async def ensure_exist(self, tag_ids: Sequence[str]) -> None:
        """
        Check that every id names a tag.

        Raises:
            ValueError: some ids name no tag
        """
        wanted = list(dict.fromkeys(tag_ids))
        if not wanted:
            return
        found = await self._repo.existing_ids(wanted)
        missing = [t for t in wanted if t not in found]
        if missing:
            raise ValueError(f"Unknown tag ids: {', '.join(missing)}")
