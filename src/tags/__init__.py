"""Tags: the shared label vocabulary of documents."""

from src.tags.repository import TagsRepository
from src.tags.schemas import Tag
from src.tags.service import TagsService

__all__ = ["Tag", "TagsRepository", "TagsService"]
