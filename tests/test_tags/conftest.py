"""Fixtures for tag tests."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from src.tags.repository import TagsRepository

NOW = datetime(2026, 3, 1, tzinfo=timezone.utc)


@pytest.fixture
def tag_row():
    """Build an asyncpg-like row for the tags table."""

    def _row(tag_id: str, name: str) -> dict:
        return {"id": tag_id, "name": name, "created_at": NOW, "updated_at": NOW}

    return _row


@pytest.fixture
def mock_tags_repo() -> AsyncMock:
    repo = AsyncMock(spec=TagsRepository)
    repo.create_many.side_effect = lambda tags: tags
    repo.rename_many.return_value = []
    repo.delete_many.return_value = 0
    repo.list_all.return_value = []
    repo.existing_ids.return_value = set()
    return repo
