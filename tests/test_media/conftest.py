"""Fixtures for media lifecycle tests."""

from unittest.mock import AsyncMock

import pytest

from src.media.config import MediaConfig
from src.media.manager import MediaLifecycleManager


@pytest.fixture
def mock_media_repo() -> AsyncMock:
    repo = AsyncMock()
    repo.get_for_slot.return_value = None
    repo.delete.return_value = None
    repo.get_many.return_value = {}
    return repo


@pytest.fixture
def mock_blob_store() -> AsyncMock:
    store = AsyncMock()
    store.put.return_value = "new-key.png"
    store.url_for.return_value = "https://blobs.example.com/new-key.png?sig=abc"
    return store


@pytest.fixture
def media_config() -> MediaConfig:
    return MediaConfig(
        allowed_mime_types="image/png,image/jpeg",
        upload_timeout_seconds=1.0,
        url_ttl_seconds=3600,
    )


@pytest.fixture
def manager(
    mock_media_repo: AsyncMock,
    mock_blob_store: AsyncMock,
    media_config: MediaConfig,
) -> MediaLifecycleManager:
    return MediaLifecycleManager(mock_media_repo, mock_blob_store, media_config)
