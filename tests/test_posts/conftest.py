"""Fixtures for posts tests."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from src.media.schemas import Media
from src.posts.reconciler import BlockReconciler
from src.posts.service import PostsService


def _media_for(slot, upload) -> Media:
    return Media.from_upload(upload, f"key-{upload.ref}.png", slot)


@pytest.fixture
def mock_media() -> AsyncMock:
    """MediaLifecycleManager double that fabricates Media for uploads."""
    media = AsyncMock()
    media.attach.side_effect = _media_for
    media.replace.side_effect = lambda slot, upload: _media_for(slot, upload) if upload else None
    media.resolve_url.side_effect = lambda m: m
    media.repository = MagicMock()
    media.repository.get_many = AsyncMock(return_value={})
    return media


@pytest.fixture
def reconciler(mock_media: AsyncMock) -> BlockReconciler:
    return BlockReconciler(mock_media)


@pytest.fixture
def mock_posts_repo(sample_document) -> AsyncMock:
    repo = AsyncMock()
    repo.get_document.return_value = sample_document
    repo.apply_update.return_value = []
    repo.list_documents.return_value = ([sample_document], 1)
    repo.search_titles.return_value = []
    return repo


@pytest.fixture
def mock_weaver() -> AsyncMock:
    weaver = AsyncMock()
    weaver.weave.return_value = []
    return weaver


@pytest.fixture
def posts_service(mock_posts_repo, mock_media, mock_weaver) -> PostsService:
    return PostsService(mock_posts_repo, mock_media, mock_weaver)
