"""Shared fixtures for API tests."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from src.api.app import create_app
from src.api.auth import verify_api_key
from src.api.dependencies import (
    get_database,
    get_feeds_service,
    get_mixins_service,
    get_posts_service,
    get_tags_service,
)
from src.feeds.schemas import FeedSource, FieldMapping
from src.mixins.schemas import Mixin, MixinSetting, MixinStatus, MixinType
from src.posts.schemas import (
    Block,
    BlockKind,
    Document,
    PaginationMeta,
    PostPage,
    PostStatus,
    UpdateOutcome,
)
from src.tags.schemas import Tag

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _make_document(doc_id: str = "doc-1", **kwargs) -> Document:
    """Helper to create a Document with two blocks."""
    doc = Document(
        id=doc_id,
        title=kwargs.pop("title", "Quarterly roadmap"),
        creator_id=kwargs.pop("creator_id", "user-1"),
        status=kwargs.pop("status", PostStatus.PUBLISHED),
        tag_ids=kwargs.pop("tag_ids", ["tag-a"]),
        created_at=NOW,
        updated_at=NOW,
        **kwargs,
    )
    doc.blocks = [
        Block(id="block-a", document_id=doc_id, order=1, kind=BlockKind.RICH_TEXT, content="A"),
        Block(id="block-b", document_id=doc_id, order=2, kind=BlockKind.RICH_TEXT, content="B"),
    ]
    return doc


def _make_mixin(mixin_id: str = "m-1") -> Mixin:
    return Mixin(
        id=mixin_id,
        concat_types=["HOME"],
        order_percentage=80,
        type=MixinType.LINK,
        status=MixinStatus.VISIBLE,
        link_url="https://example.com/promo",
        link_text="Promo",
    )


def _make_source(source_id: str = "src-1") -> FeedSource:
    return FeedSource(
        id=source_id,
        url="https://blog.example.com/rss.xml",
        interval=300,
        creator_id="user-1",
        mappings=[FieldMapping("title", "title")],
    )


@pytest.fixture
def sample_api_document() -> Document:
    return _make_document()


@pytest.fixture
def mock_posts_service(sample_api_document) -> AsyncMock:
    """Mock PostsService."""
    service = AsyncMock()
    service.create_post.return_value = UpdateOutcome(document=sample_api_document)
    service.update_post.return_value = UpdateOutcome(document=sample_api_document)
    service.get_post.return_value = sample_api_document
    service.list_posts.return_value = PostPage(
        items=[sample_api_document],
        pagination=PaginationMeta.build(1, 10, 1),
    )
    service.search_posts.return_value = []
    return service


@pytest.fixture
def mock_mixins_service() -> AsyncMock:
    """Mock MixinsService."""
    service = AsyncMock()
    service.create_mixin.side_effect = lambda mixin, upload=None: mixin
    service.get_mixin.return_value = _make_mixin()
    service.update_mixin.return_value = _make_mixin()
    service.list_mixins.return_value = ([_make_mixin()], 1)
    service.list_settings.return_value = [MixinSetting("HOME", 2, id="set-1")]
    service.create_setting.side_effect = lambda concat_type, amount: MixinSetting(
        concat_type, amount, id="set-new"
    )
    return service


@pytest.fixture
def mock_scheduler() -> MagicMock:
    scheduler = MagicMock()
    scheduler.running = True
    scheduler.active_task_ids.return_value = ["src-1"]
    scheduler.is_scheduled.return_value = True
    return scheduler


@pytest.fixture
def mock_feeds_service(mock_scheduler) -> AsyncMock:
    """Mock FeedSourcesService with a sync scheduler double."""
    service = AsyncMock()
    service.scheduler = mock_scheduler
    service.get_source.return_value = _make_source()
    service.list_sources.return_value = [_make_source()]
    service.create_source.side_effect = lambda **kw: FeedSource(
        id="src-new",
        url=kw["url"],
        interval=kw["interval"],
        creator_id=kw["creator_id"],
        mappings=kw["mappings"],
        is_stopped=kw["is_stopped"],
    )
    service.update_source.return_value = _make_source()
    return service


@pytest.fixture
def mock_tags_service() -> AsyncMock:
    """Mock TagsService."""
    service = AsyncMock()
    service.list_tags.return_value = [Tag("design", id="tag-a"), Tag("roadmap", id="tag-b")]
    service.create_tags.side_effect = lambda names: [
        Tag(n, id=f"tag-{i}") for i, n in enumerate(names)
    ]
    service.rename_tags.side_effect = lambda renames: [Tag(n, id=i) for i, n in renames]
    service.delete_tags.return_value = 2
    return service


@pytest.fixture
def mock_db() -> AsyncMock:
    db = AsyncMock()
    db.health_check.return_value = True
    return db


@pytest.fixture
def app(
    monkeypatch,
    mock_posts_service,
    mock_mixins_service,
    mock_feeds_service,
    mock_tags_service,
    mock_db,
):
    """App with the engine lifecycle stubbed and services overridden."""
    monkeypatch.setattr("src.api.app.init_dependencies", AsyncMock())
    monkeypatch.setattr("src.api.app.cleanup_dependencies", AsyncMock())

    app = create_app()
    app.dependency_overrides[verify_api_key] = lambda: "test-key"
    app.dependency_overrides[get_posts_service] = lambda: mock_posts_service
    app.dependency_overrides[get_mixins_service] = lambda: mock_mixins_service
    app.dependency_overrides[get_feeds_service] = lambda: mock_feeds_service
    app.dependency_overrides[get_tags_service] = lambda: mock_tags_service
    app.dependency_overrides[get_database] = lambda: mock_db
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    """FastAPI TestClient with dependency overrides."""
    with TestClient(app) as c:
        yield c
