"""Fixtures for ContentEngine tests."""

from unittest.mock import AsyncMock

import pytest

from src.services.engine import ContentEngine


@pytest.fixture
def mock_blob_store() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def engine(mock_database, mock_blob_store) -> ContentEngine:
    engine = ContentEngine(database=mock_database, blob_store=mock_blob_store)
    engine.scheduler.start = AsyncMock(return_value=0)
    engine.scheduler.shutdown = AsyncMock()
    return engine
