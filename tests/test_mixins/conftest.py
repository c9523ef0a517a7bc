"""Fixtures for mixin tests."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from src.mixins.schemas import Mixin, MixinSetting, MixinStatus, MixinType


def _make_mixin(mixin_id: str, pct: int, status=MixinStatus.VISIBLE, concat_types=("HOME",)) -> Mixin:
    return Mixin(
        id=mixin_id,
        concat_types=list(concat_types),
        order_percentage=pct,
        type=MixinType.TEXT,
        status=status,
        text=f"mixin {pct}",
    )


@pytest.fixture
def make_mixin():
    """Factory for VISIBLE text mixins in the HOME context."""
    return _make_mixin


@pytest.fixture
def ranked_pool() -> list[Mixin]:
    """Five visible HOME mixins with priorities 90..50, stored out of order."""
    return [
        _make_mixin("m-60", 60),
        _make_mixin("m-90", 90),
        _make_mixin("m-50", 50),
        _make_mixin("m-80", 80),
        _make_mixin("m-70", 70),
    ]


@pytest.fixture
def mock_mixins_repo(ranked_pool) -> AsyncMock:
    repo = AsyncMock()
    repo.get_setting.return_value = MixinSetting(concat_type="HOME", amount_per_page=2)
    repo.list_visible_for.return_value = ranked_pool
    return repo


@pytest.fixture
def mock_media() -> AsyncMock:
    media = AsyncMock()
    media.repository = MagicMock()
    media.repository.get = AsyncMock(return_value=None)
    media.resolve_url.side_effect = lambda m: m
    return media
