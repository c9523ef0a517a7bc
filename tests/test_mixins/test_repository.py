"""Tests for MixinsRepository SQL."""

from datetime import datetime, timezone

import pytest

from src.mixins.repository import MixinsRepository
from src.mixins.schemas import MixinFilter, MixinSetting, MixinStatus, MixinType

NOW = datetime(2026, 3, 1, tzinfo=timezone.utc)


def _mixin_row(mixin_id: str = "m-1", pct: int = 50) -> dict:
    return {
        "id": mixin_id,
        "concat_types": ["HOME"],
        "order_percentage": pct,
        "type": "LINK",
        "status": "VISIBLE",
        "text": None,
        "link_url": "https://example.com",
        "link_text": "Example",
        "post_id": None,
        "media_id": None,
        "created_at": NOW,
        "updated_at": NOW,
    }


@pytest.fixture
def repo(mock_database) -> MixinsRepository:
    return MixinsRepository(mock_database)


class TestMixins:
    @pytest.mark.asyncio
    async def test_list_visible_for(self, repo, mock_database) -> None:
        mock_database.fetch.return_value = [_mixin_row()]

        mixins = await repo.list_visible_for("HOME")

        sql, status, concat_type = mock_database.fetch.call_args[0]
        assert "ANY(concat_types)" in sql
        assert (status, concat_type) == ("VISIBLE", "HOME")
        assert mixins[0].type == MixinType.LINK

    @pytest.mark.asyncio
    async def test_list_with_filters(self, repo, mock_database) -> None:
        mock_database.fetchval.return_value = 4
        mock_database.fetch.return_value = []

        _, total = await repo.list_mixins(
            MixinFilter(page=2, limit=3, concat_types=["home"], status=MixinStatus.VISIBLE)
        )

        assert total == 4
        count_sql, *params = mock_database.fetchval.call_args[0]
        assert "concat_types && $1::text[]" in count_sql
        assert "status = $2" in count_sql
        assert params == [["HOME"], "VISIBLE"]
        assert mock_database.fetch.call_args[0][-2:] == (3, 3)

    @pytest.mark.asyncio
    async def test_update_converts_enums(self, repo, mock_database) -> None:
        mock_database.fetchrow.return_value = _mixin_row()

        await repo.update("m-1", {"status": MixinStatus.HIDDEN, "order_percentage": 10})

        sql, *params = mock_database.fetchrow.call_args[0]
        assert "status = $2" in sql
        assert params == ["m-1", "HIDDEN", 10]

    @pytest.mark.asyncio
    async def test_update_rejects_unknown_column(self, repo) -> None:
        with pytest.raises(ValueError, match="id"):
            await repo.update("m-1", {"id": "other"})


class TestSettings:
    @pytest.mark.asyncio
    async def test_create_conflict_returns_none(self, repo, mock_database) -> None:
        mock_database.fetchrow.return_value = None

        assert await repo.create_setting(MixinSetting("HOME", 2)) is None
        assert "ON CONFLICT (concat_type) DO NOTHING" in mock_database.fetchrow.call_args[0][0]

    @pytest.mark.asyncio
    async def test_delete_uses_affected_rows(self, repo, mock_database) -> None:
        mock_database.execute.return_value = "DELETE 0"
        assert await repo.delete_setting("missing") is False

        mock_database.execute.return_value = "DELETE 1"
        assert await repo.delete_setting("s-1") is True
