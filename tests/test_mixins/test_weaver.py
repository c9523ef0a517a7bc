"""Tests for mixin ranking and page weaving."""

import pytest

from src.errors import InvalidConcatTypeError
from src.mixins.config import MixinsConfig
from src.mixins.schemas import MixinSetting, MixinStatus
from src.mixins.weaver import MixinWeaver, page_slice, rank_mixins


def _pcts(mixins) -> list[int]:
    return [m.order_percentage for m in mixins]


class TestRankMixins:
    def test_priority_desc(self, ranked_pool) -> None:
        assert _pcts(rank_mixins(ranked_pool, "HOME")) == [90, 80, 70, 60, 50]

    def test_ties_broken_by_id(self, make_mixin) -> None:
        pool = [make_mixin("b", 50), make_mixin("a", 50)]
        assert [m.id for m in rank_mixins(pool, "HOME")] == ["a", "b"]

    def test_hidden_and_other_contexts_excluded(self, make_mixin) -> None:
        pool = [
            make_mixin("hidden", 99, status=MixinStatus.HIDDEN),
            make_mixin("elsewhere", 98, concat_types=("BLOG",)),
            make_mixin("ok", 10, concat_types=("BLOG", "HOME")),
        ]
        assert [m.id for m in rank_mixins(pool, "HOME")] == ["ok"]


class TestPageSlice:
    def test_pages_partition_pool(self, ranked_pool) -> None:
        ranked = rank_mixins(ranked_pool, "HOME")
        pages = [page_slice(ranked, p, 2) for p in (1, 2, 3, 4)]

        assert [_pcts(p) for p in pages] == [[90, 80], [70, 60], [50], []]

    def test_take_caps_but_keeps_alignment(self, ranked_pool) -> None:
        ranked = rank_mixins(ranked_pool, "HOME")
        assert _pcts(page_slice(ranked, 2, 2, take=1)) == [70]

    def test_page_must_be_positive(self, ranked_pool) -> None:
        with pytest.raises(ValueError):
            page_slice(ranked_pool, 0, 2)


class TestMixinWeaver:
    @pytest.mark.asyncio
    async def test_side_list_pages(self, mock_mixins_repo) -> None:
        weaver = MixinWeaver(mock_mixins_repo, MixinsConfig(fill_mode="side_list"))

        pages = [await weaver.weave("HOME", p, 10) for p in (1, 2, 3)]

        assert [_pcts(p) for p in pages] == [[90, 80], [70, 60], [50]]

    @pytest.mark.asyncio
    async def test_pages_are_disjoint(self, mock_mixins_repo) -> None:
        weaver = MixinWeaver(mock_mixins_repo, MixinsConfig())
        seen: set[str] = set()

        for page in range(1, 5):
            ids = {m.id for m in await weaver.weave("HOME", page, 10)}
            assert not ids & seen
            seen |= ids

        assert len(seen) == 5

    @pytest.mark.asyncio
    async def test_concat_type_normalized(self, mock_mixins_repo) -> None:
        weaver = MixinWeaver(mock_mixins_repo, MixinsConfig())

        await weaver.weave(" home ", 1, 10)

        mock_mixins_repo.get_setting.assert_awaited_once_with("HOME")

    @pytest.mark.asyncio
    async def test_missing_setting(self, mock_mixins_repo) -> None:
        mock_mixins_repo.get_setting.return_value = None
        weaver = MixinWeaver(mock_mixins_repo, MixinsConfig())

        with pytest.raises(InvalidConcatTypeError):
            await weaver.weave("UNKNOWN", 1, 10)

    @pytest.mark.asyncio
    async def test_zero_amount_returns_nothing(self, mock_mixins_repo) -> None:
        mock_mixins_repo.get_setting.return_value = MixinSetting(
            concat_type="HOME", amount_per_page=0
        )
        weaver = MixinWeaver(mock_mixins_repo, MixinsConfig())

        assert await weaver.weave("HOME", 1, 10) == []
        mock_mixins_repo.list_visible_for.assert_not_called()

    @pytest.mark.asyncio
    async def test_remaining_slots_mode(self, mock_mixins_repo) -> None:
        weaver = MixinWeaver(mock_mixins_repo, MixinsConfig(fill_mode="remaining_slots"))

        full = await weaver.weave("HOME", 1, 3, primary_items=["a", "b", "c"])
        one_free = await weaver.weave("HOME", 2, 3, primary_items=["a", "b"])
        empty_page = await weaver.weave("HOME", 3, 3, primary_items=[])

        assert full == []
        assert _pcts(one_free) == [70]
        assert _pcts(empty_page) == [50]

    @pytest.mark.asyncio
    async def test_invalid_page(self, mock_mixins_repo) -> None:
        weaver = MixinWeaver(mock_mixins_repo, MixinsConfig())
        with pytest.raises(ValueError):
            await weaver.weave("HOME", 0, 10)
