"""
Mixin weaving.

For a listing context (``concat_type``) and a page number, pick the
mixins that accompany that page:

    candidates = VISIBLE mixins whose concat_types include the context
    ranked     = candidates by order_percentage desc, then id asc
    page p     = ranked[(p - 1) * amount : (p - 1) * amount + take]

``take`` is ``amount_per_page`` in side-list mode. In remaining-slots
mode it shrinks to the free slots of the primary page. The slice start
is the same in both modes, so consecutive pages never share a mixin.
"""

from collections.abc import Iterable, Sequence
from typing import Any

import structlog

from src.errors import InvalidConcatTypeError
from src.mixins.config import MixinsConfig
from src.mixins.repository import MixinsRepository
from src.mixins.schemas import Mixin, MixinStatus, normalize_concat_type
from src.observability.metrics import get_metrics

logger = structlog.get_logger(__name__)


def rank_mixins(mixins: Iterable[Mixin], concat_type: str) -> list[Mixin]:
    """Visible mixins for ``concat_type``, highest priority first."""
    eligible = [
        m for m in mixins
        if m.status == MixinStatus.VISIBLE and concat_type in m.concat_types
    ]
    return sorted(eligible, key=lambda m: (-m.order_percentage, m.id))


def page_slice(
    ranked: Sequence[Mixin],
    page: int,
    amount_per_page: int,
    take: int | None = None,
) -> list[Mixin]:
    """Page-aligned slice of a ranked pool."""
    if page < 1:
        raise ValueError(f"page must be >= 1, got {page}")
    take = amount_per_page if take is None else min(take, amount_per_page)
    start = (page - 1) * amount_per_page
    return list(ranked[start:start + max(take, 0)])


class MixinWeaver:
    """Read-only selection of mixins for one listing page."""

    def __init__(
        self,
        repository: MixinsRepository,
        config: MixinsConfig | None = None,
    ) -> None:
        self._repo = repository
        self._config = config or MixinsConfig()
        self._metrics = get_metrics()

    async def weave(
        self,
        concat_type: str,
        page: int,
        primary_page_size: int,
        primary_items: Sequence[Any] = (),
    ) -> list[Mixin]:
        """
        Mixins to splice into page ``page`` of a ``concat_type`` listing.

        Args:
            concat_type: Listing context
            page: 1-based page number of the primary listing
            primary_page_size: Page size of the primary listing
            primary_items: Items on the primary page (used by remaining_slots)

        Raises:
            InvalidConcatTypeError: no MixinSetting exists for the context
            ValueError: page < 1
        """
        if page < 1:
            raise ValueError(f"page must be >= 1, got {page}")

        concat_type = normalize_concat_type(concat_type)
        setting = await self._repo.get_setting(concat_type)
        if setting is None:
            raise InvalidConcatTypeError(concat_type)

        take = None
        if self._config.fill_mode == "remaining_slots":
            take = max(primary_page_size - len(primary_items), 0)

        if setting.amount_per_page == 0 or take == 0:
            return []

        ranked = rank_mixins(await self._repo.list_visible_for(concat_type), concat_type)
        selected = page_slice(ranked, page, setting.amount_per_page, take)

        self._metrics.record_mixins(concat_type, len(selected))
        logger.debug(
            "Mixins woven",
            concat_type=concat_type,
            page=page,
            pool=len(ranked),
            selected=len(selected),
            fill_mode=self._config.fill_mode,
        )
        return selected
