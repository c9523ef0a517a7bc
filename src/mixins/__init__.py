"""Mixins: secondary content woven into paginated listings."""

from src.mixins.config import MixinsConfig
from src.mixins.repository import MixinsRepository
from src.mixins.schemas import (
    Mixin,
    MixinFilter,
    MixinPatch,
    MixinSetting,
    MixinStatus,
    MixinType,
)
from src.mixins.service import MixinsService
from src.mixins.weaver import MixinWeaver, page_slice, rank_mixins

__all__ = [
    "Mixin",
    "MixinFilter",
    "MixinPatch",
    "MixinSetting",
    "MixinStatus",
    "MixinType",
    "MixinWeaver",
    "MixinsConfig",
    "MixinsRepository",
    "MixinsService",
    "page_slice",
    "rank_mixins",
]
