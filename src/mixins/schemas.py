"""Schema definitions for mixins and mixin settings.

A mixin is secondary content (text, link, media or a pointer to a post)
spliced into primary listings. ``concat_types`` names the listing
contexts it may appear in; each context has one MixinSetting that caps
how many mixins a page of that context receives.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from src.media.schemas import Media
from src.patch import UNSET, Maybe


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class MixinType(str, Enum):
    TEXT = "TEXT"
    LINK = "LINK"
    MEDIA = "MEDIA"
    POST = "POST"


class MixinStatus(str, Enum):
    HIDDEN = "HIDDEN"
    VISIBLE = "VISIBLE"


def _check_percentage(value: int) -> None:
    if not (0 <= value <= 100):
        raise ValueError(f"Invalid order_percentage {value}. Must be between 0 and 100.")


def normalize_concat_type(value: str) -> str:
    """Concat types are compared case-insensitively and stored upper-case."""
    normalized = value.strip().upper()
    if not normalized:
        raise ValueError("concat_type must not be empty")
    return normalized


@dataclass
class Mixin:
    """A persisted mixin.

    Attributes:
        concat_types: Listing contexts the mixin may be woven into.
        order_percentage: Priority from 0 to 100; higher ranks first.
        type: What the payload represents.
        status: Only VISIBLE mixins are woven.
        text, link_url, link_text, post_id: Optional payload fields.
        media_id: Optional attached media record.
    """

    concat_types: list[str]
    order_percentage: int
    type: MixinType = MixinType.TEXT
    status: MixinStatus = MixinStatus.HIDDEN
    text: str | None = None
    link_url: str | None = None
    link_text: str | None = None
    post_id: str | None = None
    media_id: str | None = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=_utc_now)
    updated_at: datetime = field(default_factory=_utc_now)
    media: Media | None = None

    def __post_init__(self) -> None:
        _check_percentage(self.order_percentage)
        self.concat_types = list(dict.fromkeys(normalize_concat_type(c) for c in self.concat_types))


@dataclass
class MixinSetting:
    """Per-context quota: at most ``amount_per_page`` mixins per page."""

    concat_type: str
    amount_per_page: int
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=_utc_now)
    updated_at: datetime = field(default_factory=_utc_now)

    def __post_init__(self) -> None:
        self.concat_type = normalize_concat_type(self.concat_type)
        if self.amount_per_page < 0:
            raise ValueError(
                f"Invalid amount_per_page {self.amount_per_page}. Must be >= 0."
            )


@dataclass
class MixinPatch:
    """Partial mixin update; UNSET fields are left untouched.

    ``media_ref`` follows the same convention as block deltas: None
    clears the media, a string replaces it with that upload.
    """

    concat_types: Maybe[list[str]] = UNSET
    order_percentage: Maybe[int] = UNSET
    type: Maybe[MixinType] = UNSET
    status: Maybe[MixinStatus] = UNSET
    text: Maybe[str | None] = UNSET
    link_url: Maybe[str | None] = UNSET
    link_text: Maybe[str | None] = UNSET
    post_id: Maybe[str | None] = UNSET
    media_ref: Maybe[str | None] = UNSET

    def __post_init__(self) -> None:
        if self.order_percentage is not UNSET:
            _check_percentage(self.order_percentage)
        for name in ("concat_types", "order_percentage", "type", "status"):
            if getattr(self, name) is None:
                raise ValueError(f"{name} cannot be cleared")


@dataclass
class MixinFilter:
    page: int = 1
    limit: int = 10
    concat_types: list[str] = field(default_factory=list)
    type: MixinType | None = None
    status: MixinStatus | None = None

    def __post_init__(self) -> None:
        if self.page < 1 or self.limit < 1:
            raise ValueError("page and limit must be >= 1")
        self.concat_types = [normalize_concat_type(c) for c in self.concat_types]

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit
