"""Data models for feed sources, field mappings and parsed feeds."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from src.patch import UNSET, Maybe

# Document fields a mapping may write
INTERNAL_FIELDS: frozenset[str] = frozenset({
    "title",
    "short_description",
    "content",
    "external_id",
})


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class FieldMapping:
    """``document[internal_field] = item[external_field]``.

    ``external_field`` is a key or a dotted path (``media_thumbnail.0.url``).
    A ``feed.`` prefix reads the feed's root fields instead of the item.
    """

    internal_field: str
    external_field: str

    def __post_init__(self) -> None:
        if self.internal_field not in INTERNAL_FIELDS:
            raise ValueError(
                f"Invalid internal_field {self.internal_field!r}. "
                f"Must be one of: {sorted(INTERNAL_FIELDS)}"
            )
        if not self.external_field.strip():
            raise ValueError("external_field must not be empty")


@dataclass
class FeedSource:
    """A persisted RSS source polled every ``interval`` seconds."""

    url: str
    interval: int
    creator_id: str
    mappings: list[FieldMapping] = field(default_factory=list)
    is_stopped: bool = False
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=_utc_now)
    updated_at: datetime = field(default_factory=_utc_now)

    def __post_init__(self) -> None:
        if self.interval <= 0:
            raise ValueError(f"Invalid interval {self.interval}. Must be > 0 seconds.")
        if not self.url.startswith(("http://", "https://")):
            raise ValueError(f"Invalid feed url {self.url!r}")


@dataclass
class FeedSourcePatch:
    """Partial update of a feed source; UNSET fields are untouched.

    ``mappings`` replaces the whole mapping list when set.
    """

    url: Maybe[str] = UNSET
    interval: Maybe[int] = UNSET
    is_stopped: Maybe[bool] = UNSET
    mappings: Maybe[list[FieldMapping]] = UNSET

    def __post_init__(self) -> None:
        for name in ("url", "interval", "is_stopped", "mappings"):
            if getattr(self, name) is None:
                raise ValueError(f"{name} cannot be cleared")
        if self.interval is not UNSET and self.interval <= 0:
            raise ValueError(f"Invalid interval {self.interval}. Must be > 0 seconds.")


@dataclass
class ParsedFeed:
    """A downloaded feed as plain dicts; field values may be absent."""

    root_fields: dict[str, Any]
    items: list[dict[str, Any]]


@dataclass
class FeedDescription:
    """Field names available for mapping, plus sample values."""

    url: str
    root_keys: list[str]
    item_keys: list[str]
    sample: dict[str, Any]
    item_count: int


@dataclass
class IngestionReport:
    """Outcome of one tick for one source."""

    source_id: str
    fetched: int = 0
    inserted: int = 0
    duplicates: int = 0
    unmapped: int = 0
