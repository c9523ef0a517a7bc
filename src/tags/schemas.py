"""Tag records shared by documents."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone

MAX_TAG_NAME_LENGTH = 100


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def normalize_tag_name(name: str) -> str:
    """Strip surrounding whitespace; raise on an empty or oversized name."""
    cleaned = name.strip()
    if not cleaned:
        raise ValueError("Tag name must not be empty")
    if len(cleaned) > MAX_TAG_NAME_LENGTH:
        raise ValueError(f"Tag name longer than {MAX_TAG_NAME_LENGTH} characters")
    return cleaned


@dataclass
class Tag:
    """A named label; documents reference tags by id through ``post_tags``."""

    name: str
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=_utc_now)
    updated_at: datetime = field(default_factory=_utc_now)

    def __post_init__(self) -> None:
        self.name = normalize_tag_name(self.name)
