"""Configuration for feed fetching, ingestion and scheduling."""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class FeedsConfig(BaseSettings):
    """Settings for RSS feed sources and their polling tasks."""

    model_config = SettingsConfigDict(
        env_prefix="FEEDS_",
        case_sensitive=False,
        extra="ignore",
    )

    fetch_timeout_seconds: float = Field(
        default=20.0,
        gt=0,
        description="HTTP timeout for one feed download",
    )
    tick_timeout_seconds: float = Field(
        default=60.0,
        gt=0,
        description="Upper bound on one tick (fetch, map and store)",
    )
    user_agent: str = Field(
        default="ContentEngine/1.0 (RSS Reader)",
        description="User-Agent header sent to feed servers",
    )
    dedup_key: Literal["title", "external_id"] = Field(
        default="title",
        description="Mapped field used as the natural key for duplicate detection",
    )
    ingested_status: Literal["HIDDEN", "DRAFT", "PUBLISHED"] = Field(
        default="DRAFT",
        description="Status given to documents created from feed items",
    )
    max_items_per_tick: int = Field(
        default=100,
        ge=1,
        le=1000,
        description="Maximum feed items considered per tick",
    )
    min_interval_seconds: int = Field(
        default=5,
        ge=1,
        description="Smallest polling interval a source may declare",
    )
    autostart: bool = Field(
        default=True,
        description="Start the scheduler with the API process",
    )
