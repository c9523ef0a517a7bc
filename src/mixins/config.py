"""Configuration for mixin weaving."""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class MixinsConfig(BaseSettings):
    """Settings for how mixins are woven into listing pages."""

    model_config = SettingsConfigDict(
        env_prefix="MIXINS_",
        case_sensitive=False,
        extra="ignore",
    )

    fill_mode: Literal["side_list", "remaining_slots"] = Field(
        default="side_list",
        description=(
            "side_list: every page gets up to amount_per_page mixins next to the "
            "primary items. remaining_slots: a page gets at most as many mixins as "
            "it has free slots below the primary page size."
        ),
    )
