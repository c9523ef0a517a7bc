"""Configuration for the posts service."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class PostsConfig(BaseSettings):
    """Settings for document listing and search."""

    model_config = SettingsConfigDict(
        env_prefix="POSTS_",
        case_sensitive=False,
        extra="ignore",
    )

    default_page: int = Field(
        default=1,
        ge=1,
        description="Page used when a listing request does not name one",
    )
    default_limit: int = Field(
        default=10,
        ge=1,
        le=200,
        description="Page size used when a listing request does not name one",
    )
    max_limit: int = Field(
        default=100,
        ge=1,
        le=1000,
        description="Upper bound on the page size a caller may request",
    )
    search_limit: int = Field(
        default=20,
        ge=1,
        le=200,
        description="Maximum number of title search hits",
    )
