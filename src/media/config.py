"""Configuration for media uploads and URL resolution."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_ALLOWED_MIME_TYPES = (
    "image/jpeg,image/png,image/gif,image/webp,image/svg+xml,"
    "video/mp4,video/webm,audio/mpeg,application/pdf"
)


class MediaConfig(BaseSettings):
    """Settings for the media lifecycle manager."""

    model_config = SettingsConfigDict(
        env_prefix="MEDIA_",
        case_sensitive=False,
        extra="ignore",
    )

    allowed_mime_types: str = Field(
        default=DEFAULT_ALLOWED_MIME_TYPES,
        description="Comma-separated MIME types accepted for upload ('*' = any)",
    )
    upload_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Upper bound for a single blob store write or delete",
    )
    url_ttl_seconds: int = Field(
        default=24 * 60 * 60,
        ge=60,
        description="Lifetime of presigned media URLs",
    )

    def accepts(self, mime_type: str) -> bool:
        """Check a MIME type against the allow-list."""
        allowed = {m.strip().lower() for m in self.allowed_mime_types.split(",") if m.strip()}
        return "*" in allowed or mime_type.lower() in allowed
