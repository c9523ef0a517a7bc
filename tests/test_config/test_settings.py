"""Tests for environment-driven configuration."""

import pytest
from pydantic import ValidationError

from src.config.settings import Settings
from src.feeds.config import FeedsConfig
from src.media.config import MediaConfig
from src.mixins.config import MixinsConfig


class TestSettings:
    def test_blob_store_configured(self, test_settings) -> None:
        assert test_settings.blob_store_configured

    def test_blob_store_needs_both_keys(self) -> None:
        assert not Settings(s3_access_key="a", s3_secret_key=None).blob_store_configured

    def test_env_override(self, monkeypatch) -> None:
        monkeypatch.setenv("ENVIRONMENT", "production")
        monkeypatch.setenv("REQUEST_TIMEOUT_SECONDS", "5")

        settings = Settings()

        assert settings.is_production
        assert settings.request_timeout_seconds == 5.0


class TestModuleConfigs:
    def test_feeds_prefix(self, monkeypatch) -> None:
        monkeypatch.setenv("FEEDS_MIN_INTERVAL_SECONDS", "30")
        monkeypatch.setenv("FEEDS_DEDUP_KEY", "external_id")

        config = FeedsConfig()

        assert config.min_interval_seconds == 30
        assert config.dedup_key == "external_id"

    def test_invalid_fill_mode(self) -> None:
        with pytest.raises(ValidationError):
            MixinsConfig(fill_mode="everywhere")

    def test_media_allow_list(self) -> None:
        config = MediaConfig(allowed_mime_types="image/png, image/jpeg")

        assert config.accepts("image/png")
        assert config.accepts("IMAGE/JPEG")
        assert not config.accepts("image/gif")
