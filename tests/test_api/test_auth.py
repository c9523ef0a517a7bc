"""Tests for X-API-KEY authentication."""

import pytest
from fastapi.testclient import TestClient

from src.api.auth import verify_api_key
from src.config.settings import get_settings


@pytest.fixture
def keyed_client(app, monkeypatch):
    """Client that enforces API keys ``k1`` and ``k2``."""
    app.dependency_overrides.pop(verify_api_key)
    monkeypatch.setenv("API_KEYS", "k1, k2")
    get_settings.cache_clear()
    with TestClient(app) as c:
        yield c
    get_settings.cache_clear()


class TestApiKey:
    def test_missing_key(self, keyed_client):
        response = keyed_client.get("/posts/doc-1")

        assert response.status_code == 401
        assert "X-API-KEY" in response.json()["detail"]

    def test_invalid_key(self, keyed_client):
        response = keyed_client.get("/posts/doc-1", headers={"X-API-KEY": "nope"})
        assert response.status_code == 401

    @pytest.mark.parametrize("key", ["k1", "k2"])
    def test_valid_keys(self, keyed_client, key):
        response = keyed_client.get("/posts/doc-1", headers={"X-API-KEY": key})
        assert response.status_code == 200

    def test_dev_mode_without_keys(self, app, monkeypatch):
        """No configured keys means every request is accepted."""
        app.dependency_overrides.pop(verify_api_key)
        monkeypatch.delenv("API_KEYS", raising=False)
        get_settings.cache_clear()
        try:
            with TestClient(app) as c:
                assert c.get("/posts/doc-1").status_code == 200
        finally:
            get_settings.cache_clear()
