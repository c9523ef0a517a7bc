"""Tests for the health endpoint."""

from fastapi.testclient import TestClient

from src.api.auth import verify_api_key
from src.config.settings import get_settings


class TestHealth:
    def test_healthy(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["components"]["database"]["status"] == "healthy"
        assert body["scheduler_running"] is True
        assert body["active_feed_tasks"] == 1

    def test_database_down(self, client, mock_db):
        mock_db.health_check.return_value = False

        assert client.get("/health").json()["status"] == "unhealthy"

    def test_database_error(self, client, mock_db):
        """Should report the error instead of failing the request."""
        mock_db.health_check.side_effect = ConnectionError("refused")

        body = client.get("/health").json()

        assert body["status"] == "unhealthy"
        assert body["components"]["database"]["details"]["error"] == "refused"

    def test_scheduler_stopped_is_degraded(self, client, mock_scheduler):
        mock_scheduler.running = False
        mock_scheduler.active_task_ids.return_value = []

        body = client.get("/health").json()

        assert body["status"] == "degraded"
        assert body["active_feed_tasks"] == 0

    def test_no_api_key_needed(self, app, monkeypatch):
        app.dependency_overrides.pop(verify_api_key)
        monkeypatch.setenv("API_KEYS", "secret")
        get_settings.cache_clear()
        try:
            with TestClient(app) as c:
                assert c.get("/health").status_code == 200
        finally:
            get_settings.cache_clear()
