"""Tests for request/correlation ID middleware."""

import re

# UUID v4 regex pattern
UUID_RE = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$")


class TestCorrelationIdMiddleware:
    """Test X-Request-ID middleware behavior."""

    def test_generates_uuid_when_no_header(self, client):
        """Request without header gets a UUID v4 in response."""
        resp = client.get("/health")
        assert resp.status_code == 200
        request_id = resp.headers.get("X-Request-ID")
        assert request_id is not None
        assert UUID_RE.match(request_id), f"Expected UUID v4, got: {request_id}"

    def test_echoes_custom_request_id(self, client):
        """Request with X-Request-ID header echoes it back."""
        resp = client.get("/health", headers={"X-Request-ID": "custom-id-123"})
        assert resp.headers.get("X-Request-ID") == "custom-id-123"

    def test_echoes_correlation_id(self, client):
        """Request with X-Correlation-ID header echoes it back as X-Request-ID."""
        resp = client.get("/health", headers={"X-Correlation-ID": "corr-456"})
        assert resp.headers.get("X-Request-ID") == "corr-456"

    def test_request_id_takes_priority_over_correlation_id(self, client):
        """X-Request-ID takes priority over X-Correlation-ID."""
        resp = client.get(
            "/health",
            headers={
                "X-Request-ID": "req-id",
                "X-Correlation-ID": "corr-id",
            },
        )
        assert resp.headers.get("X-Request-ID") == "req-id"

    def test_error_responses_carry_request_id(self, client, mock_posts_service):
        """Mapped domain errors still pass through the middleware."""
        from src.errors import NotFoundError

        mock_posts_service.get_post.side_effect = NotFoundError("Document", "x")

        resp = client.get("/posts/x", headers={"X-Request-ID": "err-1"})

        assert resp.status_code == 404
        assert resp.headers.get("X-Request-ID") == "err-1"


def test_root(client):
    assert client.get("/").json()["service"] == "Content Engine API"
