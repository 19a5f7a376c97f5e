"""Tests for the request logging middleware."""

import pytest
from fastapi.testclient import TestClient

from journey_replay.api.middleware import session_id_from_path
from journey_replay.api.server import app
from journey_replay.api.sessions import _sessions


class TestSessionIdFromPath:
    """Tests for extracting the session id from a request path."""

    @pytest.mark.parametrize(
        "path,expected",
        [
            ("/api/v1/sessions/abc/timeline", "abc"),
            ("/api/v1/sessions/abc", "abc"),
            ("/api/v1/sessions", None),
            ("/health", None),
        ],
    )
    def test_extract(self, path, expected):
        """Test only session-scoped paths yield an id."""
        assert session_id_from_path(path) == expected


class TestRequestContextMiddleware:
    """Tests for requests passing through the middleware."""

    def test_health_counts_loaded_sessions(self, mock_env_vars, checkout_trace_data):
        """Test the health payload counts sessions with and without traces."""
        _sessions.clear()
        client = TestClient(app)
        client.post("/api/v1/sessions", json={})
        client.post("/api/v1/sessions", json={"trace": checkout_trace_data})

        data = client.get("/health").json()
        _sessions.clear()

        assert data["sessions"] == 2
        assert data["loaded_sessions"] == 1

    def test_session_routes_unaffected(self, mock_env_vars):
        """Test error responses pass through unchanged."""
        _sessions.clear()
        response = TestClient(app).get("/api/v1/sessions/missing")

        assert response.status_code == 404
