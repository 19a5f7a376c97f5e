"""Tests for the replay session API."""

import json

import pytest
from fastapi.testclient import TestClient

from journey_replay.api.server import app
from journey_replay.api.sessions import _sessions

BASE = "/api/v1/sessions"


@pytest.fixture
def client(mock_env_vars):
    """API client with an empty session store."""
    _sessions.clear()
    yield TestClient(app)
    _sessions.clear()


@pytest.fixture
def session_id(client, checkout_trace_data):
    """Id of a session with the checkout trace loaded."""
    response = client.post(BASE, json={"trace": checkout_trace_data, "name": "checkout.json"})
    assert response.status_code == 201
    return response.json()["id"]


# =============================================================================
# Session Lifecycle
# =============================================================================


class TestSessionLifecycle:
    """Tests for creating, listing and deleting sessions."""

    def test_health(self, client):
        """Test the health endpoint."""
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_create(self, client, session_id):
        """Test the summary of a new session."""
        data = client.get(f"{BASE}/{session_id}").json()

        assert data["loaded"] is True
        assert data["trace_name"] == "checkout.json"
        assert data["event_count"] == 4
        assert data["visible_event_count"] == 4
        assert data["has_modifications"] is False

    def test_create_empty(self, client):
        """Test a session can start without a trace."""
        response = client.post(BASE, json={})

        assert response.status_code == 201
        assert response.json()["loaded"] is False

    def test_create_bad_trace(self, client):
        """Test a malformed trace is rejected."""
        response = client.post(BASE, json={"trace": {"events": "nope"}})

        assert response.status_code == 400
        assert "must be a list" in response.json()["detail"]
        assert _sessions == {}

    def test_reload_bad_trace_keeps_old(self, client, session_id):
        """Test a failed reload leaves the session unchanged."""
        response = client.put(f"{BASE}/{session_id}/trace", json={"trace": {"events": [1]}})

        assert response.status_code == 400
        assert client.get(f"{BASE}/{session_id}").json()["event_count"] == 4

    def test_reload_with_odd_kind(self, client, session_id):
        """Test events whose kind is not a string still load."""
        response = client.put(
            f"{BASE}/{session_id}/trace",
            json={"trace": {"events": [{"kind": ["click"], "ts": 1}, {"kind": {}, "ts": 2}]}},
        )

        assert response.status_code == 200
        assert response.json()["event_count"] == 2

    def test_list_and_delete(self, client, session_id):
        """Test listing and deleting."""
        assert [s["id"] for s in client.get(BASE).json()] == [session_id]

        assert client.delete(f"{BASE}/{session_id}").json()["success"] is True
        assert client.get(f"{BASE}/{session_id}").status_code == 404

    def test_unknown_session(self, client):
        """Test unknown sessions are 404."""
        assert client.get(f"{BASE}/missing/timeline").status_code == 404


# =============================================================================
# Timeline and Diagram
# =============================================================================


class TestTimelineAndDiagram:
    """Tests for derived views."""

    def test_timeline(self, client, session_id):
        """Test the timeline payload."""
        client.put(f"{BASE}/{session_id}/video", json={"progress_ms": 500})
        data = client.get(f"{BASE}/{session_id}/timeline").json()

        assert data["timeRangeMs"] == 1000
        assert [m["id"] for m in data["interactionMarkers"]] == ["jr-0", "jr-3"]
        assert data["markerOrder"] == ["jr-0", "jr-1", "jr-2", "jr-3"]
        assert data["playbackPercent"] == pytest.approx(50)

    def test_diagram(self, client, session_id):
        """Test the diagram payload."""
        data = client.get(f"{BASE}/{session_id}/diagram").json()

        assert data["script"].startswith("sequenceDiagram")
        assert data["sequenceMap"] == {"1": "jr-0", "2": "jr-1", "4": "jr-2", "6": "jr-3"}

    def test_select_diagram_message(self, client, session_id):
        """Test selecting a diagram message."""
        data = client.post(f"{BASE}/{session_id}/diagram/4/select").json()

        assert data["marker"]["id"] == "jr-2"
        assert data["seekSeconds"] == pytest.approx(0.2)
        assert client.post(f"{BASE}/{session_id}/diagram/3/select").status_code == 404

    def test_navigate(self, client, session_id):
        """Test marker stepping."""
        first = client.post(f"{BASE}/{session_id}/navigate", json={"direction": "next"}).json()
        assert first["marker"]["id"] == "jr-0"
        assert client.post(f"{BASE}/{session_id}/navigate", json={"direction": "up"}).status_code == 422

    def test_analysis(self, client, session_id):
        """Test interaction analysis."""
        data = client.get(f"{BASE}/{session_id}/markers/jr-0/analysis").json()

        assert data["timing"]["requestCount"] == 2
        assert len(data["waterfall"]["bars"]) == 2

    def test_request_analysis(self, client, session_id):
        """Test request timings and the suggested filter."""
        data = client.get(f"{BASE}/{session_id}/markers/jr-1/analysis").json()

        assert data["timings"] == []
        assert data["suggestedFilter"] == r"api\.app\.com"

    def test_search(self, client, session_id):
        """Test search results."""
        data = client.get(f"{BASE}/{session_id}/search", params={"q": "checkout"}).json()

        assert data["interactions"] == ["jr-3"]
        assert data["hosts"] == []


# =============================================================================
# Edits
# =============================================================================


class TestEdits:
    """Tests for overrides and filters through the API."""

    def test_edit_label(self, client, session_id):
        """Test relabeling an event."""
        data = client.patch(f"{BASE}/{session_id}/events/jr-0", json={"label": "Add to cart"}).json()

        assert data["label_edit_count"] == 1
        assert data["modification_summary"] == "1 label edited"

    def test_remove_and_reset(self, client, session_id):
        """Test removing and resetting an event."""
        removed = client.patch(f"{BASE}/{session_id}/events/jr-1", json={"removed": True}).json()
        assert removed["removed_count"] == 1
        assert client.get(f"{BASE}/{session_id}/removed").json()["events"][0]["jrInternalId"] == "jr-1"

        reset = client.delete(f"{BASE}/{session_id}/events/jr-1/override").json()
        assert reset["removed_count"] == 0

    def test_edit_unknown_event(self, client, session_id):
        """Test unknown events are 404."""
        response = client.patch(f"{BASE}/{session_id}/events/jr-99", json={"label": "x"})
        assert response.status_code == 404

    def test_edit_without_trace(self, client):
        """Test edits need a loaded trace."""
        empty_id = client.post(BASE, json={}).json()["id"]
        response = client.patch(f"{BASE}/{empty_id}/events/jr-0", json={"label": "x"})
        assert response.status_code == 409

    def test_add_filter_pattern(self, client, session_id):
        """Test filtering a host."""
        data = client.post(
            f"{BASE}/{session_id}/filters/patterns",
            json={"pattern": r"api\.app\.com", "group_id": "custom"},
        ).json()

        assert data["ignored_counts"] == {"custom": 2}
        assert data["visible_event_count"] == 2

    def test_add_filter_pattern_unknown_group(self, client, session_id):
        """Test unknown groups are rejected."""
        response = client.post(
            f"{BASE}/{session_id}/filters/patterns",
            json={"pattern": "x", "group_id": "nope"},
        )
        assert response.status_code == 400

    def test_filter_preview(self, client, session_id):
        """Test counting matches before adding a pattern."""
        data = client.get(f"{BASE}/{session_id}/filters/preview", params={"pattern": "/b$"}).json()
        assert data["matches"] == 1

    def test_filters_round_trip(self, client, session_id):
        """Test exporting and importing filter settings."""
        settings = client.get(f"{BASE}/{session_id}/filters").json()["settings"]
        settings["customRegexText"] = "api"
        client.put(f"{BASE}/{session_id}/filters", json=settings)

        exported = client.get(f"{BASE}/{session_id}/filters/export").json()
        assert exported["filename"].startswith("journey-filters-")

        client.post(f"{BASE}/{session_id}/filters/reset")
        assert client.get(f"{BASE}/{session_id}/filters").json()["hasChanges"] is False

        imported = client.post(f"{BASE}/{session_id}/filters/import", json=json.loads(exported["content"]))
        assert imported.json()["ignored_counts"] == {"custom": 2}

    def test_import_bad_filters(self, client, session_id):
        """Test malformed filter files are rejected."""
        response = client.post(f"{BASE}/{session_id}/filters/import", json={"version": 1})
        assert response.status_code == 400


class TestExports:
    """Tests for export endpoints."""

    def test_export_trace(self, client, session_id):
        """Test the filtered trace export."""
        data = client.get(f"{BASE}/{session_id}/export/trace").json()

        assert data["success"] is True
        assert data["filename"] == "checkout-filtered.json"

    def test_export_diagram(self, client, session_id):
        """Test the diagram export."""
        data = client.get(f"{BASE}/{session_id}/export/diagram").json()
        assert data["filename"] == "checkout-diagram.mmd"

    def test_export_without_trace(self, client):
        """Test exports need a loaded trace."""
        empty_id = client.post(BASE, json={}).json()["id"]
        assert client.get(f"{BASE}/{empty_id}/export/trace").status_code == 409
