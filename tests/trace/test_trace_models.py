"""Tests for trace event models."""

import pytest

from journey_replay.trace.models import (
    INTERNAL_ID_KEY,
    ClickEvent,
    NavigationEvent,
    NetworkTimings,
    OtherEvent,
    RequestEvent,
    SpaNavigationEvent,
    TraceFile,
    event_from_dict,
)


class TestEventFromDict:
    """Tests for picking the event variant."""

    @pytest.mark.parametrize(
        "kind,expected",
        [
            ("click", ClickEvent),
            ("navigation", NavigationEvent),
            ("spa-navigation", SpaNavigationEvent),
            ("request", RequestEvent),
            ("scroll", OtherEvent),
        ],
    )
    def test_variant_by_kind(self, kind, expected):
        """Test each kind maps to its variant."""
        assert type(event_from_dict({"kind": kind})) is expected

    def test_missing_kind_is_other(self):
        """Test an event without kind is carried as OtherEvent."""
        event = event_from_dict({"ts": 5})
        assert isinstance(event, OtherEvent)
        assert event.kind is None
        assert event.ts == 5

    def test_interaction_flags(self):
        """Test interaction and request classification."""
        assert event_from_dict({"kind": "click"}).is_interaction
        assert event_from_dict({"kind": "spa-navigation"}).is_interaction
        assert event_from_dict({"kind": "request"}).is_request
        assert not event_from_dict({"kind": "scroll"}).is_interaction


class TestRequestEvent:
    """Tests for request event parsing."""

    def test_nested_models(self):
        """Test timings and bodies are parsed into their models."""
        event = event_from_dict({
            "kind": "request",
            "url": "https://api.app.com/a",
            "timings": {"blocked": 1.5, "wait": 40, "_workerStart": 2},
            "responseBody": {"mimeType": "application/json", "text": "e30=", "encoding": "base64"},
        })

        assert isinstance(event.timings, NetworkTimings)
        assert event.timings.wait == 40
        assert event.timings.worker_start == 2
        assert event.timings.phase("_workerStart") == 2
        assert event.response_body.is_base64
        assert event.request_body is None

    def test_data_url(self):
        """Test data URL detection."""
        assert event_from_dict({"kind": "request", "url": "data:image/png;base64,AAA"}).is_data_url
        assert not event_from_dict({"kind": "request", "url": "https://x.com"}).is_data_url


class TestRoundTrip:
    """Tests that serializing reproduces the input."""

    def test_unknown_fields_preserved(self):
        """Test unknown keys survive a round trip."""
        raw = {
            "kind": "request",
            "id": "r1",
            "ts": 10,
            "url": "https://x.com/a",
            "initiator": {"type": "script"},
            "timings": {"wait": 3, "customPhase": 7},
        }
        assert event_from_dict(raw).to_dict() == raw

    def test_wrong_typed_field_kept_verbatim(self):
        """Test a value of the wrong type is not coerced or lost."""
        raw = {"kind": "click", "ts": "soon", "host": "app.com"}
        event = event_from_dict(raw)

        assert event.ts is None
        assert event.to_dict() == raw

    def test_unknown_kind_round_trip(self):
        """Test unknown kinds pass through untouched."""
        raw = {"kind": "scroll", "ts": 3, "deltaY": 120}
        assert event_from_dict(raw).to_dict() == raw

    def test_trace_file_round_trip(self, checkout_trace_data):
        """Test a whole trace file round trip."""
        checkout_trace_data["recorder"] = "ext-2.1"
        trace = TraceFile.from_dict(checkout_trace_data)

        assert trace.video_started_at == 1000
        assert trace.video_available is True
        assert trace.event_count == 4
        assert trace.to_dict() == checkout_trace_data


class TestEventCopies:
    """Tests for copy helpers."""

    def test_with_label_leaves_original(self):
        """Test with_label returns a new event."""
        event = event_from_dict({"kind": "click", "label": "Old"})
        renamed = event.with_label("New")

        assert renamed.label == "New"
        assert event.label == "Old"
        assert type(renamed) is ClickEvent

    def test_internal_id_serialized(self):
        """Test internal id uses its own key."""
        event = event_from_dict({"kind": "click"}).with_internal_id("jr-0")
        assert event.to_dict()[INTERNAL_ID_KEY] == "jr-0"
