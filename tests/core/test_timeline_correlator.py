"""Tests for timeline correlation and marker navigation."""

import pytest

from journey_replay.core.correlator import (
    ColorTag,
    build_details,
    combined_markers,
    compute_timeline,
    find_marker,
    marker_seek_seconds,
    navigate_markers,
    playback_percent,
)
from journey_replay.trace.loader import parse_trace
from journey_replay.trace.models import event_from_dict


class TestTimeAxis:
    """Tests for the shared time axis."""

    def test_checkout_range(self, checkout_trace):
        """Test range from the video anchor to the last event."""
        timeline = compute_timeline(checkout_trace, 1000)

        assert timeline.start_ts == 1000
        assert timeline.end_ts == 2000
        assert timeline.time_range_ms == 1000

    def test_positions(self, checkout_trace):
        """Test markers are placed in percent of the range."""
        timeline = compute_timeline(checkout_trace, 1000)

        assert [m.position for m in timeline.interaction_markers] == [0, 100]
        assert timeline.request_markers[0].position == pytest.approx(5)
        assert timeline.request_markers[1].position == pytest.approx(20)

    def test_video_extends_range(self, checkout_trace):
        """Test the video end extends the axis."""
        timeline = compute_timeline(checkout_trace, 1000, 3000)
        assert timeline.end_ts == 4000
        assert timeline.time_range_ms == 3000

    def test_anchor_before_events(self, checkout_trace):
        """Test an earlier video anchor moves the start."""
        timeline = compute_timeline(checkout_trace, 500)
        assert timeline.start_ts == 500
        assert timeline.interaction_markers[0].position == pytest.approx(500 / 1500 * 100)

    def test_degenerate_range(self):
        """Test a single timestamp still gives a non-zero range."""
        trace = parse_trace({"events": [{"kind": "click", "ts": 42}]})
        timeline = compute_timeline(trace)

        assert timeline.time_range_ms == 1
        assert timeline.interaction_markers[0].position == 0

    def test_no_timestamps(self):
        """Test a trace with no time information is empty."""
        trace = parse_trace({"events": [{"kind": "click"}, {"kind": "request"}]})
        timeline = compute_timeline(trace)

        assert timeline.is_empty
        assert timeline.interaction_markers == []

    def test_no_trace(self):
        """Test nothing loaded."""
        assert compute_timeline(None).is_empty

    def test_missing_event_ts_sits_at_start(self):
        """Test an event without ts is placed at the start."""
        trace = parse_trace({"events": [{"kind": "click", "ts": 10}, {"kind": "request"}, {"kind": "click", "ts": 20}]})
        timeline = compute_timeline(trace)

        request = timeline.request_markers[0]
        assert request.position == 0
        assert request.timestamp is None


class TestAttribution:
    """Tests for linking requests to interactions."""

    def test_checkout_attribution(self, checkout_trace):
        """Test both requests belong to the first click."""
        timeline = compute_timeline(checkout_trace, 1000)
        first, second = timeline.interaction_markers

        assert [r.internal_id for r in first.related_requests] == ["jr-1", "jr-2"]
        assert second.related_requests == []
        assert all(m.triggered_by is first.event for m in timeline.request_markers)

    def test_requests_before_first_interaction(self, noisy_trace_data):
        """Test early requests are kept but unattributed."""
        timeline = compute_timeline(parse_trace(noisy_trace_data), 5000)
        early = timeline.request_markers[0]

        assert early.triggered_by is None
        assert early.from_participant == "WebApp"
        assert early.to_participant == "app.com"

    def test_window_stops_at_next_interaction(self, noisy_trace_data):
        """Test each request is attributed to the nearest preceding interaction."""
        timeline = compute_timeline(parse_trace(noisy_trace_data), 5000)
        navigation, click = timeline.interaction_markers

        assert len(navigation.related_requests) == 5
        assert [r.url for r in click.related_requests] == ["https://pay.shop.com/charge"]

    def test_array_order_authoritative(self):
        """Test attribution follows array order even when ts disagrees."""
        trace = parse_trace({
            "events": [
                {"kind": "click", "ts": 100, "host": "a.com"},
                {"kind": "click", "ts": 300, "host": "b.com"},
                {"kind": "request", "ts": 200, "url": "https://api.com/x"},
            ]
        })
        timeline = compute_timeline(trace)
        assert timeline.request_markers[0].triggered_by.host == "b.com"

    def test_current_host_follows_navigation(self, noisy_trace_data):
        """Test requests after a navigation run under its destination."""
        timeline = compute_timeline(parse_trace(noisy_trace_data), 5000)
        cart = timeline.request_markers[-2]

        assert cart.current_host == "shop.com"
        assert cart.from_participant == "shop.com"
        assert cart.to_participant == "api.shop.com"

    def test_cross_host_click(self):
        """Test a click that jumped hosts changes the current host."""
        trace = parse_trace({
            "events": [
                {"kind": "click", "ts": 1, "host": "shop.com", "targetHost": "pay.com"},
                {"kind": "request", "ts": 2, "url": "https://api.pay.com/x"},
            ]
        })
        timeline = compute_timeline(trace)

        assert timeline.request_markers[0].current_host == "pay.com"
        assert timeline.interaction_markers[0].to_participant == "shop.com → pay.com"


class TestMarkers:
    """Tests for marker contents."""

    def test_marker_identity(self, checkout_trace):
        """Test marker ids are internal ids."""
        timeline = compute_timeline(checkout_trace, 1000)
        ids = [m.id for m in timeline.interaction_markers + timeline.request_markers]
        assert ids == ["jr-0", "jr-3", "jr-1", "jr-2"]

    def test_colors(self, checkout_trace):
        """Test interaction and request colors."""
        timeline = compute_timeline(checkout_trace, 1000)
        assert timeline.interaction_markers[0].color == ColorTag.INTERACTION
        assert timeline.request_markers[0].color == ColorTag.REQUEST

    def test_details(self):
        """Test tooltip details."""
        event = event_from_dict({
            "kind": "request",
            "label": "Load cart",
            "method": "GET",
            "path": "/cart",
            "status": 200,
            "ts": 5,
        })
        assert build_details(event) == "Load cart\nGET /cart\nStatus: 200\nts: 5"

    def test_to_dict(self, checkout_trace):
        """Test marker serialization."""
        timeline = compute_timeline(checkout_trace, 1000)
        click = timeline.interaction_markers[0].to_dict()
        request = timeline.request_markers[0].to_dict()

        assert click["relatedRequests"] == ["jr-1", "jr-2"]
        assert request["triggeredBy"] == "jr-0"
        assert request["currentHost"] == "app.com"
        assert timeline.to_dict()["timeRangeMs"] == 1000


class TestNavigationAndVideo:
    """Tests for marker stepping and video sync."""

    def test_combined_markers_time_order(self, checkout_trace):
        """Test combined markers are sorted by timestamp."""
        markers = combined_markers(compute_timeline(checkout_trace, 1000))
        assert [m.id for m in markers] == ["jr-0", "jr-1", "jr-2", "jr-3"]

    def test_navigate(self, checkout_trace):
        """Test stepping clamps at both ends."""
        markers = combined_markers(compute_timeline(checkout_trace, 1000))

        assert navigate_markers(markers, None, "next").id == "jr-0"
        assert navigate_markers(markers, None, "prev").id == "jr-3"
        assert navigate_markers(markers, "jr-1", "next").id == "jr-2"
        assert navigate_markers(markers, "jr-3", "next").id == "jr-3"
        assert navigate_markers(markers, "jr-0", "prev").id == "jr-0"
        assert navigate_markers([], None, "next") is None

    def test_find_marker(self, checkout_trace):
        """Test marker lookup."""
        markers = combined_markers(compute_timeline(checkout_trace, 1000))
        assert find_marker(markers, "jr-2").event.url == "https://api.app.com/b"
        assert find_marker(markers, None) is None

    def test_playback_percent(self, checkout_trace):
        """Test the playhead position."""
        timeline = compute_timeline(checkout_trace, 1000)

        assert playback_percent(timeline, 1000, 500) == pytest.approx(50)
        assert playback_percent(timeline, 1000, None) is None
        assert playback_percent(compute_timeline(None), 1000, 500) is None

    def test_seek_seconds(self, checkout_trace):
        """Test seeking into the video."""
        marker = compute_timeline(checkout_trace, 1000).request_markers[1]

        assert marker_seek_seconds(marker, 1000) == pytest.approx(0.2)
        assert marker_seek_seconds(marker, 1500) is None
        assert marker_seek_seconds(marker, 1000, 100) is None
        assert marker_seek_seconds(marker, None) is None
