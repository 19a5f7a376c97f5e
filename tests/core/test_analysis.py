"""Tests for interaction timing analysis and the waterfall."""

import pytest

from journey_replay.core.analysis import (
    PerformanceRating,
    analyze_interaction_timing,
    build_timing_entries,
    compute_waterfall,
    performance_rating,
)
from journey_replay.trace.models import NetworkTimings, event_from_dict


@pytest.fixture
def checkout_requests(checkout_trace):
    return list(checkout_trace.events[1:3])


class TestAnalyzeInteractionTiming:
    """Tests for the per-interaction summary."""

    def test_checkout_summary(self, checkout_requests):
        """Test summary numbers for the checkout click."""
        analysis = analyze_interaction_timing(1000, checkout_requests)

        assert analysis.request_count == 2
        assert analysis.time_to_all_complete == 500
        assert analysis.time_to_first_response is None
        assert analysis.slowest_request.internal_id == "jr-2"
        assert analysis.failed_requests == 0
        assert analysis.requests_with_timings == 2
        assert analysis.rating == PerformanceRating.ACCEPTABLE

    def test_with_timings(self):
        """Test first response uses blocked plus wait."""
        request = event_from_dict({
            "kind": "request",
            "ts": 1100,
            "duration": 80,
            "transferSize": 2048,
            "timings": {"blocked": 5, "wait": 40, "_blocked_queueing": 2},
        })
        analysis = analyze_interaction_timing(1000, [request])

        assert analysis.time_to_first_response == 145
        assert analysis.total_blocked == 7
        assert analysis.avg_wait_ttfb == 40
        assert analysis.total_transferred == 2048
        assert analysis.rating == PerformanceRating.EXCELLENT

    def test_no_requests(self):
        """Test no analysis without requests."""
        assert analyze_interaction_timing(1000, []) is None

    def test_data_url_not_failed(self):
        """Test data URLs without status are never failed."""
        requests = [
            event_from_dict({"kind": "request", "ts": 1001, "url": "data:image/png;base64,AAA"}),
            event_from_dict({"kind": "request", "ts": 1002, "url": "https://x.com", "status": 500, "duration": 10}),
        ]
        analysis = analyze_interaction_timing(1000, requests)
        assert analysis.failed_requests == 1

    def test_to_dict(self, checkout_requests):
        """Test serialization."""
        data = analyze_interaction_timing(1000, checkout_requests).to_dict()
        assert data["slowestRequest"] == "jr-2"
        assert data["rating"] == "Acceptable"


class TestPerformanceRating:
    """Tests for rating thresholds."""

    @pytest.mark.parametrize(
        "ms,expected",
        [
            (None, PerformanceRating.UNKNOWN),
            (199, PerformanceRating.EXCELLENT),
            (200, PerformanceRating.GOOD),
            (999, PerformanceRating.ACCEPTABLE),
            (1500, PerformanceRating.SLOW),
            (2000, PerformanceRating.VERY_SLOW),
        ],
    )
    def test_thresholds(self, ms, expected):
        """Test each rating band."""
        assert performance_rating(ms) == expected


class TestComputeWaterfall:
    """Tests for waterfall bars."""

    def test_checkout_bars(self, checkout_requests):
        """Test bar placement and the 70/30 split without timings."""
        waterfall = compute_waterfall(1000, checkout_requests)
        first, second = waterfall.bars

        assert waterfall.total_duration_ms == 500
        assert waterfall.request_count == 2
        assert first.start_percent == pytest.approx(10)
        assert first.waiting_percent == pytest.approx(14)
        assert first.receiving_percent == pytest.approx(6)
        assert second.total_percent == pytest.approx(60)
        assert first.label == "https://api.app.com/a"
        assert not first.is_slow_request
        assert not second.is_slow_request

    def test_slow_request(self):
        """Test requests over 1.5x the average are slow."""
        requests = [
            event_from_dict({"kind": "request", "ts": 0, "duration": 10}),
            event_from_dict({"kind": "request", "ts": 0, "duration": 10}),
            event_from_dict({"kind": "request", "ts": 0, "duration": 100}),
        ]
        bars = compute_waterfall(0, requests).bars
        assert [bar.is_slow_request for bar in bars] == [False, False, True]

    def test_data_url_not_slow_or_failed(self):
        """Test a data URL bar is neither slow nor failed."""
        requests = [
            event_from_dict({"kind": "request", "ts": 1000, "url": "data:image/png;base64,AAA"}),
            event_from_dict({"kind": "request", "ts": 1010, "url": "https://x.com/a", "duration": 30, "status": 200}),
        ]
        bar = compute_waterfall(1000, requests).bars[0]

        assert bar.duration_ms == 0
        assert bar.status is None
        assert not bar.is_slow_request
        assert not bar.is_failed

    def test_long_label_truncated(self):
        """Test long paths are shortened."""
        request = event_from_dict({"kind": "request", "ts": 0, "path": "/" + "a" * 80})
        label = compute_waterfall(0, [request]).bars[0].label

        assert len(label) == 50
        assert label.endswith("...")

    def test_requires_interaction_ts(self, checkout_requests):
        """Test no waterfall without an interaction timestamp."""
        assert compute_waterfall(None, checkout_requests) is None
        assert compute_waterfall(1000, []) is None


class TestTimingEntries:
    """Tests for the request timing table."""

    def test_entries_in_order(self):
        """Test only recorded phases are listed, in phase order."""
        timings = NetworkTimings(wait=40.5, blocked=1)
        assert build_timing_entries(timings) == [("Blocked", "1.00 ms"), ("Wait / TTFB", "40.50 ms")]

    def test_none(self):
        """Test no timings."""
        assert build_timing_entries(None) == []
