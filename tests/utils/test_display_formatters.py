"""Tests for display formatters."""

import pytest

from journey_replay.utils.formatters import (
    PLACEHOLDER,
    clamp_percent,
    format_bytes,
    format_ms,
    format_timestamp,
    format_waterfall_duration,
)


class TestClampPercent:
    """Tests for clamp_percent."""

    @pytest.mark.parametrize("value,expected", [(-5, 0), (42.5, 42.5), (140, 100)])
    def test_clamp(self, value, expected):
        """Test values are clamped into 0-100."""
        assert clamp_percent(value) == expected


class TestFormatters:
    """Tests for value formatting."""

    def test_format_ms(self):
        """Test millisecond formatting."""
        assert format_ms(12.345) == "12.35 ms"
        assert format_ms(None) == PLACEHOLDER
        assert format_ms(float("nan")) == PLACEHOLDER

    def test_format_bytes(self):
        """Test size formatting."""
        assert format_bytes(512) == "512 bytes"
        assert format_bytes(2048) == "2.00 KB"
        assert format_bytes(3 * 1024 * 1024) == "3.00 MB"
        assert format_bytes(None) == PLACEHOLDER

    def test_format_timestamp(self):
        """Test missing timestamps use the placeholder."""
        assert format_timestamp(None) == PLACEHOLDER
        assert format_timestamp(0) == PLACEHOLDER
        assert "·" in format_timestamp(1_700_000_000_000)

    @pytest.mark.parametrize(
        "ms,expected",
        [(0.5, "<1ms"), (12.4, "12ms"), (999, "999ms"), (1500, "1.50s")],
    )
    def test_format_waterfall_duration(self, ms, expected):
        """Test compact waterfall durations."""
        assert format_waterfall_duration(ms) == expected
