"""Tests for configuration."""

import pytest
from pydantic import ValidationError


class TestSettings:
    """Tests for Settings loading."""

    def test_defaults(self, monkeypatch):
        """Test default values."""
        from journey_replay.config import LogLevel, Settings

        for name in ("JOURNEY_LOG_LEVEL", "JOURNEY_API_PORT", "JOURNEY_MAX_TRACE_EVENTS"):
            monkeypatch.delenv(name, raising=False)

        settings = Settings(_env_file=None)

        assert settings.log_level == LogLevel.INFO
        assert settings.api_port == 8000
        assert settings.max_trace_events == 200_000
        assert settings.apply_filters_by_default is True

    def test_env_overrides(self, mock_env_vars):
        """Test JOURNEY_ environment variables."""
        from journey_replay.config import LogLevel, get_settings

        settings = get_settings()

        assert settings.log_level == LogLevel.DEBUG
        assert settings.max_trace_events == 1000

    def test_invalid_port(self, monkeypatch):
        """Test port validation."""
        from journey_replay.config import Settings

        monkeypatch.setenv("JOURNEY_API_PORT", "70000")
        with pytest.raises(ValidationError):
            Settings(_env_file=None)
