"""Configuration management for Journey Replay."""

from enum import Enum

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class LogLevel(str, Enum):
    """Supported log levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="JOURNEY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Logging
    log_level: LogLevel = Field(LogLevel.INFO, description="Root log level")
    log_json: bool = Field(False, description="Render logs as JSON instead of console output")

    # HTTP surface for the browser UI
    api_host: str = Field("localhost", description="Bind address for the API server")
    api_port: int = Field(8000, ge=1, le=65535, description="Port for the API server")
    cors_origins: list[str] = Field(
        default_factory=lambda: ["*"],
        description="Origins allowed to call the API (JSON list in the environment)",
    )

    # Trace ingestion
    max_trace_events: int = Field(
        200_000,
        ge=1,
        description="Upper bound on events accepted from a single trace file",
    )
    apply_filters_by_default: bool = Field(
        True,
        description="Whether new sessions start with the preset filter groups active",
    )


def get_settings() -> Settings:
    """Get application settings."""
    return Settings()
