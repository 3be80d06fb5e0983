"""
Application configuration using Pydantic Settings.
Loads configuration from environment variables with sensible defaults.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from batcher.constants import (
    DEFAULT_CONCURRENCY_LIMIT,
    DEFAULT_COOLDOWN_MS,
    DEFAULT_MAX_FAILURES_PER_OPERATION,
    DEFAULT_THROTTLE_MS,
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Persistence
    export_completed_jobs_dir: str | None = None

    # Job defaults, applied when a request leaves an option unset
    default_concurrency_limit: int = DEFAULT_CONCURRENCY_LIMIT
    default_max_failures_per_operation: int = DEFAULT_MAX_FAILURES_PER_OPERATION
    default_cooldown_ms: int = DEFAULT_COOLDOWN_MS
    default_throttle_ms: int = DEFAULT_THROTTLE_MS

    # API Configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # Observability
    otel_exporter_otlp_endpoint: str | None = None
    otel_service_name: str = "batcher"
    log_level: str = "INFO"
    log_format: str = "json"  # json or console


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
