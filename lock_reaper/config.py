"""
Application configuration using Pydantic Settings.
Loads configuration from environment variables with sensible defaults.
"""

from functools import lru_cache

from pydantic import PositiveInt
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Redis
    redis_url: str = "redis://localhost:6379/0"
    redis_socket_connect_timeout: float = 5.0
    redis_socket_keepalive: bool = True
    redis_health_check_interval: int = 30
    redis_retry_on_timeout: bool = True
    redis_max_connections: int | None = None

    # Reaper Configuration
    # Validated per pass, an unknown strategy is reported instead of raised
    reaper_strategy: str = "atomic"
    reaper_count: PositiveInt = 1000
    reaper_scan_count: PositiveInt = 100
    reaper_interval_seconds: int = 600

    # Observability
    otel_enabled: bool = False
    otel_exporter_otlp_endpoint: str = "http://localhost:4317"
    otel_service_name: str = "lock-reaper"
    prometheus_port: int | None = 9090
    log_level: str = "INFO"
    log_format: str = "json"  # json or console


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
