"""Centralized application configuration using Pydantic settings."""
from functools import lru_cache
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-driven configuration for the equipment service."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    cors_origins: List[str] = Field(default_factory=lambda: ["*"], description="Allowed CORS origins")
    default_rate_limit: str = Field(default="120/minute", description="Global rate limiting rule")
    rate_limiting_enabled: bool = Field(default=True, description="Toggle to disable SlowAPI limits (useful in tests)")
    admin_pin: Optional[str] = Field(
        default=None,
        description="PIN required in the X-Admin-Pin header for admin routes. Unset leaves them open.",
    )
    default_location: str = Field(default="Shop", description="Location assigned to new equipment")
    recent_history_limit: int = Field(default=20, ge=1, description="Default size of the recent activity feed")
    seed_demo_data: bool = Field(default=False, description="Load the demo catalog on startup")
    metrics_enabled: bool = Field(default=True, description="Expose Prometheus metrics at /metrics")
    log_dir: str = Field(default="logs", description="Directory for audit log files")
    trusted_proxies: List[str] = Field(
        default_factory=list,
        description="Proxy addresses whose X-Forwarded-For header is honored for rate limiting",
    )

    service_port: int = 8000


@lru_cache
def get_settings() -> Settings:
    """Return a cached instance of the Settings object."""

    return Settings()


def reset_settings_cache() -> None:
    """Clear the cached Settings instance (useful for tests)."""

    get_settings.cache_clear()
