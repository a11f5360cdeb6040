"""Configuration for edgepurge."""

from functools import lru_cache
from typing import Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from edgepurge.duration import parse_duration


class EdgePurgeSettings(BaseSettings):
    """Settings, read from ``EDGE_PURGE_*`` environment variables or ``.env``."""

    model_config = SettingsConfigDict(
        env_prefix="EDGE_PURGE_",
        env_file=".env",
        extra="ignore",
    )

    # Feature flags
    enabled: bool = True
    store_tags_enabled: bool = True
    invalidations_enabled: bool = True

    # Fingerprints
    environment: str = "production"
    tag_format: str = "app-%environment%-%sha1%"
    excluded_tags: list[str] = Field(default_factory=list)

    # Invalidations
    invalidation_strategy: Literal["batch", "immediate"] = "batch"
    batch_roots: list[str] = Field(default_factory=lambda: ["/*"])
    batch_size: int = Field(default=100, ge=1)
    # Legacy behaviour: every sweep flushes the entire cache
    sweep_always_flush: bool = False
    full_invalidation_attempts: int = Field(default=3, ge=1)
    full_invalidation_wait: float = 2.0

    # Domains
    allowed_domains: list[str] = Field(default_factory=list)
    blocked_domains: list[str] = Field(default_factory=list)

    # Storage
    database_url: str = "sqlite:///edgepurge.db"
    url_max_length: int = Field(default=255, ge=16, le=255)
    store_attempts: int = Field(default=5, ge=1)

    # CDN provider, as "package.module:ClassName" or "package.module.ClassName"
    provider: str | None = None
    provider_options: dict[str, Any] = Field(default_factory=dict)

    @field_validator("full_invalidation_wait", mode="before")
    @classmethod
    def _parse_wait(cls, value: Any) -> float:
        return parse_duration(value)


@lru_cache()
def get_settings() -> EdgePurgeSettings:
    """Get cached settings instance."""
    return EdgePurgeSettings()
