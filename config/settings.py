"""Pydantic Settings — typed configuration with .env auto-loading."""

from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment / .env file."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ── Service ──────────────────────────────────────────────
    service_port: int = 5000
    cors_origins: list[str] = ["*"]
    debug: bool = False
    environment: str = "development"  # "development" | "production"
    log_level: str = "INFO"

    # ── Block runtime ────────────────────────────────────────
    # None = derive from environment (strict everywhere except production)
    block_runtime_strict: bool | None = None
    block_stage_timeout: float | None = 10.0  # seconds per stage, None = no deadline
    block_max_concurrency: int = 16  # blocks resolved in parallel per page
    fetcher_package: str = "blocks.collection"

    # ── Block cache ──────────────────────────────────────────
    block_cache_enabled: bool = True
    block_cache_ttl: int | None = None  # None = keep until a tag is invalidated
    block_cache_error_results: bool = False
    cache_store_type: str = "memory"  # "memory" or "redis"
    cache_max_entries: int = 5000  # memory store only
    cache_key_prefix: str = "block-cache:"
    redis_url: str = ""  # e.g. redis://:password@host:6379/0

    # ── Helpers ───────────────────────────────────────────────

    @property
    def strict_runtime(self) -> bool:
        """Whether stage failures should raise instead of degrading."""
        if self.block_runtime_strict is not None:
            return self.block_runtime_strict
        return self.environment.lower() != "production"


@lru_cache
def get_settings() -> Settings:
    """Singleton accessor for application settings."""
    return Settings()
