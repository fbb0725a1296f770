"""Application Configuration - environment-driven settings via pydantic-settings.

Invariants:
    - All secrets come from environment variables (never hardcoded)
    - get_settings() is cached (lru_cache) - single instance per process
    - profile_fetch_retries / profile_fetch_interval_ms default to the engine's
      PROFILE_FETCH_POLICY (5 attempts, 500ms apart)

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env support
    - Defaults provided for all non-secret settings
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Database (SQL profile backend)
    database_url: str = (
        "postgresql+asyncpg://clansync:clansync@db:5432/clansync"
    )

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Hosted Postgres exposes postgresql:// but asyncpg needs postgresql+asyncpg://."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    database_pool_size: int = 20
    database_max_overflow: int = 10

    # Profile store backend
    profile_backend: Literal["sql", "supabase"] = "sql"

    # Supabase (identity service, optional profile backend)
    supabase_url: str = ""
    supabase_anon_key: str = ""

    # Profile fetch retry budget
    profile_fetch_retries: int = Field(5, ge=1)
    profile_fetch_interval_ms: int = Field(500, ge=0)

    # API
    cors_origins: list[str] = ["http://localhost:8081"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"

    @property
    def identity_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_anon_key)


@lru_cache
def get_settings() -> Settings:
    return Settings()
