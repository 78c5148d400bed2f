from __future__ import annotations

from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """
    Application-level settings for the forum service.

    This is separate from forum_api.db.config.Settings, which focuses on the database layer.
    """

    # FastAPI metadata
    APP_NAME: str = Field(default="Forum API")
    APP_DESCRIPTION: str = Field(
        default=(
            "Data access API for a discussion board: forums, topics, posts, "
            "moderation queues and board statistics."
        )
    )
    APP_VERSION: str = Field(default="0.1.0")

    # CORS
    CORS_ORIGINS: List[str] = Field(
        default_factory=lambda: ["*"],
        description="Comma-separated list or JSON array of allowed origins. Default: *",
    )
    CORS_ALLOW_CREDENTIALS: bool = Field(default=True)
    CORS_ALLOW_METHODS: List[str] = Field(default_factory=lambda: ["*"])
    CORS_ALLOW_HEADERS: List[str] = Field(default_factory=lambda: ["*"])

    # Startup behavior
    RUN_MIGRATIONS_ON_STARTUP: bool = Field(
        default=False,
        description="If true, run Alembic migrations (upgrade head) at app startup.",
    )

    # Board behavior
    QUERY_IGNORE_TOPIC_MOVED: bool = Field(
        default=False,
        description="If true, forum listings leave out topics that were moved to another forum.",
    )
    TOPICS_PER_PAGE: int = Field(default=15, ge=1, description="Default page size for topic listings.")

    # Query cache
    CACHE_URL: str = Field(
        default="mem://?size=10000",
        description="cashews backend URL, e.g. mem://?size=10000 or redis://localhost:6379/0",
    )
    CACHE_TTL_SECONDS: int = Field(default=600, ge=1, description="Lifetime of cached query results.")

    # Environment label
    ENVIRONMENT: Optional[str] = Field(
        default=None, description="Environment label (dev/test/prod)"
    )

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def _parse_cors_origins(cls, v):
        """
        Accept both JSON array format and comma-separated formats for CORS origins.
        """
        if v is None:
            return ["*"]
        if isinstance(v, str):
            parts = [p.strip() for p in v.split(",") if p.strip()]
            return parts or ["*"]
        if isinstance(v, list):
            return v or ["*"]
        return ["*"]


# PUBLIC_INTERFACE
@lru_cache
def get_app_settings() -> AppSettings:
    """Return the process-wide AppSettings populated from environment variables."""
    return AppSettings()
