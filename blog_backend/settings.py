"""Typed configuration for the blog favorites backend.

Values come from the process environment and an optional ``.env`` file. The
derived properties are the single place that interprets them, so the engine
factory, the startup preflight and the CORS middleware agree on the result.
"""

from __future__ import annotations

import logging
from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Populate os.environ before the first AppSettings() so code reading the
# environment directly sees the same values.
load_dotenv()

DEFAULT_SQLITE_DATABASE_URL = "sqlite+aiosqlite:///./data/blog.db"
DEFAULT_REDIS_URL = "redis://localhost:6379/0"
DEFAULT_FAVORITE_COUNT_CACHE_TTL = 60
DEFAULT_LOG_LEVEL = "INFO"

POSTGRES_ASYNC_PREFIX = "postgresql+psycopg://"
POSTGRES_SYNC_PREFIXES = ("postgres://", "postgresql://")
SQLITE_ASYNC_PREFIX = "sqlite+aiosqlite://"


class AppSettings(BaseSettings):
    """Environment-backed settings; field names double as constructor keywords."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    database_url: str | None = Field(
        default=None,
        alias="DATABASE_URL",
        description=(
            "SQLAlchemy URL. postgres:// and postgresql:// are rewritten to the"
            " psycopg async driver; unset means the local SQLite file."
        ),
    )
    use_sqlite: bool = Field(
        default=False,
        alias="USE_SQLITE",
        description="Ignore DATABASE_URL and use the local SQLite file.",
    )
    redis_url: str = Field(
        default=DEFAULT_REDIS_URL,
        alias="REDIS_URL",
        description="Redis holding cached favorite counts.",
    )
    favorite_count_cache_ttl: int = Field(
        default=DEFAULT_FAVORITE_COUNT_CACHE_TTL,
        alias="FAVORITE_COUNT_CACHE_TTL",
        ge=1,
        description="Seconds a cached per-post favorite count stays valid.",
    )
    cors_allow_origins_raw: str | None = Field(
        default=None,
        alias="CORS_ALLOW_ORIGINS",
        description="Comma-separated origins allowed in addition to local dev servers.",
    )
    cors_allow_origin_regex: str | None = Field(
        default=None,
        alias="CORS_ALLOW_ORIGIN_REGEX",
    )
    log_level: str = Field(default=DEFAULT_LOG_LEVEL, alias="LOG_LEVEL")
    slow_query_threshold: float = Field(
        default=0.1,
        alias="SLOW_QUERY_THRESHOLD",
        description="Statements slower than this many seconds are logged.",
    )

    @property
    def resolved_database_url(self) -> str:
        """The async driver URL the engine should connect with."""

        url = (self.database_url or "").strip()
        if self.use_sqlite or not url:
            return DEFAULT_SQLITE_DATABASE_URL

        if url.startswith((POSTGRES_ASYNC_PREFIX, SQLITE_ASYNC_PREFIX)):
            return url

        scheme, _, rest = url.partition("://")
        if f"{scheme}://" in POSTGRES_SYNC_PREFIXES:
            return POSTGRES_ASYNC_PREFIX + rest

        raise RuntimeError(
            f"Expected a PostgreSQL or aiosqlite connection string, received: {url}"
        )

    @property
    def database_type(self) -> str:
        if self.resolved_database_url.startswith("sqlite"):
            return "sqlite"
        return "postgresql"

    @property
    def cors_allow_origins(self) -> list[str]:
        raw = self.cors_allow_origins_raw or ""
        stripped = (item.strip().rstrip("/") for item in raw.split(","))
        return [origin for origin in stripped if origin]

    @property
    def log_level_numeric(self) -> int:
        level = logging.getLevelNamesMapping().get(self.log_level.upper())
        return logging.INFO if level is None else level

    def optional_config_warnings(self) -> list[str]:
        """Describe optional settings that fell back to their defaults.

        A value counts as configured when it reached the model from keywords,
        the environment or ``.env``, even if it equals the default.
        """

        configured = self.model_fields_set
        warnings: list[str] = []

        if "redis_url" not in configured:
            warnings.append(
                "REDIS_URL is not set - favorite counts are read from the database"
                " on every request unless Redis answers on the default URL"
            )

        if "cors_allow_origins_raw" not in configured or not self.cors_allow_origins:
            warnings.append(
                "CORS_ALLOW_ORIGINS is not set - only local development origins"
                " may call the API"
            )

        return warnings


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    return AppSettings()


__all__ = [
    "AppSettings",
    "DEFAULT_FAVORITE_COUNT_CACHE_TTL",
    "DEFAULT_LOG_LEVEL",
    "DEFAULT_REDIS_URL",
    "DEFAULT_SQLITE_DATABASE_URL",
    "get_settings",
]
