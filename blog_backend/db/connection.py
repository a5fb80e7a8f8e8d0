from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from blog_backend.settings import get_settings

logger = logging.getLogger(__name__)

# Seconds a SQLite connection waits on the database write lock before failing.
SQLITE_BUSY_TIMEOUT = 30

_POSTGRES_POOL_OPTIONS: dict[str, Any] = {
    "pool_size": 10,
    "max_overflow": 20,
    "pool_pre_ping": True,
    "pool_recycle": 1800,
    "pool_timeout": 30,
}


def get_database_url() -> str:
    return get_settings().resolved_database_url


def create_engine(url: str | None = None) -> AsyncEngine:
    """Build the async engine for ``url`` (default: the configured database).

    SQLite writers queue on the file lock for up to ``SQLITE_BUSY_TIMEOUT``
    seconds, which is what serializes concurrent toggles there. PostgreSQL
    gets a pre-pinged pool.
    """

    url = url or get_database_url()
    if url.startswith("sqlite"):
        options: dict[str, Any] = {"connect_args": {"timeout": SQLITE_BUSY_TIMEOUT}}
    else:
        options = dict(_POSTGRES_POOL_OPTIONS)

    engine = create_async_engine(url, future=True, echo=False, **options)

    from blog_backend.monitoring import setup_query_monitoring

    setup_query_monitoring(engine, slow_query_threshold=get_settings().slow_query_threshold)
    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


@asynccontextmanager
async def begin_engine_transaction(engine: AsyncEngine) -> AsyncIterator[Any]:
    """``async with engine.begin()`` that also accepts mocks returning a coroutine."""

    begin = engine.begin()
    if asyncio.iscoroutine(begin):
        begin = await begin

    async with begin as connection:
        yield connection


_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def get_engine() -> AsyncEngine:
    global _engine
    if _engine is None:
        _engine = create_engine()
        logger.debug("Created %s engine", _engine.dialect.name)
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    global _session_factory
    if _session_factory is None:
        _session_factory = create_session_factory(get_engine())
    return _session_factory


async def dispose_engine() -> None:
    """Close pooled connections; the next request builds a fresh engine."""
    global _engine, _session_factory
    engine, _engine, _session_factory = _engine, None, None
    if engine is not None:
        await engine.dispose()


async def get_db() -> AsyncIterator[AsyncSession]:
    """FastAPI dependency yielding one session per request.

    Commits when the endpoint returns normally and rolls back if it raises.
    """
    async with get_session_factory()() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        await session.commit()
