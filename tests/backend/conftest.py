"""Shared backend fixtures: a temp-file SQLite database, seeded blog rows and a Redis double."""

from __future__ import annotations

from collections.abc import AsyncIterator
from pathlib import Path

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from blog_backend.cache import CacheClient
from blog_backend.db.models import Base, Post, User
from blog_backend.services.favorites import FavoritesCache, FavoritesPersistence
from blog_backend.services.favorites_service import FavoriteService

SEEDED_USERS = ("alice", "bob", "carol")


class InMemoryRedis:
    """Lightweight async Redis double used by cache-related tests."""

    def __init__(self) -> None:
        self._store: dict[str, str] = {}
        self._ttl: dict[str, int | None] = {}

    async def ping(self) -> bool:
        return True

    async def get(self, key: str) -> str | None:
        return self._store.get(key)

    async def set(self, key: str, value: str, ex: int | None = None) -> None:
        self._store[key] = value
        self._ttl[key] = ex

    async def delete(self, *keys: str) -> None:
        for key in keys:
            self._store.pop(key, None)
            self._ttl.pop(key, None)

    async def incr(self, key: str) -> int:
        value = int(self._store.get(key, "0")) + 1
        self._store[key] = str(value)
        return value

    async def aclose(self) -> None:
        self._store.clear()
        self._ttl.clear()


@pytest_asyncio.fixture
async def engine(tmp_path: Path) -> AsyncIterator[AsyncEngine]:
    """Create a file-backed SQLite database so several sessions can share it."""

    pytest.importorskip("aiosqlite")
    database_path = tmp_path / "favorites.db"
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{database_path}",
        future=True,
        connect_args={"timeout": 30},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def seeded(session_factory: async_sessionmaker[AsyncSession]) -> dict[str, int]:
    """Insert three users and two posts; return the post ids by slug."""

    async with session_factory() as session:
        session.add_all(
            [User(id=user_id, display_name=user_id.title()) for user_id in SEEDED_USERS]
        )
        first = Post(title="Hello, blog", body="First post", author_id="alice")
        second = Post(title="Second thoughts", body="Another post", author_id="bob")
        session.add_all([first, second])
        await session.commit()
        return {"first": first.id, "second": second.id}


@pytest_asyncio.fixture
async def session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncSession]:
    async with session_factory() as db_session:
        yield db_session
        if db_session.in_transaction():
            await db_session.rollback()


@pytest.fixture
def fake_redis() -> InMemoryRedis:
    return InMemoryRedis()


@pytest.fixture
def cache_client(fake_redis: InMemoryRedis) -> CacheClient:
    return CacheClient(fake_redis)


def build_service(session: AsyncSession, cache_client: CacheClient) -> FavoriteService:
    """Wire a service the same way the FastAPI dependency does."""

    return FavoriteService(
        persistence=FavoritesPersistence(session),
        cache=FavoritesCache(cache_client, ttl=60),
    )


@pytest.fixture
def service(session: AsyncSession, cache_client: CacheClient) -> FavoriteService:
    return build_service(session, cache_client)


@pytest.fixture
def make_service(cache_client: CacheClient):
    """Return a factory building a service around an arbitrary session."""

    def _make(db_session: AsyncSession) -> FavoriteService:
        return build_service(db_session, cache_client)

    return _make
