"""Redis access for the favorite count cache.

The client is created on first use and shared by the process. When Redis is
unreachable the cache switches itself off: :func:`get_redis` returns ``None``
and :class:`CacheClient` treats every call as a miss, so requests fall back to
the database instead of failing.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from functools import lru_cache
from typing import TYPE_CHECKING, Any

from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from blog_backend.settings import get_settings

if TYPE_CHECKING:
    from redis.asyncio import Redis as RedisClient

logger = logging.getLogger(__name__)

_DEFAULT_TTL_SECONDS = 600
_FAVORITE_COUNT_PREFIX = "favorites:count"

_redis_client: RedisClient | None = None
_redis_disabled = False
_client_lock = asyncio.Lock()


def favorite_count_key(post_id: int | str) -> str:
    return f"{_FAVORITE_COUNT_PREFIX}:{post_id}"


def favorite_count_generation_key(post_id: int | str) -> str:
    """Counter bumped on every committed change to the post's favorites."""
    return f"{favorite_count_key(post_id)}:gen"


@lru_cache(maxsize=1)
def _load_redis_class() -> type[RedisClient]:
    from redis.asyncio import Redis

    return Redis


def _is_redis_connection_error(exc: BaseException) -> bool:
    return isinstance(exc, (RedisConnectionError, RedisTimeoutError, OSError))


@asynccontextmanager
async def _tolerate_outage(operation: str, *keys: str) -> AsyncIterator[None]:
    """Turn connection failures inside the block into a logged no-op."""
    try:
        yield
    except Exception as exc:
        if not _is_redis_connection_error(exc):
            raise
        logger.debug("Redis %s failed for %s: %s", operation, ", ".join(keys), exc)


async def get_redis() -> RedisClient | None:
    """Return the shared client, connecting on first use."""
    global _redis_client, _redis_disabled

    async with _client_lock:
        if _redis_client is not None or _redis_disabled:
            return _redis_client

        client = _load_redis_class().from_url(
            get_settings().redis_url, decode_responses=True, encoding="utf-8"
        )
        try:
            await client.ping()
        except Exception as exc:
            if not _is_redis_connection_error(exc):
                raise
            logger.warning("Redis unavailable (%s); favorite count caching disabled", exc)
            _redis_disabled = True
            return None

        _redis_client = client
        logger.info("Connected to Redis for favorite count caching")
        return _redis_client


class CacheClient:
    """JSON get/set/delete over an optional Redis client."""

    def __init__(self, redis: RedisClient | None) -> None:
        self._redis = redis

    @property
    def enabled(self) -> bool:
        return self._redis is not None

    async def get_json(self, key: str) -> Any:
        if self._redis is None:
            return None

        payload = None
        async with _tolerate_outage("get", key):
            payload = await self._redis.get(key)
        if payload is None:
            return None

        try:
            return json.loads(payload)
        except json.JSONDecodeError:
            logger.debug("Ignoring undecodable cache entry %s", key)
            return None

    async def set_json(self, key: str, value: Any, ttl: int | None = None) -> None:
        if self._redis is None:
            return
        expires = _DEFAULT_TTL_SECONDS if ttl is None else ttl
        async with _tolerate_outage("set", key):
            await self._redis.set(key, json.dumps(value, default=str), ex=expires)

    async def delete(self, *keys: str) -> None:
        if self._redis is None or not keys:
            return
        async with _tolerate_outage("delete", *keys):
            await self._redis.delete(*keys)

    async def increment(self, key: str) -> int | None:
        """Atomically add one to the integer at ``key``; ``None`` when Redis is unavailable."""
        if self._redis is None:
            return None
        value = None
        async with _tolerate_outage("incr", key):
            value = await self._redis.incr(key)
        return value


async def get_cache_client() -> CacheClient:
    """FastAPI dependency returning a cache bound to the shared client."""
    return CacheClient(await get_redis())


async def close_redis() -> None:
    """Close the shared client and allow a fresh connection attempt."""
    global _redis_client, _redis_disabled

    client, _redis_client = _redis_client, None
    _redis_disabled = False
    if client is not None:
        await client.aclose()


__all__ = [
    "CacheClient",
    "close_redis",
    "favorite_count_generation_key",
    "favorite_count_key",
    "get_cache_client",
    "get_redis",
]
