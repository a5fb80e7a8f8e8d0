"""Open database and Redis connections at startup.

Without this the first favorite toggle after a deploy pays for the pool
handshake. Every step is best effort: a failure is logged and startup goes on,
since the request path reports unavailable backends on its own.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine

from blog_backend.db.connection import begin_engine_transaction

logger = logging.getLogger(__name__)


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000


async def warmup_database(
    resolve_engine: Callable[[], AsyncEngine] | None = None,
) -> None:
    started = time.perf_counter()
    try:
        if resolve_engine is None:
            from blog_backend.db.connection import get_engine as resolve_engine

        async with begin_engine_transaction(resolve_engine()) as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as exc:
        logger.warning("Database warmup failed: %s", exc)
        return
    logger.info("Database pool ready in %.0fms", _elapsed_ms(started))


async def warmup_redis() -> None:
    from blog_backend.cache import get_redis

    started = time.perf_counter()
    try:
        redis = await get_redis()
        if redis is None:
            logger.info("Redis warmup skipped, favorite counts will not be cached")
            return
        await redis.ping()
    except Exception as exc:
        logger.warning("Redis warmup failed: %s", exc)
        return
    logger.info("Redis ready in %.0fms", _elapsed_ms(started))


async def warmup_all(
    resolve_engine: Callable[[], AsyncEngine] | None = None,
) -> None:
    started = time.perf_counter()
    await warmup_database(resolve_engine=resolve_engine)
    await warmup_redis()
    logger.info("Warmup finished in %.0fms", _elapsed_ms(started))
