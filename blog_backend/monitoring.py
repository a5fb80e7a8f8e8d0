"""Slow statement logging for the async engine.

The favorite count aggregation is the statement most worth watching: if the
``post_id`` index goes missing it degrades to a table scan, and that shows up
here first.
"""

import logging
import time
from typing import Any

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine

logger = logging.getLogger(__name__)

_STATEMENT_PREVIEW_CHARS = 500
_START_TIMES_KEY = "blog_query_start_times"


def _preview(statement: str) -> str:
    if len(statement) <= _STATEMENT_PREVIEW_CHARS:
        return statement
    return statement[:_STATEMENT_PREVIEW_CHARS] + "..."


def setup_query_monitoring(
    engine: AsyncEngine,
    slow_query_threshold: float = 0.1,
) -> None:
    """Warn about every statement that takes longer than ``slow_query_threshold`` seconds."""
    sync_engine = getattr(engine, "sync_engine", None)
    if sync_engine is None:
        logger.warning("%r has no sync_engine, skipping query monitoring", engine)
        return

    def _started(conn: Any, *_: Any) -> None:
        conn.info.setdefault(_START_TIMES_KEY, []).append(time.perf_counter())

    def _finished(conn: Any, cursor: Any, statement: str, *_: Any) -> None:
        elapsed = time.perf_counter() - conn.info[_START_TIMES_KEY].pop()
        if elapsed <= slow_query_threshold:
            return
        logger.warning(
            "Slow query detected (%.3fs): %s",
            elapsed,
            _preview(statement),
            extra={
                "duration_seconds": elapsed,
                "query": statement,
                "threshold_seconds": slow_query_threshold,
            },
        )

    event.listen(sync_engine, "before_cursor_execute", _started)
    event.listen(sync_engine, "after_cursor_execute", _finished)
    logger.info("Slow query logging enabled (threshold %.3fs)", slow_query_threshold)
