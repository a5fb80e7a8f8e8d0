from __future__ import annotations

import logging

import pytest
from sqlalchemy import text

from blog_backend.monitoring import setup_query_monitoring


@pytest.mark.asyncio
async def test_slow_queries_are_logged(engine, caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO, "blog_backend.monitoring")

    # A negative threshold flags every statement as slow.
    setup_query_monitoring(engine, slow_query_threshold=-1.0)

    async with engine.connect() as conn:
        await conn.execute(text("SELECT count(*) FROM favorites"))

    slow = [
        record
        for record in caplog.records
        if record.levelno == logging.WARNING and "Slow query detected" in record.getMessage()
    ]
    assert slow
    assert slow[-1].query == "SELECT count(*) FROM favorites"
    assert slow[-1].threshold_seconds == -1.0


def test_engine_without_sync_engine_is_skipped(caplog: pytest.LogCaptureFixture) -> None:
    setup_query_monitoring(object())

    assert "skipping query monitoring" in caplog.text
