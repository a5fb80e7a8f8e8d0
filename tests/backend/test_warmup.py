"""Regression tests for backend warmup routines."""

from __future__ import annotations

import logging
from typing import Any
from unittest.mock import AsyncMock

import pytest

import blog_backend.warmup as warmup


class _DummyTransaction:
    """Async context manager that hands out a mocked connection."""

    def __init__(self) -> None:
        self.connection: AsyncMock = AsyncMock()

    async def __aenter__(self) -> AsyncMock:
        return self.connection

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: Any,
    ) -> bool:
        return False


@pytest.mark.asyncio
async def test_warmup_database_executes_ping(
    caplog: pytest.LogCaptureFixture,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """Warmup performs a SELECT 1 on the resolved engine without warnings."""

    caplog.set_level(logging.INFO)

    dummy_txn = _DummyTransaction()
    sentinel_engine = object()
    captured_engines: list[object] = []

    def _capture_engine(engine: object) -> _DummyTransaction:
        captured_engines.append(engine)
        return dummy_txn

    monkeypatch.setattr(warmup, "begin_engine_transaction", _capture_engine)

    await warmup.warmup_database(resolve_engine=lambda: sentinel_engine)

    assert captured_engines == [sentinel_engine]
    assert dummy_txn.connection.execute.await_count == 1
    executed_statement = dummy_txn.connection.execute.await_args.args[0]
    assert str(executed_statement).strip().upper() == "SELECT 1"
    assert not [
        record for record in caplog.records if record.levelno >= logging.WARNING
    ]


@pytest.mark.asyncio
async def test_warmup_database_logs_failures(
    caplog: pytest.LogCaptureFixture,
) -> None:
    def _broken_engine() -> object:
        raise RuntimeError("no database configured")

    await warmup.warmup_database(resolve_engine=_broken_engine)

    assert "Database warmup failed: no database configured" in caplog.text


@pytest.mark.asyncio
async def test_warmup_redis_skips_when_unavailable(
    caplog: pytest.LogCaptureFixture,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    caplog.set_level(logging.INFO)
    monkeypatch.setattr("blog_backend.cache.get_redis", AsyncMock(return_value=None))

    await warmup.warmup_redis()

    assert "Redis warmup skipped" in caplog.text


@pytest.mark.asyncio
async def test_warmup_redis_pings_client(
    monkeypatch: pytest.MonkeyPatch, fake_redis
) -> None:
    fake_redis.ping = AsyncMock(return_value=True)
    monkeypatch.setattr(
        "blog_backend.cache.get_redis", AsyncMock(return_value=fake_redis)
    )

    await warmup.warmup_redis()

    fake_redis.ping.assert_awaited_once()


@pytest.mark.asyncio
async def test_warmup_all_runs_database_then_redis(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    calls: list[str] = []

    async def _database(resolve_engine=None) -> None:
        calls.append("database")

    async def _redis() -> None:
        calls.append("redis")

    monkeypatch.setattr(warmup, "warmup_database", _database)
    monkeypatch.setattr(warmup, "warmup_redis", _redis)

    await warmup.warmup_all()

    assert calls == ["database", "redis"]
