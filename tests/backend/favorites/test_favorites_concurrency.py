"""Concurrent favorite requests, each running in its own session."""

from __future__ import annotations

import asyncio

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from blog_backend.db.models import FavoriteRecord, User


async def _rows_for_pair(
    session_factory: async_sessionmaker[AsyncSession], post_id: int, user_id: str
) -> int:
    async with session_factory() as session:
        query = (
            select(func.count())
            .select_from(FavoriteRecord)
            .where(FavoriteRecord.post_id == post_id, FavoriteRecord.user_id == user_id)
        )
        return (await session.execute(query)).scalar_one()


@pytest.mark.asyncio
async def test_concurrent_toggles_from_distinct_users_each_count_once(
    session_factory: async_sessionmaker[AsyncSession],
    make_service,
    seeded: dict[str, int],
) -> None:
    post_id = seeded["first"]
    user_ids = [f"reader-{index}" for index in range(8)]
    async with session_factory() as session:
        session.add_all([User(id=user_id, display_name=user_id) for user_id in user_ids])
        await session.commit()

    async def _toggle(user_id: str) -> int:
        async with session_factory() as session:
            return await make_service(session).toggle_favorite(
                post_id=post_id, user_id=user_id
            )

    results = await asyncio.gather(*(_toggle(user_id) for user_id in user_ids))

    # Each toggle read the count inside its own transaction, so the returned
    # counts are exactly 1..N in some order.
    assert sorted(results) == list(range(1, len(user_ids) + 1))

    async with session_factory() as session:
        assert await make_service(session).count_favorites(post_id=post_id) == len(user_ids)


@pytest.mark.asyncio
async def test_concurrent_duplicate_toggles_never_create_two_records(
    session_factory: async_sessionmaker[AsyncSession],
    make_service,
    seeded: dict[str, int],
) -> None:
    post_id = seeded["second"]

    async def _toggle() -> int:
        async with session_factory() as session:
            return await make_service(session).toggle_favorite(
                post_id=post_id, user_id="alice"
            )

    results = await asyncio.gather(*(_toggle() for _ in range(5)))

    # Writers are serialized, so the toggles alternate on, off, on, off, on.
    assert sorted(results) == [0, 0, 1, 1, 1]
    assert await _rows_for_pair(session_factory, post_id, "alice") == 1


@pytest.mark.asyncio
async def test_concurrent_explicit_favorites_keep_a_single_record(
    session_factory: async_sessionmaker[AsyncSession],
    make_service,
    seeded: dict[str, int],
) -> None:
    post_id = seeded["first"]

    async def _favorite() -> int:
        async with session_factory() as session:
            return await make_service(session).set_favorite(
                post_id=post_id, user_id="bob", favorite=True
            )

    results = await asyncio.gather(*(_favorite() for _ in range(6)))

    assert results == [1] * 6
    assert await _rows_for_pair(session_factory, post_id, "bob") == 1
