"""Database-oriented helpers for post favorites."""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import delete, exists, func, select
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from blog_backend.db.models import FavoriteRecord, Post, User

from .errors import NotFoundError

_INSERT_BY_DIALECT = {
    "postgresql": postgresql_insert,
    "sqlite": sqlite_insert,
}


class FavoritesPersistence:
    """Encapsulates SQLAlchemy operations required by the favorites domain.

    Mutations never commit; the caller decides when the surrounding transaction
    commits so the mutation and the follow-up count read stay atomic.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def lock_post(self, post_id: int) -> None:
        """Lock the post row for the rest of the transaction.

        Toggles on the same post queue behind each other on PostgreSQL. SQLite
        has no row locks; its database-level write lock gives the same ordering
        once the mutation starts.
        """

        query = select(Post.id).where(Post.id == post_id).with_for_update()
        result = await self._session.execute(query)
        if result.scalar_one_or_none() is None:
            raise NotFoundError("post", post_id)

    async def require_post(self, post_id: int) -> None:
        query = select(exists().where(Post.id == post_id))
        if not (await self._session.execute(query)).scalar():
            raise NotFoundError("post", post_id)

    async def require_user(self, user_id: str) -> None:
        query = select(exists().where(User.id == user_id))
        if not (await self._session.execute(query)).scalar():
            raise NotFoundError("user", user_id)

    async def insert_favorite(self, *, post_id: int, user_id: str) -> bool:
        """Insert the pair unless it already exists; return whether a row was added.

        The unique constraint arbitrates concurrent inserts for the same pair,
        so a losing request sees zero affected rows instead of an error.
        """

        dialect = self._session.get_bind().dialect.name
        try:
            insert = _INSERT_BY_DIALECT[dialect]
        except KeyError:
            raise RuntimeError(
                f"Unsupported database dialect for favorites: {dialect}"
            ) from None

        statement = (
            insert(FavoriteRecord.__table__)
            .values(post_id=post_id, user_id=user_id)
            .on_conflict_do_nothing(index_elements=["user_id", "post_id"])
        )
        result = await self._session.execute(statement)
        return result.rowcount == 1

    async def delete_favorite(self, *, post_id: int, user_id: str) -> bool:
        """Remove the pair; return whether a row was deleted."""

        statement = (
            delete(FavoriteRecord)
            .where(
                FavoriteRecord.post_id == post_id,
                FavoriteRecord.user_id == user_id,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(statement)
        return result.rowcount > 0

    async def favorite_exists(self, *, post_id: int, user_id: str) -> bool:
        query = select(
            exists().where(
                FavoriteRecord.post_id == post_id,
                FavoriteRecord.user_id == user_id,
            )
        )
        return bool((await self._session.execute(query)).scalar())

    async def count_for_post(self, post_id: int) -> int:
        query = (
            select(func.count())
            .select_from(FavoriteRecord)
            .where(FavoriteRecord.post_id == post_id)
        )
        return int((await self._session.execute(query)).scalar_one())

    async def counts_for_posts(self, post_ids: Sequence[int]) -> dict[int, int]:
        """Count favorites for several posts with a single grouped query."""

        counts = {post_id: 0 for post_id in post_ids}
        if not counts:
            return counts

        query = (
            select(FavoriteRecord.post_id, func.count())
            .where(FavoriteRecord.post_id.in_(list(counts)))
            .group_by(FavoriteRecord.post_id)
        )
        for post_id, total in (await self._session.execute(query)).all():
            counts[post_id] = int(total)
        return counts

    async def favorited_post_ids(self, user_id: str) -> list[int]:
        """Return the posts starred by ``user_id``, most recent first."""

        query = (
            select(FavoriteRecord.post_id)
            .where(FavoriteRecord.user_id == user_id)
            .order_by(FavoriteRecord.created_at.desc(), FavoriteRecord.id.desc())
        )
        return list((await self._session.execute(query)).scalars().all())

    async def commit(self) -> None:
        await self._session.commit()

    async def rollback(self) -> None:
        await self._session.rollback()
