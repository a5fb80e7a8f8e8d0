"""Business logic powering the post favorites endpoints.

Persistence-oriented operations delegated to :class:`FavoritesPersistence`:
* ``lock_post``/``require_user`` – existence checks raising ``NotFoundError``.
* ``insert_favorite``/``delete_favorite`` – single-statement mutations guarded
  by the ``(user_id, post_id)`` unique constraint.
* ``count_for_post``/``counts_for_posts`` – count aggregation.

Count caching is handled by :class:`FavoritesCache`. Every mutation and its
follow-up count read share one transaction that this service commits before
returning, so the count handed back always reflects the committed state.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Sequence

from fastapi import Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from blog_backend.cache import CacheClient, get_cache_client
from blog_backend.db.connection import get_db
from blog_backend.schemas.favorites import FavoriteStatus
from blog_backend.services.favorites import (
    FavoritesCache,
    FavoritesPersistence,
    NotFoundError,
    StorageError,
)
from blog_backend.settings import get_settings

logger = logging.getLogger(__name__)


class FavoriteService:
    """Maintains favorite records and answers count queries."""

    def __init__(
        self,
        *,
        persistence: FavoritesPersistence,
        cache: FavoritesCache,
    ) -> None:
        self._persistence = persistence
        self._cache = cache

    async def toggle_favorite(self, *, post_id: int, user_id: str) -> int:
        """Star the post if ``user_id`` has not yet, otherwise retract the star.

        Returns the post's favorite count after the change.
        """

        async def _toggle() -> bool:
            if await self._persistence.delete_favorite(post_id=post_id, user_id=user_id):
                return False
            await self._persistence.insert_favorite(post_id=post_id, user_id=user_id)
            return True

        count, favorited = await self._mutate(
            post_id=post_id, user_id=user_id, mutation=_toggle
        )
        logger.debug(
            "User %s toggled post %s to favorited=%s (count=%s)",
            user_id,
            post_id,
            favorited,
            count,
        )
        return count

    async def set_favorite(
        self, *, post_id: int, user_id: str, favorite: bool
    ) -> int:
        """Force the favorite state for the pair; repeating a call changes nothing."""

        async def _set() -> bool:
            if favorite:
                await self._persistence.insert_favorite(post_id=post_id, user_id=user_id)
            else:
                await self._persistence.delete_favorite(post_id=post_id, user_id=user_id)
            return favorite

        count, _ = await self._mutate(post_id=post_id, user_id=user_id, mutation=_set)
        return count

    async def count_favorites(self, *, post_id: int) -> int:
        cached = await self._cache.read_count(post_id=post_id)
        if cached.count is not None:
            return cached.count

        await self._persistence.require_post(post_id)
        count = await self._persistence.count_for_post(post_id)
        await self._cache.write_count(
            post_id=post_id, count=count, generation=cached.generation
        )
        return count

    async def has_favorited(self, *, post_id: int, user_id: str) -> bool:
        return await self._persistence.favorite_exists(post_id=post_id, user_id=user_id)

    async def favorite_status(self, *, post_id: int, user_id: str) -> FavoriteStatus:
        """Return the count and the caller's star state for one post."""

        count = await self.count_favorites(post_id=post_id)
        favorited = await self.has_favorited(post_id=post_id, user_id=user_id)
        return FavoriteStatus(post_id=post_id, favorite_count=count, favorited=favorited)

    async def count_favorites_many(self, *, post_ids: Sequence[int]) -> dict[int, int]:
        """Return counts for a listing page without issuing one query per post."""

        unique_ids = list(dict.fromkeys(post_ids))
        return await self._persistence.counts_for_posts(unique_ids)

    async def list_favorited_post_ids(self, *, user_id: str) -> list[int]:
        await self._persistence.require_user(user_id)
        return await self._persistence.favorited_post_ids(user_id)

    async def _mutate(
        self,
        *,
        post_id: int,
        user_id: str,
        mutation: Callable[[], Awaitable[bool]],
    ) -> tuple[int, bool]:
        try:
            await self._persistence.lock_post(post_id)
            await self._persistence.require_user(user_id)
            favorited = await mutation()
            count = await self._persistence.count_for_post(post_id)
            await self._persistence.commit()
        except NotFoundError:
            await self._persistence.rollback()
            raise
        except SQLAlchemyError as exc:
            logger.error(
                "Favorite update failed for post %s and user %s: %s",
                post_id,
                user_id,
                exc,
            )
            await self._persistence.rollback()
            raise StorageError(
                f"Could not update favorites for post {post_id}"
            ) from exc

        await self._cache.invalidate(post_id=post_id)
        return count, favorited


async def get_favorite_service(
    session: AsyncSession = Depends(get_db),
    cache_client: CacheClient = Depends(get_cache_client),
) -> FavoriteService:
    """FastAPI dependency that wires the service together."""

    return FavoriteService(
        persistence=FavoritesPersistence(session),
        cache=FavoritesCache(cache_client, ttl=get_settings().favorite_count_cache_ttl),
    )
