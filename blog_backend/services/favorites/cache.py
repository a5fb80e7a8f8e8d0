"""Caching helpers dedicated to favorite counts."""

from __future__ import annotations

from dataclasses import dataclass

from blog_backend.cache import (
    CacheClient,
    favorite_count_generation_key,
    favorite_count_key,
)


@dataclass(frozen=True)
class CachedCount:
    """Result of a cache lookup.

    ``generation`` is the post's change counter at lookup time. A reader that
    misses hands it back to :meth:`FavoritesCache.write_count` so the count it
    loads is tagged with the state it was read under.
    """

    count: int | None
    generation: int


class FavoritesCache:
    """Wrap the per-post count cache behind typed helpers.

    Each cached count carries the generation it was computed under, and a
    lookup only accepts it while that generation is still current. A reader
    that loaded the count before a toggle committed may still store its value
    after the toggle's :meth:`invalidate`, but the value is tagged with the
    old generation and never served.

    Only counts are cached. Whether a given user starred a post is cheap to
    look up and must never be stale, so it always goes to the database.
    """

    def __init__(self, client: CacheClient, *, ttl: int) -> None:
        self._client = client
        self._ttl = ttl

    async def _generation(self, post_id: int) -> int:
        current = await self._client.get_json(favorite_count_generation_key(post_id))
        return current if isinstance(current, int) else 0

    async def read_count(self, *, post_id: int) -> CachedCount:
        generation = await self._generation(post_id)
        entry = await self._client.get_json(favorite_count_key(post_id))
        if (
            isinstance(entry, dict)
            and entry.get("generation") == generation
            and isinstance(entry.get("count"), int)
            and entry["count"] >= 0
        ):
            return CachedCount(count=entry["count"], generation=generation)
        return CachedCount(count=None, generation=generation)

    async def write_count(self, *, post_id: int, count: int, generation: int) -> None:
        await self._client.set_json(
            favorite_count_key(post_id),
            {"count": count, "generation": generation},
            ttl=self._ttl,
        )

    async def invalidate(self, *, post_id: int) -> None:
        """Retire every count cached so far, including ones still being written."""

        await self._client.increment(favorite_count_generation_key(post_id))
        await self._client.delete(favorite_count_key(post_id))
