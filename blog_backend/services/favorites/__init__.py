"""Favorites domain components split by responsibility.

Persistence, count caching and the domain errors live in separate modules so
:class:`~blog_backend.services.favorites_service.FavoriteService` only has to
coordinate them.
"""

from .cache import CachedCount, FavoritesCache
from .errors import FavoritesError, NotFoundError, StorageError
from .persistence import FavoritesPersistence

__all__ = [
    "CachedCount",
    "FavoritesCache",
    "FavoritesError",
    "FavoritesPersistence",
    "NotFoundError",
    "StorageError",
]
