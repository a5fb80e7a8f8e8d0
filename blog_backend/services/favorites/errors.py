"""Exceptions raised by the favorites domain.

Both error kinds propagate unchanged to the HTTP layer, whose exception
handlers translate them into structured error payloads.
"""

from __future__ import annotations


class FavoritesError(Exception):
    """Base class for favorites failures."""


class NotFoundError(FavoritesError, LookupError):
    """A referenced user or post does not exist."""

    def __init__(self, entity: str, identifier: object) -> None:
        self.entity = entity
        self.identifier = identifier
        super().__init__(f"{entity.capitalize()} {identifier!r} not found")


class StorageError(FavoritesError):
    """The favorites transaction could not be completed."""


__all__ = ["FavoritesError", "NotFoundError", "StorageError"]
