"""Pydantic schemas that power the favorites API surface."""

from __future__ import annotations

from pydantic import BaseModel, Field


class FavoriteToggleRequest(BaseModel):
    """Body of ``POST /api/v1/favorite``."""

    post_id: int = Field(..., ge=1, description="Identifier of the post to star or un-star")


class FavoriteSetRequest(BaseModel):
    """Explicit favorite state requested by the client."""

    favorite: bool = Field(..., description="``true`` to star the post, ``false`` to retract")


class FavoriteStatus(BaseModel):
    """What the display layer needs to render one post's star."""

    post_id: int
    favorite_count: int = Field(..., ge=0)
    favorited: bool = Field(
        ..., description="Whether the calling user has starred the post"
    )


class FavoriteToggleResponse(FavoriteStatus):
    """Result of an explicit favorite/un-favorite request."""

    message: str


class FavoriteCountsResponse(BaseModel):
    """Favorite counts for a page of posts keyed by post id."""

    counts: dict[int, int] = Field(default_factory=dict)


class FavoritedPostsResponse(BaseModel):
    """Posts starred by a user, most recent first."""

    user_id: str
    total: int = Field(..., ge=0)
    post_ids: list[int] = Field(default_factory=list)


__all__ = [
    "FavoriteCountsResponse",
    "FavoriteSetRequest",
    "FavoriteStatus",
    "FavoriteToggleRequest",
    "FavoriteToggleResponse",
    "FavoritedPostsResponse",
]
