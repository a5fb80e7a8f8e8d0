"""FastAPI router exposing post favorite operations."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from blog_backend.api.dependencies import get_current_user_id
from blog_backend.schemas.favorites import (
    FavoriteCountsResponse,
    FavoriteSetRequest,
    FavoriteStatus,
    FavoriteToggleRequest,
    FavoriteToggleResponse,
    FavoritedPostsResponse,
)
from blog_backend.services.favorites_service import (
    FavoriteService,
    get_favorite_service,
)

router = APIRouter()


@router.post("/favorite", response_model=int)
async def toggle_favorite(
    payload: FavoriteToggleRequest,
    user_id: str = Depends(get_current_user_id),
    service: FavoriteService = Depends(get_favorite_service),
) -> int:
    """Star or un-star a post for the caller and return the new count."""

    return await service.toggle_favorite(post_id=payload.post_id, user_id=user_id)


@router.put("/posts/{post_id}/favorite", response_model=FavoriteToggleResponse)
async def set_favorite(
    post_id: int,
    payload: FavoriteSetRequest,
    user_id: str = Depends(get_current_user_id),
    service: FavoriteService = Depends(get_favorite_service),
) -> FavoriteToggleResponse:
    """Explicitly favorite or un-favorite a post."""

    count = await service.set_favorite(
        post_id=post_id, user_id=user_id, favorite=payload.favorite
    )
    message = "Post added to favorites" if payload.favorite else "Post removed from favorites"
    return FavoriteToggleResponse(
        post_id=post_id,
        favorite_count=count,
        favorited=payload.favorite,
        message=message,
    )


@router.get("/posts/{post_id}/favorite", response_model=FavoriteStatus)
async def get_favorite_status(
    post_id: int,
    user_id: str = Depends(get_current_user_id),
    service: FavoriteService = Depends(get_favorite_service),
) -> FavoriteStatus:
    """Return the count and whether the caller starred the post."""

    return await service.favorite_status(post_id=post_id, user_id=user_id)


@router.get("/posts/{post_id}/favorites/count", response_model=int)
async def count_favorites(
    post_id: int,
    service: FavoriteService = Depends(get_favorite_service),
) -> int:
    return await service.count_favorites(post_id=post_id)


@router.get("/favorites/counts", response_model=FavoriteCountsResponse)
async def count_favorites_many(
    post_ids: list[int] = Query(
        ...,
        alias="post_id",
        description="Repeat the parameter once per post shown on the page.",
    ),
    service: FavoriteService = Depends(get_favorite_service),
) -> FavoriteCountsResponse:
    counts = await service.count_favorites_many(post_ids=post_ids)
    return FavoriteCountsResponse(counts=counts)


@router.get("/users/me/favorites", response_model=FavoritedPostsResponse)
async def list_my_favorites(
    user_id: str = Depends(get_current_user_id),
    service: FavoriteService = Depends(get_favorite_service),
) -> FavoritedPostsResponse:
    """List the posts the caller has starred, newest first."""

    post_ids = await service.list_favorited_post_ids(user_id=user_id)
    return FavoritedPostsResponse(user_id=user_id, total=len(post_ids), post_ids=post_ids)
