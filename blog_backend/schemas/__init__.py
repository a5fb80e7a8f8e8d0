"""Pydantic schemas for API requests and responses."""

from blog_backend.schemas.error import (  # noqa: F401
    ErrorResponse,
    ErrorType,
    ValidationErrorDetail,
    ValidationErrorResponse,
)
from blog_backend.schemas.favorites import (  # noqa: F401
    FavoriteCountsResponse,
    FavoriteSetRequest,
    FavoriteStatus,
    FavoriteToggleRequest,
    FavoriteToggleResponse,
    FavoritedPostsResponse,
)
