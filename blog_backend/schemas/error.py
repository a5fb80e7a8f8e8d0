"""Payload shapes shared by every error the API returns."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ErrorType(str, Enum):
    VALIDATION_ERROR = "validation_error"
    NOT_FOUND = "not_found"
    DATABASE_ERROR = "database_error"
    INTERNAL_ERROR = "internal_error"
    TIMEOUT_ERROR = "timeout_error"


class ErrorResponse(BaseModel):
    """Body of every non-2xx response."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "error_type": "not_found",
                "message": "Post not found",
                "detail": "Post 42 not found",
                "status_code": 404,
                "timestamp": "2026-10-18T10:30:00Z",
                "request_id": "0f5c3a1e9b2d4c7a8e6f1b3d5a7c9e2f",
                "path": "/api/v1/favorite",
                "retry_after": None,
            }
        }
    )

    error_type: ErrorType
    message: str = Field(..., description="Short summary safe to show to readers")
    detail: str | None = Field(None, description="What exactly went wrong")
    status_code: int
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    request_id: str | None = Field(None, description="Matches the X-Request-ID header")
    path: str | None = None
    retry_after: int | None = Field(
        None, description="Suggested seconds before retrying, for transient failures"
    )


class ValidationErrorDetail(BaseModel):
    field: str = Field(..., description="Dotted location, e.g. body.post_id")
    message: str
    value: Any = None


class ValidationErrorResponse(ErrorResponse):
    error_type: ErrorType = ErrorType.VALIDATION_ERROR
    errors: list[ValidationErrorDetail] = Field(default_factory=list)
