"""Builders for the JSON error payloads returned by the API.

Both builders stamp the payload with the active request id (unless one is
passed explicitly) and a UTC timestamp, so clients can quote either when
reporting a failed favorite.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Any

from blog_backend.schemas.error import (
    ErrorResponse,
    ErrorType,
    ValidationErrorDetail,
    ValidationErrorResponse,
)
from blog_backend.utils.request_context import get_request_id

__all__ = [
    "build_error_response",
    "build_validation_error_response",
]


def _current_timestamp() -> datetime:
    return datetime.now(timezone.utc)


def _envelope(request_id: str | None, **fields: Any) -> dict[str, Any]:
    fields["timestamp"] = _current_timestamp()
    fields["request_id"] = request_id or get_request_id()
    return fields


def build_validation_error_response(
    *,
    errors: Sequence[ValidationErrorDetail],
    message: str,
    detail: str,
    status_code: int,
    path: str,
    error_type: ErrorType = ErrorType.VALIDATION_ERROR,
    request_id: str | None = None,
) -> ValidationErrorResponse:
    return ValidationErrorResponse(
        **_envelope(
            request_id,
            error_type=error_type,
            message=message,
            detail=detail,
            status_code=status_code,
            path=path,
            errors=list(errors),
        )
    )


def build_error_response(
    *,
    error_type: ErrorType,
    message: str,
    detail: str,
    status_code: int,
    path: str,
    retry_after: int | None = None,
    request_id: str | None = None,
) -> ErrorResponse:
    return ErrorResponse(
        **_envelope(
            request_id,
            error_type=error_type,
            message=message,
            detail=detail,
            status_code=status_code,
            path=path,
            retry_after=retry_after,
        )
    )
