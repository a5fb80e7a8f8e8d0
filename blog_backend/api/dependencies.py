"""Request-scoped dependencies shared by the API routers."""

from __future__ import annotations

from fastapi import Header
from fastapi.exceptions import RequestValidationError


async def get_current_user_id(
    x_user_id: str = Header(
        ...,
        alias="X-User-Id",
        min_length=1,
        max_length=128,
        description=(
            "Identifier of the already-authenticated caller, forwarded by the"
            " session layer in front of this API."
        ),
    ),
) -> str:
    """Return the caller's user id from the forwarded identity header."""

    user_id = x_user_id.strip()
    if not user_id:
        raise RequestValidationError(
            [
                {
                    "type": "string_too_short",
                    "loc": ("header", "X-User-Id"),
                    "msg": "X-User-Id must not be blank",
                    "input": x_user_id,
                }
            ]
        )
    return user_id
