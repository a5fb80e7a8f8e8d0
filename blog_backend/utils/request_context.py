"""Per-request identifier shared by the middleware, error handlers and logs."""

from __future__ import annotations

from contextvars import ContextVar, Token

_request_id: ContextVar[str] = ContextVar("blog_request_id", default="")


def set_request_id(request_id: str) -> Token[str]:
    """Bind ``request_id`` to the current context; keep the token to undo it."""

    return _request_id.set(request_id)


def get_request_id() -> str:
    """Empty string when called outside a request."""

    return _request_id.get()


def clear_request_id(token: Token[str] | None = None) -> None:
    if token is None:
        _request_id.set("")
    else:
        _request_id.reset(token)


__all__ = ["clear_request_id", "get_request_id", "set_request_id"]
