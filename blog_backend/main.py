import logging
import uuid
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.engine import make_url
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.exc import TimeoutError as SQLAlchemyTimeoutError
from sqlalchemy.ext.asyncio import AsyncEngine

from blog_backend.db.connection import dispose_engine
from blog_backend.db.connection import get_engine as _connection_get_engine
from blog_backend.db.models import Base
from blog_backend.services.favorites import NotFoundError, StorageError
from blog_backend.settings import AppSettings, get_settings

from .api import favorites
from .schemas.error import ErrorResponse, ErrorType, ValidationErrorDetail
from .utils.error_responses import (
    build_error_response,
    build_validation_error_response,
)
from .utils.request_context import clear_request_id, get_request_id, set_request_id

settings = get_settings()

logging.basicConfig(
    level=settings.log_level_numeric,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"
REQUEST_ID_HEADER = "X-Request-ID"
_BANNER = "-" * 60


def _validate_environment(active_settings: AppSettings | None = None) -> None:
    """Log one warning block listing optional settings that were left unset."""
    warnings = (active_settings or get_settings()).optional_config_warnings()
    if not warnings:
        return

    lines = [_BANNER, "Environment Configuration Warnings:"]
    lines.extend(f"  - {warning}" for warning in warnings)
    lines.append(_BANNER)
    for line in lines:
        logger.warning(line)


def _sanitize_database_url(url: str) -> str:
    return make_url(url).render_as_string(hide_password=True)


def get_engine() -> AsyncEngine:
    """Return the shared engine; kept at module scope so tests can patch it."""

    return _connection_get_engine()


async def _create_sqlite_schema(engine: AsyncEngine, database_url: str) -> None:
    """Create tables from ORM metadata, making the database directory first."""
    database = make_url(database_url).database
    if database and database != ":memory:":
        Path(database).parent.mkdir(parents=True, exist_ok=True)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def _prepare_database(active_settings: AppSettings) -> None:
    db_type = active_settings.database_type
    db_url = active_settings.resolved_database_url

    logger.info(_BANNER)
    logger.info("Blog Favorites API - database preflight")
    logger.info("Backend: %s", db_type)
    logger.info("URL: %s", _sanitize_database_url(db_url))

    if db_type == "sqlite":
        logger.info("SQLite detected, creating tables from ORM metadata")
        await _create_sqlite_schema(get_engine(), db_url)
    else:
        logger.info("PostgreSQL mode - using Alembic migrations")
    logger.info(_BANNER)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Validate configuration, prepare the schema and warm connections."""
    active_settings = get_settings()
    _validate_environment(active_settings)
    await _prepare_database(active_settings)

    from blog_backend.warmup import warmup_all

    await warmup_all(resolve_engine=get_engine)

    yield

    from blog_backend.cache import close_redis

    logger.info("Shutting down Blog Favorites API")
    await close_redis()
    await dispose_engine()


app = FastAPI(
    title="Blog Favorites API",
    version="0.1.0",
    description="Lets readers star blog posts and reports per-post favorite counts.",
    lifespan=lifespan,
)

_DEV_ORIGINS = tuple(
    f"http://{host}:{port}"
    for host in ("localhost", "127.0.0.1")
    for port in (3000, 5173, 8000)
)


def _cors_origins(extra: list[str]) -> list[str]:
    """Development origins followed by configured ones, first occurrence wins."""
    candidates = (origin.rstrip("/") for origin in (*_DEV_ORIGINS, *extra))
    return list(dict.fromkeys(origin for origin in candidates if origin))


allow_origins = _cors_origins(settings.cors_allow_origins)
logger.info("CORS origins: %s", ", ".join(allow_origins))

app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins,
    allow_origin_regex=settings.cors_allow_origin_regex,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=[REQUEST_ID_HEADER],
)


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    """Tag the request with an id, reusing the caller's when one is supplied."""
    request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
    token = set_request_id(request_id)
    try:
        response = await call_next(request)
    finally:
        clear_request_id(token)
    response.headers[REQUEST_ID_HEADER] = request_id
    return response


def _to_json(error_response: ErrorResponse) -> JSONResponse:
    return JSONResponse(
        status_code=error_response.status_code,
        content=error_response.model_dump(mode="json"),
    )


def _error(
    request: Request,
    *,
    error_type: ErrorType,
    message: str,
    detail: str,
    status_code: int,
    retry_after: int | None = None,
) -> JSONResponse:
    return _to_json(
        build_error_response(
            error_type=error_type,
            message=message,
            detail=detail,
            status_code=status_code,
            path=request.url.path,
            retry_after=retry_after,
        )
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        ValidationErrorDetail(
            field=".".join(map(str, error["loc"])),
            message=error["msg"],
            value=error.get("input"),
        )
        for error in exc.errors()
    ]
    logger.warning(
        "[%s] %s rejected with %d validation error(s)",
        get_request_id(),
        request.url.path,
        len(errors),
    )

    return _to_json(
        build_validation_error_response(
            message="Request validation failed",
            detail=f"{len(errors)} validation error(s)",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            path=request.url.path,
            errors=errors,
        )
    )


@app.exception_handler(NotFoundError)
async def not_found_exception_handler(request: Request, exc: NotFoundError):
    """A missing user or post is a 404."""
    logger.info("[%s] %s: %s", get_request_id(), request.url.path, exc)

    return _error(
        request,
        error_type=ErrorType.NOT_FOUND,
        message=f"{exc.entity.capitalize()} not found",
        detail=str(exc),
        status_code=status.HTTP_404_NOT_FOUND,
    )


@app.exception_handler(StorageError)
async def storage_exception_handler(request: Request, exc: StorageError):
    """A favorites transaction that failed and was rolled back is a 500."""
    logger.error(
        "[%s] %s: %s (cause: %r)",
        get_request_id(),
        request.url.path,
        exc,
        exc.__cause__,
    )

    return _error(
        request,
        error_type=ErrorType.DATABASE_ERROR,
        message="Favorite could not be saved",
        detail=str(exc),
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        retry_after=3,
    )


@app.exception_handler(OperationalError)
@app.exception_handler(DBAPIError)
async def database_connection_exception_handler(request: Request, exc: Exception):
    """Driver errors raised outside a favorites transaction, e.g. on connect."""
    logger.error("[%s] %s: database unavailable: %s", get_request_id(), request.url.path, exc)

    return _error(
        request,
        error_type=ErrorType.DATABASE_ERROR,
        message="Database connection failed",
        detail="The database is unavailable. Please try again later.",
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        retry_after=5,
    )


@app.exception_handler(SQLAlchemyTimeoutError)
async def database_timeout_exception_handler(
    request: Request, exc: SQLAlchemyTimeoutError
):
    logger.error("[%s] %s: pool timeout: %s", get_request_id(), request.url.path, exc)

    return _error(
        request,
        error_type=ErrorType.TIMEOUT_ERROR,
        message="Database query timeout",
        detail="No database connection became available in time.",
        status_code=status.HTTP_504_GATEWAY_TIMEOUT,
        retry_after=3,
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception):
    logger.exception(
        "[%s] %s: unhandled %s", get_request_id(), request.url.path, type(exc).__name__
    )

    return _error(
        request,
        error_type=ErrorType.INTERNAL_ERROR,
        message="Internal server error",
        detail=f"Unexpected error: {type(exc).__name__}",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        retry_after=5,
    )


@app.get("/health", tags=["system"])
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


app.include_router(favorites.router, prefix=API_PREFIX, tags=["favorites"])
