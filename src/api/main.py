"""FastAPI application entry point."""
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from api.routers import (
    admin,
    auth,
    bookmarks,
    comments,
    health,
    metadata,
    seo,
    site,
    tags,
    users,
)
from core.config import get_settings
from db.session import engine

logger = logging.getLogger(__name__)

# Seconds clients should wait before retrying after a transient database failure
TRANSIENT_RETRY_AFTER = 5


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None]:
    """Manage application lifespan - startup and shutdown."""
    logger.info("Starting Linkshelf API")
    yield
    await engine.dispose()
    logger.info("Database engine disposed")


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint,
    ) -> Response:
        """Process request and add security headers to response."""
        response = await call_next(request)
        # HSTS: enforce HTTPS for 1 year, including subdomains
        response.headers["Strict-Transport-Security"] = (
            "max-age=31536000; includeSubDomains"
        )
        # Prevent MIME type sniffing
        response.headers["X-Content-Type-Options"] = "nosniff"
        # Prevent clickjacking - API shouldn't be framed
        response.headers["X-Frame-Options"] = "DENY"
        return response


def is_transient_db_error(exc: Exception) -> bool:
    """
    True for database failures worth retrying: lost connections and pool exhaustion.

    Constraint violations and other statement errors are permanent.
    """
    if isinstance(exc, (OperationalError, PoolTimeoutError)):
        return True
    return isinstance(exc, DBAPIError) and exc.connection_invalidated


app_settings = get_settings()

logging.basicConfig(
    level=app_settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

app = FastAPI(
    title="Linkshelf API",
    description="Share bookmarks with tags, favorites and comments.",
    version="0.1.0",
    lifespan=lifespan,
    debug=app_settings.debug,
)


async def _transient_error_response(exc: Exception) -> JSONResponse:
    logger.exception("Transient database failure", exc_info=exc)
    return JSONResponse(
        status_code=503,
        content={
            "detail": "The service is temporarily unavailable. Please try again shortly.",
            "retryable": True,
        },
        headers={"Retry-After": str(TRANSIENT_RETRY_AFTER)},
    )


@app.exception_handler(OperationalError)
async def operational_error_handler(_request: Request, exc: OperationalError) -> JSONResponse:
    """Lost or refused database connections."""
    return await _transient_error_response(exc)


@app.exception_handler(PoolTimeoutError)
async def pool_timeout_handler(_request: Request, exc: PoolTimeoutError) -> JSONResponse:
    """Connection pool exhausted."""
    return await _transient_error_response(exc)


@app.exception_handler(DBAPIError)
async def dbapi_error_handler(_request: Request, exc: DBAPIError) -> JSONResponse:
    """Invalidated connections are transient; anything else is a permanent server error."""
    if is_transient_db_error(exc):
        return await _transient_error_response(exc)
    logger.exception("Database error", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "retryable": False},
    )


# Security headers middleware (runs after CORS, adds headers to responses)
app.add_middleware(SecurityHeadersMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=app_settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(seo.router)
app.include_router(auth.router, prefix="/api")
app.include_router(bookmarks.router, prefix="/api")
app.include_router(comments.router, prefix="/api")
app.include_router(tags.router, prefix="/api")
app.include_router(users.router, prefix="/api")
app.include_router(metadata.router, prefix="/api")
app.include_router(site.router, prefix="/api")
app.include_router(admin.router, prefix="/api")
