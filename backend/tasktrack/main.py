"""FastAPI application entry point.

The API is consumed by a browser frontend that authenticates with an
HttpOnly session cookie, so every response is hardened for that case:

- Auth and profile responses carry Set-Cookie or user data and must never
  be stored by browsers or shared caches (Cache-Control: no-store).
- Nothing here renders HTML, so the content security policy denies every
  resource type and all framing.
- Referrers are dropped entirely; login URLs never need to leak to other
  origins.
- HSTS is only sent in production, where TLS terminates at the proxy.

Errors leave the process in one envelope shape. Unexpected failures are
logged with the exception type and request path only; exception messages
can embed bound SQL parameters (emails, codes) and are not logged outside
development.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from tasktrack.api.v1.router import router as v1_router
from tasktrack.core.config import settings
from tasktrack.core.database import create_tables, dispose_engine
from tasktrack.core.errors import APIError, InternalError, ValidationError
from tasktrack.core.rate_limiting import limiter, rate_limit_exceeded_handler
from tasktrack.core.responses import error_response

logger = structlog.get_logger()

_API_PREFIX = "/api/v1"

_BASE_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "Content-Security-Policy": "default-src 'none'; frame-ancestors 'none'",
}

_NO_STORE_HEADERS = {
    "Cache-Control": "no-store",
    "Pragma": "no-cache",
}

_HSTS = "max-age=31536000; includeSubDomains"


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Apply the cookie-API header set described in the module docstring."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        response = await call_next(request)
        response.headers.update(_BASE_HEADERS)
        if request.url.path.startswith("/api/"):
            response.headers.update(_NO_STORE_HEADERS)
        if settings.environment == "production":
            response.headers["Strict-Transport-Security"] = _HSTS
        return response


def api_error_handler(_request: Request, exc: APIError) -> JSONResponse:
    """Render any APIError as the standard error envelope."""
    return error_response(exc)


def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report malformed request bodies as 400 VALIDATION_ERROR.

    Only location, message and type are returned per field. The rejected
    input value is left out because it may be an email address or code.
    """
    error = ValidationError(
        "Request validation failed",
        details=[
            {"loc": list(e["loc"]), "msg": e["msg"], "type": e["type"]}
            for e in exc.errors()
        ],
    )
    return api_error_handler(request, error)


def internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unhandled exceptions.

    Returns 500 INTERNAL_ERROR with the generic message. The traceback is
    attached to the log record only in development.

    Args:
        request: The incoming request.
        exc: The unhandled exception.

    Returns:
        JSONResponse with the InternalError envelope (500).
    """
    logger.error(
        "Unhandled exception",
        error_type=type(exc).__name__,
        method=request.method,
        path=request.url.path,
        exc_info=exc if settings.environment == "development" else None,
    )
    return api_error_handler(request, InternalError())


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    """Create tables on startup when configured; release the pool on shutdown.

    Deployed databases get their schema from the Alembic revisions in
    backend/migrations; auto-create is a development shortcut.
    """
    if settings.database_auto_create:
        await create_tables()
        logger.info("Database tables ensured")
    yield
    await dispose_engine()


def create_app() -> FastAPI:
    """Build the application: middleware, error handlers, routers.

    Returns:
        Configured FastAPI application instance.
    """
    app = FastAPI(
        title="Tasktrack Auth API",
        version="1.0.0",
        description="Email one-time-code sign-in and session management",
        lifespan=lifespan,
    )

    # Added last so it runs first and answers CORS preflights itself.
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Accept"],
    )

    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_exception_handler(Exception, internal_error_handler)

    app.state.limiter = limiter
    app.include_router(v1_router, prefix=_API_PREFIX)

    @app.get("/health")
    def health_check() -> dict:
        """Liveness check; does not touch the database."""
        return {"status": "healthy"}

    return app


# uvicorn tasktrack.main:app
app = create_app()
