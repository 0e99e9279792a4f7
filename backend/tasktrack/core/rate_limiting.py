"""Per-client throttling of the unauthenticated auth endpoints (slowapi).

Login and resend send email, and verify is the only place a code can be
guessed, so all three are limited per client address. Nothing that is
limited carries a session yet, so there is no user key to prefer.

Usage in routers:
    @router.post("/login")
    @limiter.limit(lambda: settings.rate_limit_login)
    async def login(request: Request, ...):
        ...
"""

from fastapi import Request, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from tasktrack.core.config import settings
from tasktrack.core.errors import RateLimitedError
from tasktrack.core.responses import error_response

_DEFAULT_RETRY_AFTER = 60

# In-memory counters; a multi-instance deployment needs a shared storage_uri.
limiter = Limiter(
    key_func=get_remote_address,
    enabled=settings.rate_limit_enabled,
)


def _retry_after_seconds(exc: RateLimitExceeded) -> int:
    """Length of the violated window, or the default when it is unknown."""
    try:
        return int(exc.limit.limit.get_expiry())
    except (AttributeError, TypeError, ValueError):
        return _DEFAULT_RETRY_AFTER


def rate_limit_exceeded_handler(
    _request: Request,
    exc: RateLimitExceeded,
) -> Response:
    """Answer a throttled request with 429, the error envelope and Retry-After.

    Args:
        request: The incoming request.
        exc: The slowapi exception naming the violated limit.

    Returns:
        JSONResponse with status 429.
    """
    retry_after = _retry_after_seconds(exc)
    response = error_response(RateLimitedError(retry_after))
    response.headers["Retry-After"] = str(retry_after)
    return response
