"""Session cookie helpers.

The session token travels only in an httpOnly cookie. set and clear must
use identical attributes or browsers will not delete the cookie.
"""

from datetime import timedelta

from fastapi import Response

from tasktrack.core.config import settings


def set_session_cookie(response: Response, token: str, max_age: timedelta) -> None:
    """Set the httpOnly session cookie on a response.

    Security: httpOnly prevents XSS cookie theft. Secure flag and SameSite
    are configured via settings for environment-appropriate security.

    Args:
        response: FastAPI response object.
        token: Session token.
        max_age: Cookie lifetime; matches the session expiry.
    """
    response.set_cookie(
        key=settings.session_cookie_name,
        value=token,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite=settings.session_cookie_samesite,
        path="/",
        max_age=int(max_age.total_seconds()),
        domain=settings.session_cookie_domain or None,
    )


def clear_session_cookie(response: Response) -> None:
    """Expire the session cookie on a response."""
    response.delete_cookie(
        key=settings.session_cookie_name,
        path="/",
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite=settings.session_cookie_samesite,
        domain=settings.session_cookie_domain or None,
    )
