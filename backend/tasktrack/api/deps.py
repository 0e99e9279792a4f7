"""Shared dependencies for API endpoints.

Builds the auth services per request around the request's database
session, and adapts the framework-independent RequestAuthenticator to
FastAPI by reading the session cookie.

WHY DEPENDENCY INJECTION:
- Consistent auth across all endpoints
- Services receive their storage handle and clock explicitly
- Testable with overridden dependencies (clock, email sender)
"""

import uuid
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from tasktrack.core.clock import Clock, utc_now
from tasktrack.core.config import settings
from tasktrack.core.database import get_db
from tasktrack.core.email import NotificationSender, get_notification_sender
from tasktrack.core.errors import UnauthorizedError
from tasktrack.services.auth_types import Identity
from tasktrack.services.credential_store import CredentialStore
from tasktrack.services.otp_manager import OtpManager
from tasktrack.services.request_authenticator import RequestAuthenticator
from tasktrack.services.session_manager import SessionManager

DbSession = Annotated[AsyncSession, Depends(get_db)]


def get_clock() -> Clock:
    """Clock used by the auth services (overridden in tests)."""
    return utc_now


ClockDep = Annotated[Clock, Depends(get_clock)]
Sender = Annotated[NotificationSender, Depends(get_notification_sender)]


def get_credential_store(db: DbSession, clock: ClockDep) -> CredentialStore:
    """Credential store bound to the request's session."""
    return CredentialStore(db, clock)


Credentials = Annotated[CredentialStore, Depends(get_credential_store)]


def get_otp_manager(
    db: DbSession, credentials: Credentials, clock: ClockDep
) -> OtpManager:
    """OTP manager bound to the request's session."""
    return OtpManager(db, credentials, clock)


def get_session_manager(db: DbSession, clock: ClockDep) -> SessionManager:
    """Session manager bound to the request's session."""
    return SessionManager(db, clock)


Otp = Annotated[OtpManager, Depends(get_otp_manager)]
Sessions = Annotated[SessionManager, Depends(get_session_manager)]


def get_request_authenticator(sessions: Sessions) -> RequestAuthenticator:
    """Request authenticator over the request's session manager."""
    return RequestAuthenticator(sessions)


Authenticator = Annotated[RequestAuthenticator, Depends(get_request_authenticator)]


def get_session_token(request: Request) -> str | None:
    """Raw session token from the session cookie, if present."""
    return request.cookies.get(settings.session_cookie_name)


SessionToken = Annotated[str | None, Depends(get_session_token)]


async def get_current_user_id(
    token: SessionToken,
    authenticator: Authenticator,
) -> uuid.UUID:
    """Get current user ID from the session cookie.

    Raises:
        UnauthorizedError: 401 for a missing, malformed, expired or revoked
            session. The reason is never disclosed.
        StorageUnavailableError: 503 if sessions cannot be looked up.
    """
    user_id = await authenticator.identify_caller(token)
    if user_id is None:
        raise UnauthorizedError()
    return user_id


CurrentUserId = Annotated[uuid.UUID, Depends(get_current_user_id)]


async def get_current_identity(
    user_id: CurrentUserId,
    credentials: Credentials,
) -> Identity:
    """Get the full Identity for the current user.

    Raises:
        UnauthorizedError: 401 if the user vanished between lookups.
    """
    identity = await credentials.get_by_id(user_id)
    if identity is None:
        raise UnauthorizedError()
    return identity


CurrentIdentity = Annotated[Identity, Depends(get_current_identity)]
