"""One-time code login + session endpoints.

Passwordless sign-in via emailed 6-digit codes, logout, and session token
introspection.

Endpoints:
- POST /auth/login: issue a code and email it
- POST /auth/resend-otp: issue a replacement code and email it
- POST /auth/verify-otp: verify code, create session, set cookie
- POST /auth/logout: revoke session, clear cookie
- GET /auth/fetch-token: current session token, if the session is valid
"""

import logging

from fastapi import APIRouter, Request, Response
from pydantic import BaseModel, ConfigDict, Field

from tasktrack.api.deps import (
    Authenticator,
    Credentials,
    DbSession,
    Otp,
    Sender,
    Sessions,
    SessionToken,
)
from tasktrack.core.auth import clear_session_cookie, set_session_cookie
from tasktrack.core.config import settings
from tasktrack.core.database import translate_storage_errors
from tasktrack.core.errors import EmailDeliveryError, InvalidCodeError
from tasktrack.core.rate_limiting import limiter
from tasktrack.core.responses import DataResponse
from tasktrack.services.auth_types import Identity
from tasktrack.services.otp_manager import OtpManager

logger = logging.getLogger(__name__)

router = APIRouter()

_CODE_SENT_MSG = "Verification code sent"


# ===================================================================
# Request models
# ===================================================================


class EmailRequest(BaseModel):
    """Request body for POST /auth/login and POST /auth/resend-otp."""

    model_config = ConfigDict(extra="forbid")

    email: str = Field(min_length=1, max_length=320)


class VerifyOtpRequest(BaseModel):
    """Request body for POST /auth/verify-otp."""

    model_config = ConfigDict(extra="forbid")

    email: str = Field(min_length=1, max_length=320)
    otp: str = Field(min_length=1, max_length=32)


# ===================================================================
# Helpers
# ===================================================================


async def _issue_and_send(
    otp: OtpManager, db: DbSession, sender: Sender, email: str
) -> dict:
    """Issue a code, commit it, then hand it to the email sender.

    The commit happens first so that a delivery failure still leaves the
    code on record for a later resend to supersede.

    Raises:
        ValidationError: Malformed email.
        StorageUnavailableError: Database unreachable.
        EmailDeliveryError: Sender reported failure.
    """
    issued = await otp.issue_code(email)
    with translate_storage_errors("commit_issued_code"):
        await db.commit()

    if not await sender.send(issued.identity.email, issued.code):
        raise EmailDeliveryError()

    # Security: never include the code in the response
    return {"message": _CODE_SENT_MSG, "email": issued.identity.email}


def _user_to_response(identity: Identity) -> dict:
    """Build the user payload returned after sign-in."""
    return {
        "id": str(identity.id),
        "email": identity.email,
        "full_name": identity.full_name,
    }


# ===================================================================
# POST /auth/login
# ===================================================================


@router.post("/login")
@limiter.limit(lambda: settings.rate_limit_login)
async def login(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: EmailRequest,
    otp: Otp,
    db: DbSession,
    sender: Sender,
) -> DataResponse[dict]:
    """Start a login by emailing a one-time code.

    Creates the user on first login.
    """
    return DataResponse(data=await _issue_and_send(otp, db, sender, body.email))


# ===================================================================
# POST /auth/resend-otp
# ===================================================================


@router.post("/resend-otp")
@limiter.limit(lambda: settings.rate_limit_login)
async def resend_otp(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: EmailRequest,
    otp: Otp,
    db: DbSession,
    sender: Sender,
) -> DataResponse[dict]:
    """Email a replacement code; the previous code stops working."""
    return DataResponse(data=await _issue_and_send(otp, db, sender, body.email))


# ===================================================================
# POST /auth/verify-otp
# ===================================================================


@router.post("/verify-otp")
@limiter.limit(lambda: settings.rate_limit_verify)
async def verify_otp(
    request: Request,  # noqa: ARG001 - required by @limiter.limit()
    body: VerifyOtpRequest,
    response: Response,
    otp: Otp,
    credentials: Credentials,
    sessions: Sessions,
    db: DbSession,
) -> DataResponse[dict]:
    """Verify a code and start a session.

    Every failure yields the same INVALID_CODE error, whether the email is
    unknown or the code is wrong, expired or already used.
    """
    result = await otp.verify_code(body.email, body.otp)
    if not result.valid or result.identity is None:
        raise InvalidCodeError()

    identity = result.identity
    await credentials.mark_authenticated_now(identity.id)
    token = await sessions.create_session(identity)
    with translate_storage_errors("commit_session"):
        await db.commit()

    set_session_cookie(response, token, sessions.ttl)
    return DataResponse(data={"user": _user_to_response(identity)})


# ===================================================================
# POST /auth/logout
# ===================================================================


@router.post("/logout")
async def logout(
    response: Response,
    token: SessionToken,
    sessions: Sessions,
    db: DbSession,
) -> DataResponse[dict]:
    """Revoke the current session and clear the cookie.

    No auth required: succeeds with or without a session cookie.
    """
    if token:
        await sessions.revoke_session(token)
        with translate_storage_errors("commit_logout"):
            await db.commit()

    clear_session_cookie(response)
    return DataResponse(data={"message": "Logged out successfully"})


# ===================================================================
# GET /auth/fetch-token
# ===================================================================


@router.get("/fetch-token")
async def fetch_token(
    token: SessionToken,
    authenticator: Authenticator,
) -> DataResponse[dict]:
    """Return the session token when it belongs to a valid session.

    Stale or unknown cookies report null instead of echoing the value.
    """
    user_id = await authenticator.identify_caller(token)
    return DataResponse(data={"token": token if user_id is not None else None})
