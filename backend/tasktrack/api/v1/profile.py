"""Profile endpoints for the signed-in user.

Endpoints:
- GET /profile: current user's profile
- PATCH /profile: update display name
- DELETE /profile: soft delete the account and end all sessions
"""

from fastapi import APIRouter, Response
from pydantic import BaseModel, ConfigDict, Field

from tasktrack.api.deps import Credentials, CurrentIdentity, DbSession, Sessions
from tasktrack.core.auth import clear_session_cookie
from tasktrack.core.database import translate_storage_errors
from tasktrack.core.errors import ValidationError
from tasktrack.core.responses import DataResponse
from tasktrack.services.auth_types import Identity

router = APIRouter()


class UpdateProfileRequest(BaseModel):
    """Request body for PATCH /profile."""

    model_config = ConfigDict(extra="forbid")

    full_name: str = Field(max_length=255)


def _profile_to_response(identity: Identity) -> dict:
    """Build the profile payload for GET and PATCH."""
    return {
        "id": str(identity.id),
        "email": identity.email,
        "full_name": identity.full_name,
        "created_at": identity.created_at.isoformat(),
        "last_login_at": (
            identity.last_login_at.isoformat() if identity.last_login_at else None
        ),
    }


@router.get("")
async def get_profile(identity: CurrentIdentity) -> DataResponse[dict]:
    """Return the current user's profile. 401 without a valid session."""
    return DataResponse(data=_profile_to_response(identity))


@router.patch("")
async def update_profile(
    body: UpdateProfileRequest,
    identity: CurrentIdentity,
    credentials: Credentials,
    db: DbSession,
) -> DataResponse[dict]:
    """Update the display name."""
    trimmed_name = body.full_name.strip()
    if not trimmed_name:
        raise ValidationError("Name must not be empty")

    updated = await credentials.create_or_update(identity.email, trimmed_name)
    with translate_storage_errors("commit_profile"):
        await db.commit()
    return DataResponse(data=_profile_to_response(updated))


@router.delete("")
async def delete_profile(
    response: Response,
    identity: CurrentIdentity,
    credentials: Credentials,
    sessions: Sessions,
    db: DbSession,
) -> DataResponse[dict]:
    """Soft delete the account, revoke every session, clear the cookie."""
    await credentials.soft_delete(identity.id)
    await sessions.revoke_all_for_identity(identity.id)
    with translate_storage_errors("commit_account_deletion"):
        await db.commit()

    clear_session_cookie(response)
    return DataResponse(data={"message": "Account deleted"})
