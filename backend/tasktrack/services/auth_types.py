"""Typed records passed across the auth service boundary.

Services return these frozen dataclasses instead of ORM rows so callers
never hold a live, session-bound object.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime

from tasktrack.models.user import User


@dataclass(frozen=True)
class Identity:
    """A registered, non-deleted user.

    Attributes:
        id: User UUID.
        email: Email address as stored.
        full_name: Optional display name.
        created_at: Account creation timestamp.
        last_login_at: Last successful code verification, if any.
    """

    id: uuid.UUID
    email: str
    full_name: str | None
    created_at: datetime
    last_login_at: datetime | None

    @classmethod
    def from_model(cls, user: User) -> "Identity":
        """Build an Identity from a loaded User row."""
        return cls(
            id=user.id,
            email=user.email,
            full_name=user.full_name,
            created_at=user.created_at,
            last_login_at=user.last_login_at,
        )


@dataclass(frozen=True)
class IssuedCode:
    """A freshly issued one-time code.

    The plain code is for the notification sender only and must never be
    echoed in an HTTP response.

    Attributes:
        code: Plain numeric code.
        identity: Owner of the code.
        expires_at: When the code stops verifying.
    """

    code: str
    identity: Identity
    expires_at: datetime

    def __repr__(self) -> str:
        return (
            f"IssuedCode(code='***', identity={self.identity!r}, "
            f"expires_at={self.expires_at!r})"
        )


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of a code verification.

    Failures carry no reason; wrong code, expired code, reused code and
    unknown email are indistinguishable.

    Attributes:
        valid: True only for a first-time match within the expiry window.
        identity: Owner of the code when valid, else None.
    """

    valid: bool
    identity: Identity | None = None

    @classmethod
    def invalid(cls) -> "VerificationResult":
        """The single failure outcome."""
        return cls(valid=False, identity=None)
