"""Server-side session management.

Sessions are opaque random tokens. Only their SHA-256 hash is stored in
user_sessions; the plain token travels in the session cookie. A token is a
bearer credential: it authorizes every request until it expires or is
revoked. Lookups never extend the expiry.
"""

import hashlib
import logging
import secrets
import uuid
from datetime import timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from tasktrack.core.clock import Clock, utc_now
from tasktrack.core.config import settings
from tasktrack.core.database import translate_storage_errors
from tasktrack.repositories.session_repository import SessionRepository
from tasktrack.services.auth_types import Identity

logger = logging.getLogger(__name__)

# 32 random bytes -> 64 hex characters (256 bits of entropy)
SESSION_TOKEN_BYTES = 32


def generate_session_token() -> str:
    """Return a fresh unguessable session token."""
    return secrets.token_hex(SESSION_TOKEN_BYTES)


def hash_session_token(token: str) -> str:
    """Return the storage form (SHA-256 hex digest) of a session token."""
    return hashlib.sha256(token.encode()).hexdigest()


class SessionManager:
    """Issues, resolves and revokes session tokens.

    Args:
        db: Async database session owned by the caller.
        clock: Source of the current time.
        ttl: Session lifetime. Defaults to the configured session_ttl_days.
    """

    def __init__(
        self,
        db: AsyncSession,
        clock: Clock = utc_now,
        *,
        ttl: timedelta | None = None,
    ) -> None:
        self._db = db
        self._clock = clock
        if ttl is None:
            ttl = timedelta(days=settings.session_ttl_days)
        self._ttl = ttl

    @property
    def ttl(self) -> timedelta:
        """Lifetime applied to new sessions (also the cookie max-age)."""
        return self._ttl

    async def create_session(self, identity: Identity) -> str:
        """Persist a new session for an identity.

        Args:
            identity: Authenticated owner.

        Returns:
            The session token to place in the session cookie.

        Raises:
            StorageUnavailableError: If the database cannot be reached.
        """
        now = self._clock()
        token = generate_session_token()
        with translate_storage_errors("create_session"):
            await SessionRepository.create(
                self._db,
                user_id=identity.id,
                token_hash=hash_session_token(token),
                expires_at=now + self._ttl,
                created_at=now,
            )
        logger.info("Session created for user %s", identity.id)
        return token

    async def resolve_session(self, token: str) -> Identity | None:
        """Return the identity behind a valid session, or None.

        Absence (unknown, expired, revoked, or owner deleted) is not an
        error. Storage failures are.

        Raises:
            StorageUnavailableError: If the database cannot be reached.
        """
        with translate_storage_errors("resolve_session"):
            user = await SessionRepository.get_active_user(
                self._db, token_hash=hash_session_token(token), now=self._clock()
            )
        return Identity.from_model(user) if user else None

    async def revoke_session(self, token: str) -> None:
        """Delete a session. Revoking an unknown token is a no-op."""
        with translate_storage_errors("revoke_session"):
            await SessionRepository.delete(
                self._db, token_hash=hash_session_token(token)
            )

    async def revoke_all_for_identity(self, identity_id: uuid.UUID) -> int:
        """Delete every session of an identity (account deletion).

        Returns:
            Number of sessions revoked.
        """
        with translate_storage_errors("revoke_all_for_identity"):
            revoked = await SessionRepository.delete_all_for_user(
                self._db, user_id=identity_id
            )
        logger.info("Revoked %d session(s) for user %s", revoked, identity_id)
        return revoked
