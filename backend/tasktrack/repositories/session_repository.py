"""Repository for UserSession operations.

Sessions are looked up by the SHA-256 hash of the cookie token; the
plain token is never stored. Revocation is a hard
delete; expiry is checked in the lookup query.
"""

import uuid
from datetime import datetime

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from tasktrack.models.user import User
from tasktrack.models.user_session import UserSession


class SessionRepository:
    """Stateless repository for UserSession table operations.

    All methods are static: no instance state.
    """

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        user_id: uuid.UUID,
        token_hash: str,
        expires_at: datetime,
        created_at: datetime,
    ) -> UserSession:
        """Store a new session.

        Args:
            db: Async database session.
            user_id: Owning user.
            token_hash: SHA-256 hash of the session token.
            expires_at: Expiry timestamp.
            created_at: Creation timestamp.

        Returns:
            Created UserSession.

        Raises:
            sqlalchemy.exc.IntegrityError: If the token already exists.
        """
        session = UserSession(
            user_id=user_id,
            token_hash=token_hash,
            expires_at=expires_at,
            created_at=created_at,
        )
        db.add(session)
        await db.flush()
        return session

    @staticmethod
    async def get_active_user(
        db: AsyncSession,
        *,
        token_hash: str,
        now: datetime,
    ) -> User | None:
        """Resolve a token to its user if the session is still valid.

        Args:
            db: Async database session.
            token_hash: SHA-256 hash of the token from the session cookie.
            now: Current time; sessions expiring at or before it are ignored.

        Returns:
            Active (not soft deleted) owning User, or None.
        """
        stmt = (
            select(User)
            .join(UserSession, UserSession.user_id == User.id)
            .where(
                UserSession.token_hash == token_hash,
                UserSession.expires_at > now,
                User.is_deleted.is_(False),
            )
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def delete(db: AsyncSession, *, token_hash: str) -> int:
        """Delete a session by token hash (logout).

        Args:
            db: Async database session.
            token_hash: SHA-256 hash of the token to revoke.

        Returns:
            Number of deleted rows (0 if the token was unknown).
        """
        stmt = delete(UserSession).where(UserSession.token_hash == token_hash)
        result = await db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count

    @staticmethod
    async def delete_all_for_user(db: AsyncSession, *, user_id: uuid.UUID) -> int:
        """Delete every session belonging to a user.

        Args:
            db: Async database session.
            user_id: Owning user.

        Returns:
            Number of deleted rows.
        """
        stmt = delete(UserSession).where(UserSession.user_id == user_id)
        result = await db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count

    @staticmethod
    async def delete_expired(db: AsyncSession, *, now: datetime) -> int:
        """Delete all expired sessions (periodic cleanup).

        Args:
            db: Async database session.
            now: Current time.

        Returns:
            Number of deleted rows.
        """
        stmt = delete(UserSession).where(UserSession.expires_at <= now)
        result = await db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count
