"""Repository for User CRUD operations.

Provides database access for the users table. Soft-deleted users are
invisible to every lookup here.
"""

import uuid
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from tasktrack.models.user import User

# Fields that may be updated via UserRepository.update().
# Security: Never add 'id', 'email', 'created_at', or the soft delete columns.
# - id: primary key, immutable
# - email: identity key for one-time codes
# - is_deleted/deleted_at: only via soft_delete()
_UPDATABLE_FIELDS: frozenset[str] = frozenset(
    {
        "full_name",
        "last_login_at",
    }
)


class UserRepository:
    """Stateless repository for User table operations.

    All methods are static: no instance state. Pass an AsyncSession
    for every call so the caller controls transaction boundaries.
    """

    @staticmethod
    async def get_by_id(db: AsyncSession, user_id: uuid.UUID) -> User | None:
        """Fetch an active user by primary key.

        Args:
            db: Async database session.
            user_id: UUID primary key.

        Returns:
            User if found and not soft deleted, None otherwise.
        """
        stmt = select(User).where(User.id == user_id, User.is_deleted.is_(False))
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_email(db: AsyncSession, email: str) -> User | None:
        """Fetch the active user for an email address (exact match).

        Args:
            db: Async database session.
            email: Email address to look up.

        Returns:
            User if found, None otherwise.
        """
        stmt = select(User).where(User.email == email, User.is_deleted.is_(False))
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        email: str,
        created_at: datetime,
        full_name: str | None = None,
    ) -> User:
        """Create a new user.

        Args:
            db: Async database session.
            email: User email address, already normalized by the caller.
            created_at: Creation timestamp from the caller's clock.
            full_name: Optional display name.

        Returns:
            Created User with database-generated fields populated.

        Raises:
            sqlalchemy.exc.IntegrityError: If an active user already has
                this email.
        """
        user = User(
            email=email,
            full_name=full_name,
            created_at=created_at,
            updated_at=created_at,
        )
        db.add(user)
        await db.flush()
        await db.refresh(user)
        return user

    @staticmethod
    async def update(
        db: AsyncSession,
        user_id: uuid.UUID,
        **kwargs: str | datetime | None,
    ) -> User | None:
        """Update user fields.

        Only fields in _UPDATABLE_FIELDS are allowed. Unknown field names
        raise ValueError.

        Args:
            db: Async database session.
            user_id: UUID of the user to update.
            **kwargs: Field names and values to update.

        Returns:
            Updated User if found, None if the user does not exist or is
            soft deleted.

        Raises:
            ValueError: If an unknown field name is passed.
        """
        unknown = set(kwargs) - _UPDATABLE_FIELDS
        if unknown:
            msg = f"Unknown fields: {', '.join(sorted(unknown))}"
            raise ValueError(msg)

        user = await UserRepository.get_by_id(db, user_id)
        if user is None:
            return None

        for field, value in kwargs.items():
            setattr(user, field, value)

        await db.flush()
        await db.refresh(user)
        return user

    @staticmethod
    async def soft_delete(
        db: AsyncSession, user_id: uuid.UUID, *, deleted_at: datetime
    ) -> bool:
        """Mark a user as deleted without removing the row.

        Args:
            db: Async database session.
            user_id: UUID of the user.
            deleted_at: Timestamp recorded in deleted_at.

        Returns:
            True if an active user was marked, False if none matched.
        """
        stmt = (
            update(User)
            .where(User.id == user_id, User.is_deleted.is_(False))
            .values(is_deleted=True, deleted_at=deleted_at)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count > 0
