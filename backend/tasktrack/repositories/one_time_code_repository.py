"""Repository for OneTimeCode operations.

Single-use login codes with time-limited expiry. State changes use
conditional UPDATEs so that concurrent requests cannot consume or keep
alive the same code twice.
"""

import uuid
from datetime import datetime

from sqlalchemy import delete, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from tasktrack.models.one_time_code import OneTimeCode


class OneTimeCodeRepository:
    """Stateless repository for OneTimeCode table operations.

    All methods are static: no instance state.
    """

    @staticmethod
    async def supersede_active(db: AsyncSession, *, email: str) -> int:
        """Mark every unused code for an email as used.

        Args:
            db: Async database session.
            email: Address whose codes are invalidated.

        Returns:
            Number of codes invalidated.
        """
        stmt = (
            update(OneTimeCode)
            .where(OneTimeCode.email == email, OneTimeCode.is_used.is_(False))
            .values(is_used=True)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count

    @staticmethod
    async def create(
        db: AsyncSession,
        *,
        user_id: uuid.UUID,
        email: str,
        code: str,
        expires_at: datetime,
        created_at: datetime,
    ) -> OneTimeCode:
        """Store a new unused code.

        Args:
            db: Async database session.
            user_id: Owning user.
            email: Address the code is sent to.
            code: Plain numeric code.
            expires_at: Expiry timestamp.
            created_at: Issue timestamp.

        Returns:
            Created OneTimeCode.

        Raises:
            sqlalchemy.exc.IntegrityError: If another unused code exists for
                the email (concurrent issuance).
        """
        otp = OneTimeCode(
            user_id=user_id,
            email=email,
            code=code,
            expires_at=expires_at,
            is_used=False,
            created_at=created_at,
        )
        db.add(otp)
        await db.flush()
        return otp

    @staticmethod
    async def find_active_match(
        db: AsyncSession,
        *,
        email: str,
        code: str,
        now: datetime,
    ) -> OneTimeCode | None:
        """Find the newest unused, unexpired code with the given value.

        Args:
            db: Async database session.
            email: Address the code was sent to.
            code: Submitted code (digits only).
            now: Current time; codes expiring at or before it are ignored.

        Returns:
            Matching OneTimeCode, or None.
        """
        stmt = (
            select(OneTimeCode)
            .where(
                OneTimeCode.email == email,
                OneTimeCode.code == code,
                OneTimeCode.is_used.is_(False),
                OneTimeCode.expires_at > now,
            )
            .order_by(OneTimeCode.created_at.desc())
            .limit(1)
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    @staticmethod
    async def mark_used(db: AsyncSession, code_id: uuid.UUID) -> bool:
        """Consume a code if it is still unused.

        Args:
            db: Async database session.
            code_id: Primary key of the code.

        Returns:
            True if this call flipped is_used, False if it was already used.
        """
        stmt = (
            update(OneTimeCode)
            .where(OneTimeCode.id == code_id, OneTimeCode.is_used.is_(False))
            .values(is_used=True)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count == 1

    @staticmethod
    async def delete_spent(db: AsyncSession, *, now: datetime) -> int:
        """Delete used and expired codes (periodic cleanup).

        Args:
            db: Async database session.
            now: Current time.

        Returns:
            Number of deleted rows.
        """
        stmt = delete(OneTimeCode).where(
            or_(OneTimeCode.is_used.is_(True), OneTimeCode.expires_at <= now)
        )
        result = await db.execute(stmt)
        row_count: int = result.rowcount  # type: ignore[attr-defined]
        return row_count
