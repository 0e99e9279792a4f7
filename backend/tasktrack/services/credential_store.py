"""Credential store - identity records keyed by email.

Wraps UserRepository with upsert semantics and storage-error translation.
Duplicate inserts racing on the partial unique email index are absorbed
inside a savepoint by re-reading the winning row.
"""

import logging
import uuid

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from tasktrack.core.clock import Clock, utc_now
from tasktrack.core.database import translate_storage_errors
from tasktrack.core.errors import ValidationError
from tasktrack.repositories.user_repository import UserRepository
from tasktrack.services.auth_types import Identity

logger = logging.getLogger(__name__)

_MAX_EMAIL_LENGTH = 255


def normalize_email(email: str) -> str:
    """Trim an email address and check it is syntactically usable.

    Case is preserved: addresses are matched exactly as stored.

    Args:
        email: Raw address from the request.

    Returns:
        Trimmed address.

    Raises:
        ValidationError: If the address is empty, too long, or has no "@".
    """
    cleaned = email.strip()
    if "@" not in cleaned:
        raise ValidationError("Valid email is required")
    if len(cleaned) > _MAX_EMAIL_LENGTH:
        raise ValidationError("Email is too long")
    return cleaned


class CredentialStore:
    """Identity lookups and mutations for the auth flow.

    Args:
        db: Async database session owned by the caller.
        clock: Source of the current time.
    """

    def __init__(self, db: AsyncSession, clock: Clock = utc_now) -> None:
        self._db = db
        self._clock = clock

    async def find_by_email(self, email: str) -> Identity | None:
        """Return the active identity for an email, or None."""
        with translate_storage_errors("find_by_email"):
            user = await UserRepository.get_by_email(self._db, email.strip())
        return Identity.from_model(user) if user else None

    async def get_by_id(self, identity_id: uuid.UUID) -> Identity | None:
        """Return the active identity with this id, or None."""
        with translate_storage_errors("get_by_id"):
            user = await UserRepository.get_by_id(self._db, identity_id)
        return Identity.from_model(user) if user else None

    async def create_or_update(
        self, email: str, display_name: str | None = None
    ) -> Identity:
        """Resolve the identity for an email, creating it if needed.

        An existing identity only changes when a display name is given and
        differs from the stored one.

        Args:
            email: Email address (validated and trimmed here).
            display_name: Optional new display name.

        Returns:
            The existing, updated, or newly created Identity.

        Raises:
            ValidationError: If the email is malformed.
            StorageUnavailableError: If the database cannot be reached.
        """
        email = normalize_email(email)
        with translate_storage_errors("create_or_update"):
            user = await UserRepository.get_by_email(self._db, email)
            if user is None:
                try:
                    async with self._db.begin_nested():
                        user = await UserRepository.create(
                            self._db,
                            email=email,
                            full_name=display_name,
                            created_at=self._clock(),
                        )
                    return Identity.from_model(user)
                except IntegrityError:
                    # Lost an insert race for the same email.
                    logger.info("Concurrent identity creation; using existing row")
                    user = await UserRepository.get_by_email(self._db, email)
                    if user is None:
                        raise

            if display_name and display_name != user.full_name:
                updated = await UserRepository.update(
                    self._db, user.id, full_name=display_name
                )
                if updated is not None:
                    user = updated

        return Identity.from_model(user)

    async def mark_authenticated_now(self, identity_id: uuid.UUID) -> None:
        """Record a successful authentication on the identity."""
        with translate_storage_errors("mark_authenticated_now"):
            await UserRepository.update(
                self._db, identity_id, last_login_at=self._clock()
            )

    async def soft_delete(self, identity_id: uuid.UUID) -> None:
        """Flag the identity as deleted; the row is kept."""
        with translate_storage_errors("soft_delete"):
            deleted = await UserRepository.soft_delete(
                self._db, identity_id, deleted_at=self._clock()
            )
        if deleted:
            logger.info("Soft deleted user %s", identity_id)
