"""User model - the identity root for authentication.

One-time codes and sessions reference users; a user has no back-pointer
collections of either.
"""

import uuid
from datetime import datetime

from sqlalchemy import Index, String, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from tasktrack.models.base import Base, SoftDeleteMixin, TimestampMixin


class User(Base, TimestampMixin, SoftDeleteMixin):
    """Registered user, created lazily on the first login attempt.

    Attributes:
        id: UUID primary key.
        email: Email address, stored as submitted (trimmed, case preserved).
        full_name: Optional display name.
        last_login_at: Timestamp of the last successful code verification.
        created_at: Account creation timestamp (from TimestampMixin).
        updated_at: Last modification timestamp (from TimestampMixin).
        is_deleted: Soft delete flag (from SoftDeleteMixin).
        deleted_at: Soft delete timestamp (from SoftDeleteMixin).
    """

    __tablename__ = "users"
    # At most one active user per email; soft-deleted rows keep their email.
    __table_args__ = (
        Index(
            "uq_users_email_active",
            "email",
            unique=True,
            postgresql_where=text("is_deleted = false"),
            sqlite_where=text("is_deleted = false"),
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=uuid.uuid4,
    )
    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
    )
    full_name: Mapped[str | None] = mapped_column(
        String(255),
        nullable=True,
    )
    last_login_at: Mapped[datetime | None] = mapped_column(
        nullable=True,
    )
