"""User session model - opaque bearer tokens issued after code verification.

Revocation deletes the row; expiry is evaluated lazily on lookup.
"""

import uuid
from datetime import datetime

from sqlalchemy import ForeignKey, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from tasktrack.models.base import Base


class UserSession(Base):
    """Server-side session backing the session cookie.

    Attributes:
        id: UUID primary key.
        user_id: Owning user.
        token_hash: SHA-256 hex digest of the session token (unique). The
            plain token lives only in the client cookie.
        expires_at: Session is invalid at or after this instant.
        created_at: Creation timestamp.
    """

    __tablename__ = "user_sessions"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    token_hash: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        unique=True,
    )
    expires_at: Mapped[datetime] = mapped_column(
        nullable=False,
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        server_default=func.now(),
        nullable=False,
    )
