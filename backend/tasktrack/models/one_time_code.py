"""One-time code model - emailed login codes.

Single-use and time-limited. Issuing a new code for an email marks every
earlier unused code for that email as used, so at most one unused row per
email exists (enforced by a partial unique index).
"""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, ForeignKey, Index, String, Uuid, func, text
from sqlalchemy.orm import Mapped, mapped_column

from tasktrack.models.base import Base


class OneTimeCode(Base):
    """Numeric login code sent to an email address.

    Attributes:
        id: UUID primary key.
        user_id: Owning user.
        email: Address the code was sent to.
        code: Fixed-length numeric code, leading zeros preserved.
        expires_at: Code is rejected at or after this instant.
        is_used: Set once on successful verification or when superseded.
        created_at: Issue timestamp; newest unused code wins on verify.
    """

    __tablename__ = "otp_codes"
    __table_args__ = (
        Index(
            "uq_otp_codes_active_email",
            "email",
            unique=True,
            postgresql_where=text("is_used = false"),
            sqlite_where=text("is_used = false"),
        ),
        Index("idx_otp_codes_expires_at", "expires_at"),
    )

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
    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    code: Mapped[str] = mapped_column(
        String(12),
        nullable=False,
    )
    expires_at: Mapped[datetime] = mapped_column(
        nullable=False,
    )
    is_used: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        server_default=text("false"),
        default=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        server_default=func.now(),
        nullable=False,
    )
