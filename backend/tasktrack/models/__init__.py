"""SQLAlchemy ORM models for the tasktrack auth service.

All models are exported from this module for convenient imports:
    from tasktrack.models import User, OneTimeCode, UserSession

Models:
- user.py: User (identity root, soft delete)
- one_time_code.py: OneTimeCode (emailed login codes)
- user_session.py: UserSession (opaque session tokens)
"""

from tasktrack.models.base import Base, SoftDeleteMixin, TimestampMixin, UTCDateTime
from tasktrack.models.one_time_code import OneTimeCode
from tasktrack.models.user import User
from tasktrack.models.user_session import UserSession

__all__ = [
    # Base classes
    "Base",
    "TimestampMixin",
    "SoftDeleteMixin",
    "UTCDateTime",
    # Identity root
    "User",
    # Owned by the auth subsystem
    "OneTimeCode",
    "UserSession",
]
