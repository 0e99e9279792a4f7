"""Retention cleanup for auth records.

Expired sessions and spent codes are never needed again: lookups already
ignore them, so deleting them only reclaims space. Safe to run at any time
and from several instances at once.
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from tasktrack.core.clock import utc_now
from tasktrack.core.database import translate_storage_errors
from tasktrack.repositories.one_time_code_repository import OneTimeCodeRepository
from tasktrack.repositories.session_repository import SessionRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthCleanupResult:
    """Result of an auth retention cleanup run.

    Attributes:
        deleted_codes: Used or expired one-time codes deleted.
        deleted_sessions: Expired sessions deleted.
    """

    deleted_codes: int
    deleted_sessions: int


async def purge_expired_auth_records(
    db: AsyncSession, *, now: datetime | None = None
) -> AuthCleanupResult:
    """Delete spent codes and expired sessions.

    Does not commit; the caller owns the transaction.

    Args:
        db: Async database session.
        now: Cutoff time. Defaults to the current UTC time.

    Returns:
        AuthCleanupResult with per-table counts.

    Raises:
        StorageUnavailableError: If the database cannot be reached.
    """
    cutoff = now or utc_now()
    with translate_storage_errors("purge_expired_auth_records"):
        deleted_codes = await OneTimeCodeRepository.delete_spent(db, now=cutoff)
        deleted_sessions = await SessionRepository.delete_expired(db, now=cutoff)

    logger.info(
        "Auth cleanup: deleted %d code(s), %d session(s)",
        deleted_codes,
        deleted_sessions,
    )
    return AuthCleanupResult(
        deleted_codes=deleted_codes,
        deleted_sessions=deleted_sessions,
    )
