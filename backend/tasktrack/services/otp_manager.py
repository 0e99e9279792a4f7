"""One-time code issuance and verification.

Pipeline:
- issue_code: resolve/create identity -> supersede active codes -> insert new
  code, the last two inside one savepoint
- verify_code: newest matching unused unexpired code -> conditional mark used

Linearizability per email comes from the database, not from in-process
locks: the partial unique index on unused codes rejects a second concurrent
insert, and the loser retries after the winner commits. Multiple service
instances may run side by side.
"""

import logging
import secrets
import string
from datetime import timedelta

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from tasktrack.core.clock import Clock, utc_now
from tasktrack.core.config import settings
from tasktrack.core.database import translate_storage_errors
from tasktrack.core.errors import InfrastructureError
from tasktrack.repositories.one_time_code_repository import OneTimeCodeRepository
from tasktrack.services.auth_types import IssuedCode, VerificationResult
from tasktrack.services.credential_store import CredentialStore, normalize_email

logger = logging.getLogger(__name__)

# Bounded retries when a concurrent issuer for the same email wins the insert.
_MAX_ISSUE_ATTEMPTS = 3


def generate_code(length: int) -> str:
    """Draw a uniformly random numeric code, keeping leading zeros.

    Args:
        length: Number of digits.

    Returns:
        Zero-padded digit string of exactly ``length`` characters.
    """
    return str(secrets.randbelow(10**length)).zfill(length)


def digits_only(submitted: str) -> str:
    """Strip everything except ASCII digits from a submitted code."""
    return "".join(ch for ch in submitted if ch in string.digits)


class OtpManager:
    """Issues and verifies emailed one-time codes.

    Args:
        db: Async database session owned by the caller.
        credentials: Credential store sharing the same session.
        clock: Source of the current time.
        code_length: Digits per code. Defaults to the configured otp_length.
        ttl: Lifetime of an issued code. Defaults to the configured
            otp_ttl_minutes.
    """

    def __init__(
        self,
        db: AsyncSession,
        credentials: CredentialStore,
        clock: Clock = utc_now,
        *,
        code_length: int | None = None,
        ttl: timedelta | None = None,
    ) -> None:
        if code_length is None:
            code_length = settings.otp_length
        if ttl is None:
            ttl = timedelta(minutes=settings.otp_ttl_minutes)
        self._db = db
        self._credentials = credentials
        self._clock = clock
        self._code_length = code_length
        self._ttl = ttl

    async def issue_code(self, email: str) -> IssuedCode:
        """Issue a fresh code for an email, invalidating earlier ones.

        Also serves as "resend". The returned code must only be handed to
        the notification sender.

        Args:
            email: Recipient address; must contain "@".

        Returns:
            IssuedCode with the plain code, owner identity and expiry.

        Raises:
            ValidationError: If the email is malformed.
            StorageUnavailableError: If the database cannot be reached.
            InfrastructureError: If concurrent issuers kept colliding.
        """
        email = normalize_email(email)
        identity = await self._credentials.create_or_update(email)

        for attempt in range(1, _MAX_ISSUE_ATTEMPTS + 1):
            now = self._clock()
            code = generate_code(self._code_length)
            try:
                with translate_storage_errors("issue_code"):
                    async with self._db.begin_nested():
                        await OneTimeCodeRepository.supersede_active(
                            self._db, email=email
                        )
                        await OneTimeCodeRepository.create(
                            self._db,
                            user_id=identity.id,
                            email=email,
                            code=code,
                            expires_at=now + self._ttl,
                            created_at=now,
                        )
            except IntegrityError:
                logger.info(
                    "Concurrent code issuance collided (attempt %d/%d)",
                    attempt,
                    _MAX_ISSUE_ATTEMPTS,
                )
                continue
            return IssuedCode(code=code, identity=identity, expires_at=now + self._ttl)

        logger.error("Gave up issuing a code after %d attempts", _MAX_ISSUE_ATTEMPTS)
        raise InfrastructureError(code="CODE_ISSUE_CONFLICT")

    async def verify_code(self, email: str, submitted_code: str) -> VerificationResult:
        """Check a submitted code and consume it on success.

        Every failure returns the same VerificationResult.invalid(); the
        caller cannot tell an unknown email from a wrong or stale code.
        Never creates identities.

        Args:
            email: Address the code was sent to.
            submitted_code: Code as typed by the user; non-digits are ignored.

        Returns:
            VerificationResult with the identity on success.

        Raises:
            StorageUnavailableError: If the database cannot be reached.
        """
        code = digits_only(submitted_code)
        if len(code) != self._code_length:
            return VerificationResult.invalid()

        email = email.strip()
        now = self._clock()
        with translate_storage_errors("verify_code"):
            record = await OneTimeCodeRepository.find_active_match(
                self._db, email=email, code=code, now=now
            )
            if record is None:
                return VerificationResult.invalid()
            if not await OneTimeCodeRepository.mark_used(self._db, record.id):
                # Consumed by a concurrent request between select and update.
                return VerificationResult.invalid()

        identity = await self._credentials.get_by_id(record.user_id)
        if identity is None:
            return VerificationResult.invalid()
        return VerificationResult(valid=True, identity=identity)
