"""Resolve a caller's session credential to an identity id.

Framework-independent: takes the raw token string (the HTTP adapter in
api/deps.py pulls it from the cookie). Malformed input is treated exactly
like a missing credential and never reaches the database.
"""

import re
import uuid

from tasktrack.services.session_manager import SESSION_TOKEN_BYTES, SessionManager

_TOKEN_PATTERN = re.compile(rf"[0-9a-f]{{{SESSION_TOKEN_BYTES * 2}}}")


class RequestAuthenticator:
    """Read-only session lookup for protected operations.

    Args:
        sessions: Session manager used for resolution.
    """

    def __init__(self, sessions: SessionManager) -> None:
        self._sessions = sessions

    async def identify_caller(self, token: str | None) -> uuid.UUID | None:
        """Return the caller's identity id, or None when unauthenticated.

        Args:
            token: Session token from the request, if any.

        Returns:
            Identity UUID for a valid session, otherwise None.

        Raises:
            StorageUnavailableError: If the database cannot be reached.
        """
        if not token or not _TOKEN_PATTERN.fullmatch(token):
            return None
        identity = await self._sessions.resolve_session(token)
        return identity.id if identity else None
