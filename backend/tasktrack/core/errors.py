"""API error classes.

HTTP status codes and machine-readable error codes for the auth service.

WHY CUSTOM ERROR CLASSES:
- Consistent error response format across all endpoints
- Easy to map to HTTP status codes in exception handlers
- Callers branch on the class, never on message text

Three user-facing failure messages exist: invalid code, unauthorized, and
the generic infrastructure message. Nothing more specific is returned for
auth failures, to prevent account enumeration.
"""

INVALID_CODE_MESSAGE = "Invalid or expired code"
UNAUTHORIZED_MESSAGE = "Unauthorized"
INFRASTRUCTURE_MESSAGE = "Something went wrong, try again"


class APIError(Exception):
    """Base class for API errors.

    All API errors have a code, message, and HTTP status.
    Subclasses set default status_code.

    Attributes:
        code: Machine-readable error code (e.g., "UNAUTHORIZED").
        message: Human-readable error message.
        status_code: HTTP status code to return.
        details: Optional list of additional error details.
    """

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: list[dict] | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(message)


class ValidationError(APIError):
    """Field validation failed (400).

    Use for malformed email addresses, missing codes, empty names.
    """

    def __init__(
        self,
        message: str,
        details: list[dict] | None = None,
    ) -> None:
        super().__init__(
            code="VALIDATION_ERROR",
            message=message,
            status_code=400,
            details=details,
        )


class InvalidCodeError(APIError):
    """One-time code rejected (400).

    Raised for wrong, expired, already used, and unknown-email codes alike.
    The message never says which.
    """

    def __init__(self) -> None:
        super().__init__(
            code="INVALID_CODE",
            message=INVALID_CODE_MESSAGE,
            status_code=400,
        )


class UnauthorizedError(APIError):
    """Authentication required (401).

    Use when no valid session credential was provided.
    """

    def __init__(self, message: str = UNAUTHORIZED_MESSAGE) -> None:
        super().__init__(
            code="UNAUTHORIZED",
            message=message,
            status_code=401,
        )


class InfrastructureError(APIError):
    """A backing service failed (503).

    Distinct from auth failures so a storage outage is never reported to the
    user as bad credentials. Not retried inside the service.
    """

    def __init__(self, code: str = "SERVICE_UNAVAILABLE") -> None:
        super().__init__(
            code=code,
            message=INFRASTRUCTURE_MESSAGE,
            status_code=503,
        )


class StorageUnavailableError(InfrastructureError):
    """The relational store could not be reached (503)."""

    def __init__(self) -> None:
        super().__init__(code="STORAGE_UNAVAILABLE")


class EmailDeliveryError(InfrastructureError):
    """The email provider did not accept the message (503).

    The code has already been persisted when this is raised; a resend
    supersedes it.
    """

    def __init__(self) -> None:
        super().__init__(code="EMAIL_DELIVERY_FAILED")


class RateLimitedError(APIError):
    """Too many auth attempts from one client (429).

    details carries the window length so clients can back off.
    """

    def __init__(self, retry_after: int) -> None:
        super().__init__(
            code="RATE_LIMITED",
            message="Rate limit exceeded. Try again later.",
            status_code=429,
            details=[{"retry_after": retry_after}],
        )


class InternalError(APIError):
    """Unexpected server error (500).

    Use for unhandled exceptions. Never expose stack traces to clients.
    """

    def __init__(self, message: str = INFRASTRUCTURE_MESSAGE) -> None:
        super().__init__(
            code="INTERNAL_ERROR",
            message=message,
            status_code=500,
        )
