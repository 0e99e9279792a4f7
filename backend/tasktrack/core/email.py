"""Login code delivery by email.

Production sends through the Resend HTTP API; development can use the
console backend, which writes the message to the log instead.

Senders report failure by returning False rather than raising, so the
route can turn it into EmailDeliveryError after the code is committed.
"""

import logging
from typing import Protocol

import httpx

from tasktrack.core.config import settings

logger = logging.getLogger(__name__)

_RESEND_API_URL = "https://api.resend.com/emails"
_RESEND_TIMEOUT = 10.0


class NotificationSender(Protocol):
    """Capability that delivers a login code to an email address."""

    async def send(self, email: str, code: str) -> bool:
        """Deliver the code. Returns False if delivery failed."""
        ...


def build_code_email(code: str, ttl_minutes: int) -> tuple[str, str]:
    """Build the plain-text and HTML bodies for a login code email.

    Args:
        code: Plain one-time code.
        ttl_minutes: Code lifetime shown to the user.

    Returns:
        (text_body, html_body)
    """
    text = (
        f"Your verification code is: {code}\n\n"
        f"This code will expire in {ttl_minutes} minutes.\n"
        "If you didn't request this code, you can safely ignore this email."
    )
    html = (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; '
        'margin: 0 auto; padding: 20px;">'
        '<h2 style="text-align: center;">Your Verification Code</h2>'
        '<p style="text-align: center; font-size: 24px; font-weight: bold; '
        f'letter-spacing: 4px;">{code}</p>'
        f'<p style="text-align: center;">This code will expire in {ttl_minutes} '
        "minutes.</p>"
        '<p style="text-align: center; font-size: 12px;">If you didn\'t request '
        "this code, you can safely ignore this email.</p>"
        "</div>"
    )
    return text, html


class ResendEmailSender:
    """Send login codes through the Resend API.

    Args:
        api_key: Resend API key.
        from_address: Sender address.
        subject: Email subject line.
        ttl_minutes: Code lifetime quoted in the body.
        transport: Optional httpx transport (tests inject a MockTransport).
    """

    def __init__(
        self,
        *,
        api_key: str,
        from_address: str,
        subject: str,
        ttl_minutes: int,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._from_address = from_address
        self._subject = subject
        self._ttl_minutes = ttl_minutes
        self._transport = transport

    async def send(self, email: str, code: str) -> bool:
        """POST the message to Resend.

        Returns:
            True if Resend accepted the message, False on any HTTP, network
            or timeout error, or when no API key is configured.
        """
        if not self._api_key:
            logger.error("RESEND_API_KEY is not configured; cannot send code")
            return False

        text, html = build_code_email(code, self._ttl_minutes)
        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                resp = await client.post(
                    _RESEND_API_URL,
                    headers={"Authorization": f"Bearer {self._api_key}"},
                    json={
                        "from": self._from_address,
                        "to": email,
                        "subject": self._subject,
                        "text": text,
                        "html": html,
                    },
                    timeout=_RESEND_TIMEOUT,
                )
                resp.raise_for_status()
        except httpx.HTTPError:
            logger.warning("Failed to send login code email", exc_info=True)
            return False
        return True


class ConsoleEmailSender:
    """Development sender that logs the message instead of emailing it."""

    def __init__(self, *, ttl_minutes: int) -> None:
        self._ttl_minutes = ttl_minutes

    async def send(self, email: str, code: str) -> bool:
        text, _html = build_code_email(code, self._ttl_minutes)
        logger.info("Login code email for %s:\n%s", email, text)
        return True


def get_notification_sender() -> NotificationSender:
    """Build the sender selected by EMAIL_BACKEND."""
    if settings.email_backend == "console":
        return ConsoleEmailSender(ttl_minutes=settings.otp_ttl_minutes)
    return ResendEmailSender(
        api_key=settings.resend_api_key.get_secret_value(),
        from_address=settings.email_from,
        subject=settings.email_subject,
        ttl_minutes=settings.otp_ttl_minutes,
    )
