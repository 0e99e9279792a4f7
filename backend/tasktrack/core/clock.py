"""Clock abstraction for time-dependent auth logic.

Services take a ``Clock`` at construction so expiry behaviour can be driven
from tests without patching ``datetime``.
"""

from collections.abc import Callable
from datetime import UTC, datetime

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(UTC)
