"""Clock and timestamp helpers.

Rules stamp alerts through an injected Clock instead of reading the
system time directly, so tests can pin the evaluation instant.
"""

from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def fixed_clock(instant: datetime) -> Clock:
    """Build a Clock that always returns the same instant.

    Example:
        >>> clock = fixed_clock(datetime(2026, 1, 24, 14, 30, tzinfo=timezone.utc))
        >>> clock() == clock()
        True
    """
    instant = ensure_utc(instant)

    def _clock() -> datetime:
        return instant

    return _clock


def ensure_utc(value: datetime) -> datetime:
    """Convert a datetime to UTC, treating naive values as already UTC.

    Args:
        value: Aware or naive datetime

    Returns:
        Timezone-aware datetime in UTC
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """Format a datetime for human-readable notifications.

    Example:
        >>> format_timestamp(datetime(2026, 1, 24, 14, 30, tzinfo=timezone.utc))
        '2026-01-24 14:30:00 UTC'
    """
    return ensure_utc(value).strftime("%Y-%m-%d %H:%M:%S UTC")
