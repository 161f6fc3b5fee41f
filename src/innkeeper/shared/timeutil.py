"""
Time Utilities
==============

Pure helpers for elapsed-time arithmetic and human readable rendering.

All instants are Unix seconds (UTC).
"""

import time
from datetime import datetime, timezone
from typing import Callable, List, Tuple

from innkeeper.config import UNIT_SECONDS

MINUTE = 60
HOUR = 60 * MINUTE
DAY = 24 * HOUR
WEEK = 7 * DAY
MONTH = 30 * DAY
YEAR = 12 * MONTH
LONG_TIME = 37 * YEAR

RFC1123_FORMAT = "%a, %d %b %Y %H:%M:%S UTC"

# (exclusive upper bound in seconds, label, divisor)
_MAGNITUDES: List[Tuple[int, str, int]] = [
    (2, "1 second", 1),
    (MINUTE, "{} seconds", 1),
    (2 * MINUTE, "1 minute", 1),
    (HOUR, "{} minutes", MINUTE),
    (2 * HOUR, "1 hour", 1),
    (DAY, "{} hours", HOUR),
    (2 * DAY, "1 day", 1),
    (WEEK, "{} days", DAY),
    (2 * WEEK, "1 week", 1),
    (MONTH, "{} weeks", WEEK),
    (2 * MONTH, "1 month", 1),
    (YEAR, "{} months", MONTH),
    (18 * MONTH, "1 year", 1),
    (2 * YEAR, "2 years", 1),
    (LONG_TIME, "{} years", YEAR),
]

Clock = Callable[[], int]


def unix_now() -> int:
    """Current time in whole Unix seconds."""
    return int(time.time())


def unit_seconds(time_units: str) -> int:
    """
    Seconds per time unit.

    Raises:
        KeyError: for an unrecognized unit
    """
    return UNIT_SECONDS[time_units]


def elapsed_seconds(then: int, now: int) -> int:
    """Seconds between two instants; negative when `then` is in the future."""
    return now - then


def relative_time(seconds: int, suffix: str = "ago") -> str:
    """
    Render a duration as a relative phrase.

    Examples:
        relative_time(0)    -> "just now"
        relative_time(150)  -> "2 minutes ago"
        relative_time(5400) -> "1 hour ago"

    Negative durations (clock skew) are rendered as "just now".
    """
    if seconds < 1:
        return "just now"

    for bound, label, divisor in _MAGNITUDES:
        if seconds < bound:
            phrase = label.format(seconds // divisor)
            break
    else:
        phrase = "a long while"

    return f"{phrase} {suffix}".strip()


def format_timestamp(timestamp: int) -> str:
    """RFC 1123 rendering of a Unix timestamp in UTC."""
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).strftime(RFC1123_FORMAT)
