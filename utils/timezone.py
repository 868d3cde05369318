"""UTC-everywhere time handling. Eliminates timezone bugs at the source."""

from datetime import datetime, timedelta, timezone
from typing import Callable

# Injectable clock signature used by every service.
Clock = Callable[[], datetime]


def now_utc() -> datetime:
    """
    Current time in UTC.

    Use this instead of datetime.now() everywhere.
    """
    return datetime.now(timezone.utc)


def to_utc(dt: datetime) -> datetime:
    """
    Convert a datetime to UTC.

    Raises ValueError if datetime is naive (no timezone).
    """
    if dt.tzinfo is None:
        raise ValueError(
            "Cannot convert naive datetime to UTC. Datetime must be timezone-aware."
        )
    return dt.astimezone(timezone.utc)


def from_timestamp(seconds: int | float) -> datetime:
    """UTC datetime for a POSIX timestamp (JWT exp/iat claims)."""
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


def expires_after(start: datetime, seconds: int) -> datetime:
    """
    Absolute expiry for a duration.

    Expiries are always stored and returned as absolute UTC instants so
    clients never need clock-relative math.
    """
    return to_utc(start) + timedelta(seconds=seconds)
