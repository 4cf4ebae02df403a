# app/core/time_utils.py
from datetime import datetime, timezone
from typing import Callable, Optional

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


def as_utc(value: datetime) -> datetime:
    """
    Normalize a datetime to an aware UTC instant (naive values are taken as UTC).
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_iso_utc(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 datetime string (a trailing 'Z' is accepted) and
    normalize to UTC.

    Returns None if the value is empty or cannot be parsed.
    """
    if not value or not isinstance(value, str):
        return None
    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    return as_utc(dt)
