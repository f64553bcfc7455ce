from datetime import datetime, timezone
from math import floor


def as_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; every stored timestamp is UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def window_index(at_time: datetime, window_minutes: int) -> int:
    """Index of the fixed admission window containing `at_time`."""
    return floor(as_utc(at_time).timestamp() / (window_minutes * 60))
