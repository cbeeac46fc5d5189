"""
UTC timestamp helpers.

All entities carry ISO-8601 strings with microsecond precision and a
``Z`` suffix so that lexical order matches chronological order.
"""
from datetime import datetime, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """Render an aware or naive-UTC datetime as ``YYYY-MM-DDTHH:MM:SS.ffffffZ``."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    else:
        value = value.astimezone(timezone.utc)
    return value.isoformat(timespec='microseconds').replace('+00:00', 'Z')


def parse_timestamp(value: str) -> datetime:
    """Inverse of format_timestamp. Also accepts ``+00:00`` offsets."""
    if value is None:
        return None
    parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def utc_timestamp() -> str:
    return format_timestamp(utc_now())
