"""Timestamp helpers."""

from datetime import UTC, datetime

import pendulum

__all__ = ["format_datetime", "from_mtime", "parse_datetime", "utc_now"]


def utc_now() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(UTC)


def from_mtime(timestamp: float) -> datetime:
    """Convert a filesystem modification time to a UTC datetime."""
    return datetime.fromtimestamp(timestamp, tz=UTC)


def format_datetime(value: datetime) -> str:
    """Serialize a datetime as an ISO 8601 string in UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat()


def parse_datetime(value: object) -> datetime | None:
    """Parse a serialized timestamp.

    Accepts ISO 8601 strings (the format this package writes) and falls
    back to pendulum for anything less regular. Naive results are assumed
    to be UTC.

    Args:
        value: The raw value read from disk.

    Returns:
        The parsed datetime, or None if the value is not a usable timestamp.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError:
            try:
                fallback = pendulum.parse(value)
            except ValueError:  # pendulum's ParserError is a ValueError
                return None
            # pendulum.parse can return DateTime, Date, Time, or Duration
            if not isinstance(fallback, datetime):
                return None
            parsed = datetime.fromisoformat(fallback.isoformat())
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed
