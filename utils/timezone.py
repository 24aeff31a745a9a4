"""UTC-only time handling for billing timestamps."""

from datetime import datetime, timezone


def now_utc() -> datetime:
    """
    Current time in UTC.

    Every stored timestamp (sent_at, paid_at, created_at...) comes from here.
    """
    return datetime.now(timezone.utc)


def to_utc(dt: datetime) -> datetime:
    """
    Convert an aware datetime to UTC.

    Raises ValueError for naive datetimes.
    """
    if dt.tzinfo is None:
        raise ValueError(
            "Cannot convert naive datetime to UTC. Datetime must be timezone-aware."
        )
    return dt.astimezone(timezone.utc)


def parse_iso(iso_string: str) -> datetime:
    """
    Parse an ISO 8601 string (as stored in Valkey sessions) to a UTC datetime.

    Raises ValueError if the string carries no offset.
    """
    dt = datetime.fromisoformat(iso_string)
    if dt.tzinfo is None:
        raise ValueError(
            "Cannot parse naive datetime string. "
            "Include timezone offset (e.g., 'Z' or '+00:00')."
        )
    return to_utc(dt)
