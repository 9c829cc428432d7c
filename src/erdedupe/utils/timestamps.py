"""Timestamp utilities for erdedupe.

Audit events use ``get_iso_timestamp``; fusion and date measures use
``coerce_datetime`` to accept heterogeneous timestamp attribute values.
"""

from datetime import UTC, date, datetime

__all__ = ["get_iso_timestamp", "coerce_datetime"]


def get_iso_timestamp() -> str:
    """Get current UTC timestamp in ISO8601 format with microseconds.

    Returns
    -------
    str
        ISO8601 timestamp with microseconds (e.g., "2026-02-03T12:34:56.123456Z").
    """
    return datetime.now(UTC).isoformat().replace("+00:00", "Z")


def coerce_datetime(value: date | datetime | str | int | float) -> datetime:
    """Convert a timestamp-like value to a timezone-aware UTC datetime.

    Parameters
    ----------
    value : date | datetime | str | int | float
        A ``datetime`` (naive values are taken as UTC), a ``date`` (midnight
        UTC), an ISO8601 string (``Z`` suffix allowed) or POSIX seconds.

    Returns
    -------
    datetime
        Timezone-aware UTC datetime.

    Raises
    ------
    ValueError
        If a string cannot be parsed as ISO8601.
    TypeError
        If the value has an unsupported type.
    """
    if isinstance(value, datetime):
        result = value
    elif isinstance(value, date):
        result = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        result = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value, UTC)
    else:
        raise TypeError(f"Unsupported timestamp type: {type(value).__name__}")

    if result.tzinfo is None:
        return result.replace(tzinfo=UTC)
    return result.astimezone(UTC)
