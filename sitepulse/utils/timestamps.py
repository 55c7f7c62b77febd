"""
Timestamp helpers shared by the worker and the aggregation queries.

Stored timestamps are ISO 8601 strings in UTC with millisecond precision
(``2024-01-01T10:00:00.000Z``). The fixed width makes lexicographic order
equal chronological order, which the DynamoDB range key relies on.
"""

import math
from datetime import UTC, date, datetime, time
from typing import Any

from sitepulse.exceptions import InvalidTimestampError


def parse_event_timestamp(value: Any) -> datetime:
    """
    Interpret a raw event timestamp as a timezone-aware UTC instant.

    Accepts ISO 8601 strings (``Z`` suffix, explicit offset, or naive which
    is read as UTC) and epoch milliseconds as int/float.

    Args:
        value: Timestamp exactly as it arrived in the event payload

    Returns:
        Aware datetime in UTC

    Raises:
        InvalidTimestampError: If the value is not a recognisable instant
    """
    if isinstance(value, bool):
        raise InvalidTimestampError(value)

    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            raise InvalidTimestampError(value)
        try:
            return datetime.fromtimestamp(value / 1000, tz=UTC)
        except (OverflowError, OSError, ValueError) as e:
            raise InvalidTimestampError(value) from e

    if not isinstance(value, str) or not value.strip():
        raise InvalidTimestampError(value)

    try:
        parsed = datetime.fromisoformat(value.strip())
    except ValueError as e:
        raise InvalidTimestampError(value) from e

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    try:
        return parsed.astimezone(UTC)
    except (OverflowError, ValueError) as e:
        # e.g. 0001-01-01T00:00:00+01:00 falls before datetime.min in UTC
        raise InvalidTimestampError(value) from e


def format_storage_timestamp(moment: datetime) -> str:
    """
    Render an instant in the storage format (UTC, milliseconds, ``Z``).

    Sub-millisecond precision is truncated. The year is always four digits
    so lexicographic order stays chronological.
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    moment = moment.astimezone(UTC)
    millis = moment.microsecond // 1000
    return (
        f"{moment.year:04d}-{moment.month:02d}-{moment.day:02d}"
        f"T{moment.hour:02d}:{moment.minute:02d}:{moment.second:02d}.{millis:03d}Z"
    )


def day_window(day: date) -> tuple[str, str]:
    """
    Inclusive storage-format bounds covering one UTC calendar day.

    Args:
        day: Calendar date

    Returns:
        Tuple of (``dayT00:00:00.000Z``, ``dayT23:59:59.999Z``)
    """
    start = datetime.combine(day, time.min, tzinfo=UTC)
    end = datetime.combine(day, time(23, 59, 59, 999000), tzinfo=UTC)
    return format_storage_timestamp(start), format_storage_timestamp(end)


def parse_calendar_date(value: str) -> date:
    """
    Parse a strict ``YYYY-MM-DD`` calendar date.

    Raises:
        ValueError: If the value is not a real date in that exact format
    """
    if len(value) != 10 or value[4] != "-" or value[7] != "-":
        raise ValueError(f"Expected YYYY-MM-DD, got {value!r}")
    return date.fromisoformat(value)


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)
