# src/runtrace/contracts/timestamps.py
"""ISO-8601 timestamp parsing with nanosecond precision.

CI log lines carry seven fractional digits (100ns ticks), which a float
epoch value cannot represent exactly. Parsing here is done with integer
arithmetic so that the nanosecond value is exact for up to nine digits.
"""

from __future__ import annotations

import re
from datetime import UTC, datetime, timedelta, timezone

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)

_ISO8601_PATTERN = re.compile(
    r"^(?P<year>\d{4})-(?P<month>\d{2})-(?P<day>\d{2})"
    r"T(?P<hour>\d{2}):(?P<minute>\d{2}):(?P<second>\d{2})"
    r"(?:\.(?P<fraction>\d{1,9}))?"
    r"(?P<offset>Z|[+-]\d{2}:\d{2})$"
)


def parse_iso8601_nanos(value: str) -> int:
    """Parse an ISO-8601 instant into nanoseconds since the Unix epoch.

    Accepts ``Z`` or ``+HH:MM``/``-HH:MM`` offsets and up to nine fractional
    digits. The offset is mandatory: a local time is not an instant.

    Args:
        value: Timestamp text, e.g. ``2023-06-13T19:09:45.4037197Z``

    Returns:
        Integer nanoseconds since 1970-01-01T00:00:00Z

    Raises:
        ValueError: If value is not a valid ISO-8601 instant
    """
    match = _ISO8601_PATTERN.match(value)
    if match is None:
        raise ValueError(f"Not an ISO-8601 instant: {value!r}")

    offset = match["offset"]
    if offset == "Z":
        tz = UTC
    else:
        sign = 1 if offset[0] == "+" else -1
        hours, minutes = int(offset[1:3]), int(offset[4:6])
        tz = timezone(sign * timedelta(hours=hours, minutes=minutes))

    # datetime() validates field ranges (month 13, Feb 30, ...)
    dt = datetime(
        int(match["year"]),
        int(match["month"]),
        int(match["day"]),
        int(match["hour"]),
        int(match["minute"]),
        int(match["second"]),
        tzinfo=tz,
    )
    seconds = (dt - _EPOCH) // timedelta(seconds=1)
    fraction = match["fraction"] or ""
    return seconds * 1_000_000_000 + int(fraction.ljust(9, "0"))


def parse_api_datetime(value: str | None) -> datetime | None:
    """Parse an optional API timestamp (``2023-06-13T19:09:45Z``) to an aware datetime."""
    if value is None:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def datetime_to_nanos(dt: datetime) -> int:
    """Convert an aware datetime to integer nanoseconds since the Unix epoch."""
    if dt.tzinfo is None:
        # Assume UTC for naive timestamps
        dt = dt.replace(tzinfo=UTC)
    return ((dt - _EPOCH) // timedelta(microseconds=1)) * 1_000
