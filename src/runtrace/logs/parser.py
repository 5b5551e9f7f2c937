# src/runtrace/logs/parser.py
"""Job log parsing.

Every non-blank line of a job log starts with an ISO-8601 timestamp,
followed by one separator character and the message:

    2023-06-13T19:09:45.4037197Z Waiting for a runner to pick up this job...

The platform's timestamps are 28 characters wide (seven fractional digits),
but the prefix is located by the separator rather than a fixed offset and
then validated, so a format drift surfaces as a LogFormatError instead of
records with shifted messages.
"""

from __future__ import annotations

from typing import Any

from runtrace.contracts.errors import LogFormatError
from runtrace.contracts.models import LogRecord
from runtrace.contracts.timestamps import parse_iso8601_nanos

_BOM = "\ufeff"


def parse_log_line(line: str, *, line_number: int | None = None, job_id: int | None = None) -> LogRecord:
    """Split one log line into its timestamp and message.

    Raises:
        LogFormatError: If the line doesn't start with a valid timestamp
    """
    timestamp, _, message = line.partition(" ")
    try:
        timestamp_ns = parse_iso8601_nanos(timestamp)
    except ValueError as e:
        raise LogFormatError(
            f"Invalid timestamp prefix {line[:28]!r}",
            job_id=job_id,
            line_number=line_number,
        ) from e
    return LogRecord(timestamp_ns=timestamp_ns, message=message)


def parse_log_text(body: Any, *, job_id: int | None = None) -> list[LogRecord]:
    """Parse a downloaded job log into records.

    Blank lines are skipped. Records are returned in line order and are
    never re-sorted, even where timestamps repeat or go backwards.

    Args:
        body: The downloaded log. Anything but str is rejected.
        job_id: Job the log belongs to, for error context

    Returns:
        Records in original line order

    Raises:
        LogFormatError: If body is not text or any line is malformed.
            The job then contributes no records at all.
    """
    if not isinstance(body, str):
        raise LogFormatError(
            f"Expected log text but got {type(body).__name__}",
            job_id=job_id,
        )

    records: list[LogRecord] = []
    for line_number, raw_line in enumerate(body.removeprefix(_BOM).split("\n"), start=1):
        line = raw_line.removesuffix("\r")
        if not line:
            continue
        records.append(parse_log_line(line, line_number=line_number, job_id=job_id))
    return records
