# src/runtrace/logs/correlation.py
"""Binding parsed log records to the run's trace context.

Each log line is wrapped in a JSON envelope carrying the identifiers
needed to join it to its span at query time:

    {"github_run_id": "42", "github_run_name": "CI", "github_job_id": "7",
     "github_job_attempt_number": "1", "traceId": "4bf9...", "msg": "Started"}

The envelope is identical for every line of a job except for ``msg``.
"""

from __future__ import annotations

import json
import re
from collections.abc import Iterable

from runtrace.contracts.models import CorrelatedLogRecord, Job, LogRecord, RunContext

_TRACE_ID_PATTERN = re.compile(r"^[0-9a-f]{32}$")


def build_log_metadata(run: RunContext, job: Job, trace_id: str) -> dict[str, str]:
    """Build the per-job metadata envelope (without the message).

    Raises:
        ValueError: If trace_id is not 32 lowercase hex characters
    """
    if not _TRACE_ID_PATTERN.match(trace_id):
        raise ValueError(f"trace_id must be 32 lowercase hex characters, got {trace_id!r}")
    return {
        "github_run_id": str(run.run_id),
        "github_run_name": run.run_name or "",
        "github_job_id": str(job.id),
        "github_job_attempt_number": str(job.run_attempt) if job.run_attempt else "",
        "traceId": trace_id,
    }


def correlate_records(
    records: Iterable[LogRecord],
    run: RunContext,
    job: Job,
    trace_id: str,
) -> list[CorrelatedLogRecord]:
    """Wrap each record's message in the job's metadata envelope.

    Args:
        records: Parsed records of one job, in line order
        run: Run the job belongs to
        job: Job the records came from
        trace_id: Trace id of the run

    Returns:
        Correlated records in the same order
    """
    metadata = build_log_metadata(run, job, trace_id)
    return [
        CorrelatedLogRecord(
            timestamp=str(record.timestamp_ns),
            line=json.dumps({**metadata, "msg": record.message}, ensure_ascii=False, separators=(",", ":")),
        )
        for record in records
    ]
