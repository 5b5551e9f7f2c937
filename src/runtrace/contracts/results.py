# src/runtrace/contracts/results.py
"""Pipeline outcome types."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum

from runtrace.contracts.errors import RuntraceError


class PipelineStatus(StrEnum):
    """Terminal state of one pipeline invocation.

    SUCCEEDED: every payload exported and spans handed to the exporter.
    FAILED_PARTIAL: the trace was built and the pipeline completed, but some
        job logs, exports or span deliveries failed.
    FAILED_FATAL: the run context or job list could not be fetched; nothing
        downstream ran.
    """

    SUCCEEDED = "succeeded"
    FAILED_PARTIAL = "failed_partial"
    FAILED_FATAL = "failed_fatal"


@dataclass(frozen=True, slots=True)
class PipelineResult:
    """What one pipeline invocation produced.

    Attributes:
        status: Terminal state
        trace_id: Trace id shared by spans and log records, None when fatal
        job_count: Jobs enumerated for the run
        exported_payloads: Stream payloads accepted by the log backend
        errors: Every error reported during the run, in report order
    """

    status: PipelineStatus
    trace_id: str | None = None
    job_count: int = 0
    exported_payloads: int = 0
    errors: tuple[RuntraceError, ...] = field(default_factory=tuple)

    @property
    def succeeded(self) -> bool:
        return self.status == PipelineStatus.SUCCEEDED
