# src/runtrace/contracts/errors.py
"""Pipeline error taxonomy.

Errors fall into two groups:

- Fatal: FetchError. The run cannot be enumerated, so no spans or logs
  are exported. Raised out of the fetch stage and converted to a
  FAILED_FATAL result by the orchestrator.
- Recoverable: LogDownloadError, LogFormatError, ExportError and
  TraceBackendError. These are isolated to one job, one payload or the
  span backend. They are handed to the FailureReporter, which marks the
  run failed while the remaining work continues.
"""

from __future__ import annotations


class RuntraceError(Exception):
    """Base class for all pipeline errors."""


class FetchError(RuntraceError):
    """Raised when the run context or the job listing cannot be retrieved.

    Attributes:
        operation: Which fetch failed (e.g. "get_workflow_run", "list_jobs")
        status_code: HTTP status if the backend answered, None on transport errors
    """

    def __init__(self, operation: str, message: str, *, status_code: int | None = None) -> None:
        self.operation = operation
        self.status_code = status_code
        super().__init__(f"{operation} failed: {message}")


class LogDownloadError(RuntraceError):
    """Raised when a job's log cannot be downloaded."""

    def __init__(self, job_id: int, message: str) -> None:
        self.job_id = job_id
        super().__init__(f"Downloading logs for job {job_id} failed: {message}")


class LogFormatError(RuntraceError):
    """Raised when a downloaded log body cannot be parsed into records.

    Attributes:
        job_id: Job whose log was rejected (None when parsed standalone)
        line_number: 1-based line of the offending record, None when the
            body as a whole was rejected (e.g. not text)
    """

    def __init__(self, message: str, *, job_id: int | None = None, line_number: int | None = None) -> None:
        self.job_id = job_id
        self.line_number = line_number
        location = f" at line {line_number}" if line_number is not None else ""
        super().__init__(f"{message}{location}")


class ExportError(RuntraceError):
    """Raised when the log backend rejects or never receives a payload.

    Attributes:
        job_id: Job whose stream payload failed
        status_code: Last HTTP status, None on transport errors
        body: Last response body text, for diagnosis
    """

    def __init__(
        self,
        job_id: int,
        message: str,
        *,
        status_code: int | None = None,
        body: str | None = None,
    ) -> None:
        self.job_id = job_id
        self.status_code = status_code
        self.body = body
        super().__init__(f"Exporting logs for job {job_id} failed: {message}")


class TraceBackendError(RuntraceError):
    """Reported when the span exporter fails to deliver spans."""
