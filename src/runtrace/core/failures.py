# src/runtrace/core/failures.py
"""Failure reporting for recoverable pipeline errors.

The FailureReporter is passed explicitly to every stage that can fail
without stopping the run (log download/parse, log export, span export).
Each pipeline invocation owns its own reporter, so several runs in one
process never share a failure flag.
"""

from __future__ import annotations

from threading import Lock

import structlog

from runtrace.contracts.errors import RuntraceError

logger = structlog.get_logger(__name__)


class FailureReporter:
    """Collects recoverable errors and exposes the run's failure flag.

    Thread safety:
        report() may be called from worker threads and from the span
        exporter's background thread; all state is guarded by a lock.
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._errors: list[RuntraceError] = []

    def report(self, error: RuntraceError) -> None:
        """Record an error and log it. Never raises."""
        with self._lock:
            self._errors.append(error)
        logger.error(
            "Pipeline failure reported",
            error_type=type(error).__name__,
            error=str(error),
        )

    @property
    def failed(self) -> bool:
        with self._lock:
            return bool(self._errors)

    @property
    def errors(self) -> tuple[RuntraceError, ...]:
        with self._lock:
            return tuple(self._errors)
