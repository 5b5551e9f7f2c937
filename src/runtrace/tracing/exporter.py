# src/runtrace/tracing/exporter.py
"""Span exporter wrapper that reports delivery failures.

The OpenTelemetry SDK swallows exporter failures (it logs and drops the
batch). Wrapping the real exporter lets the pipeline see them and mark
the run failed, without ever raising into the span processor.
"""

from __future__ import annotations

from collections.abc import Sequence

import structlog
from opentelemetry.sdk.trace import ReadableSpan
from opentelemetry.sdk.trace.export import SpanExporter, SpanExportResult

from runtrace.contracts.errors import TraceBackendError
from runtrace.core.failures import FailureReporter

logger = structlog.get_logger(__name__)


class ReportingSpanExporter(SpanExporter):
    """Delegates to another SpanExporter and reports failed exports.

    Args:
        delegate: Exporter that actually ships spans
        reporter: Receives a TraceBackendError per failed export call
    """

    def __init__(self, delegate: SpanExporter, reporter: FailureReporter) -> None:
        self._delegate = delegate
        self._reporter = reporter

    def export(self, spans: Sequence[ReadableSpan]) -> SpanExportResult:
        try:
            result = self._delegate.export(spans)
        except Exception as e:
            # Export MUST NOT raise into the span processor
            self._reporter.report(TraceBackendError(f"Span export raised {type(e).__name__}: {e}"))
            return SpanExportResult.FAILURE

        if result is not SpanExportResult.SUCCESS:
            self._reporter.report(TraceBackendError(f"Span export of {len(spans)} spans failed"))
        else:
            logger.debug("Spans exported", span_count=len(spans))
        return result

    def shutdown(self) -> None:
        self._delegate.shutdown()

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        return self._delegate.force_flush(timeout_millis)
