"""Shared contracts for cross-boundary data types.

This package is a LEAF MODULE with no outbound dependencies to core, github,
logs, tracing or engine. Settings classes live in runtrace.core.config.

Import patterns:
    from runtrace.contracts import Job, RunContext, StreamPayload
    from runtrace.core.config import RuntraceSettings
"""

from runtrace.contracts.errors import (
    ExportError,
    FetchError,
    LogDownloadError,
    LogFormatError,
    RuntraceError,
    TraceBackendError,
)
from runtrace.contracts.models import (
    CorrelatedLogRecord,
    Job,
    LogRecord,
    RunContext,
    Step,
    StreamPayload,
    TraceContext,
)
from runtrace.contracts.results import PipelineResult, PipelineStatus
from runtrace.contracts.timestamps import datetime_to_nanos, parse_api_datetime, parse_iso8601_nanos

__all__ = [
    "CorrelatedLogRecord",
    "ExportError",
    "FetchError",
    "Job",
    "LogDownloadError",
    "LogFormatError",
    "LogRecord",
    "PipelineResult",
    "PipelineStatus",
    "RunContext",
    "RuntraceError",
    "Step",
    "StreamPayload",
    "TraceBackendError",
    "TraceContext",
    "datetime_to_nanos",
    "parse_api_datetime",
    "parse_iso8601_nanos",
]
