# src/runtrace/logs/__init__.py
"""Job log pipeline: parse, correlate with the trace, package, export.

Usage:
    from runtrace.logs import (
        parse_log_text,
        correlate_records,
        package_job_logs,
        LokiExporter,
    )
"""

from runtrace.logs.correlation import build_log_metadata, correlate_records
from runtrace.logs.loki import LokiExporter, build_push_body
from runtrace.logs.packaging import build_stream_labels, package_job_logs
from runtrace.logs.parser import parse_log_line, parse_log_text

__all__ = [
    "LokiExporter",
    "build_log_metadata",
    "build_push_body",
    "build_stream_labels",
    "correlate_records",
    "package_job_logs",
    "parse_log_line",
    "parse_log_text",
]
