# src/runtrace/tracing/__init__.py
"""Trace construction for workflow runs (OpenTelemetry SDK).

Usage:
    from runtrace.tracing import create_tracer_provider, trace_workflow_run

    provider = create_tracer_provider(run, settings.otlp, reporter=reporter)
    trace_context = trace_workflow_run(provider.get_tracer("runtrace"), run, jobs)
"""

from runtrace.tracing.exporter import ReportingSpanExporter
from runtrace.tracing.provider import build_resource_attributes, create_tracer_provider, schedule_shutdown
from runtrace.tracing.spans import trace_workflow_run

__all__ = [
    "ReportingSpanExporter",
    "build_resource_attributes",
    "create_tracer_provider",
    "schedule_shutdown",
    "trace_workflow_run",
]
