# src/runtrace/tracing/provider.py
"""Tracer provider construction and timed shutdown.

The provider is local to one pipeline invocation and is never installed
as the global OpenTelemetry provider, so concurrent invocations in one
process don't share exporters or failure state.
"""

from __future__ import annotations

import threading
from typing import Any

import structlog
from opentelemetry.sdk.resources import (
    SERVICE_INSTANCE_ID,
    SERVICE_NAME,
    SERVICE_NAMESPACE,
    SERVICE_VERSION,
    Resource,
)
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
    SimpleSpanProcessor,
    SpanExporter,
)

from runtrace.contracts.models import RunContext
from runtrace.core.config import OTLPSettings
from runtrace.core.failures import FailureReporter
from runtrace.core.headers import parse_header_string
from runtrace.tracing.exporter import ReportingSpanExporter

logger = structlog.get_logger(__name__)


def build_resource_attributes(run: RunContext, service_name: str | None = None) -> dict[str, Any]:
    """Derive the trace's resource attributes from the run.

    service.name falls back from the explicit override to the run name
    to the workflow id. service.instance.id identifies the exact attempt:
    ``owner/repo/workflow_id/run_id/run_attempt``.
    """
    return {
        SERVICE_NAME: service_name or run.run_name or str(run.workflow_id),
        SERVICE_INSTANCE_ID: "/".join(
            [run.repo_full_name, str(run.workflow_id), str(run.run_id), str(run.run_attempt)]
        ),
        SERVICE_NAMESPACE: run.repo_full_name,
        SERVICE_VERSION: run.head_sha,
    }


def _build_span_exporter(settings: OTLPSettings) -> SpanExporter:
    if settings.console_only:
        return ConsoleSpanExporter()

    from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter

    return OTLPSpanExporter(
        endpoint=settings.endpoint,
        headers=parse_header_string(settings.headers),
    )


def create_tracer_provider(
    run: RunContext,
    settings: OTLPSettings,
    *,
    reporter: FailureReporter,
    service_name: str | None = None,
    exporter: SpanExporter | None = None,
    batch: bool = True,
) -> TracerProvider:
    """Create a tracer provider for one run.

    Args:
        run: Run whose trace is built
        settings: OTLP endpoint/headers, console-only switch
        reporter: Receives TraceBackendError for failed span exports
        service_name: Explicit service.name override
        exporter: Use this exporter instead of the one settings describe
        batch: Queue spans in a BatchSpanProcessor (flushed on shutdown)
            instead of exporting each span as it ends

    Returns:
        Provider with a failure-reporting span processor attached
    """
    attributes = build_resource_attributes(run, service_name)
    provider = TracerProvider(resource=Resource.create(attributes))

    span_exporter = ReportingSpanExporter(exporter or _build_span_exporter(settings), reporter)
    processor = BatchSpanProcessor(span_exporter) if batch else SimpleSpanProcessor(span_exporter)
    provider.add_span_processor(processor)

    logger.debug(
        "Tracer provider created",
        service_name=attributes[SERVICE_NAME],
        service_instance_id=attributes[SERVICE_INSTANCE_ID],
        console_only=settings.console_only,
    )
    return provider


def _shutdown(provider: TracerProvider) -> None:
    try:
        provider.shutdown()
        logger.info("Tracer provider shutdown")
    except Exception as e:
        logger.warning("Tracer provider shutdown failed", error=str(e))


def schedule_shutdown(provider: TracerProvider, grace_period: float) -> threading.Timer:
    """Shut the provider down after a grace period, without waiting for it.

    The timer thread is non-daemon, so the interpreter waits for the
    shutdown (and its final flush) before exiting.

    Returns:
        The started timer; cancel() it to skip the shutdown
    """
    timer = threading.Timer(grace_period, _shutdown, args=(provider,))
    timer.name = "runtrace-provider-shutdown"
    timer.start()
    return timer
