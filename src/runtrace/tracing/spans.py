# src/runtrace/tracing/spans.py
"""Span construction for a completed workflow run.

Span Hierarchy:
    workflow run: {run_name}
    ├── job: {job_name}
    │   ├── step: {step_name}
    │   └── step: {step_name}
    └── job: {job_name}
        └── ...

Spans are built after the fact, so every start/end time is taken from the
platform's reported timestamps rather than the wall clock.
"""

from __future__ import annotations

import time
from collections.abc import Sequence
from datetime import datetime
from typing import Any

import structlog
from opentelemetry import trace
from opentelemetry.trace import SpanKind, Status, StatusCode, Tracer, format_span_id, format_trace_id

from runtrace.contracts.models import Job, RunContext, Step, TraceContext
from runtrace.contracts.timestamps import datetime_to_nanos

logger = structlog.get_logger(__name__)

_FAILED_CONCLUSIONS = frozenset({"failure", "timed_out", "startup_failure"})


def _status_for(conclusion: str | None) -> Status:
    if conclusion in _FAILED_CONCLUSIONS:
        return Status(StatusCode.ERROR, f"conclusion: {conclusion}")
    if conclusion == "success":
        return Status(StatusCode.OK)
    return Status(StatusCode.UNSET)


def _attributes(values: dict[str, Any]) -> dict[str, Any]:
    """Drop None values: OTLP attributes can't carry null."""
    return {key: value for key, value in values.items() if value is not None}


def _run_end_ns(run: RunContext, jobs: Sequence[Job], start_ns: int) -> int:
    completions = [job.completed_at for job in jobs if job.completed_at is not None]
    if completions:
        return max(start_ns, datetime_to_nanos(max(completions)))
    if run.updated_at is not None:
        return max(start_ns, datetime_to_nanos(run.updated_at))
    return start_ns


def _run_start_ns(run: RunContext, jobs: Sequence[Job]) -> int:
    if run.run_started_at is not None:
        return datetime_to_nanos(run.run_started_at)
    starts = [job.started_at for job in jobs if job.started_at is not None]
    if starts:
        return datetime_to_nanos(min(starts))
    return time.time_ns()


def _to_nanos(dt: datetime | None) -> int | None:
    return datetime_to_nanos(dt) if dt is not None else None


def _trace_step(tracer: Tracer, job_context: Any, step: Step) -> None:
    start_ns = _to_nanos(step.started_at)
    end_ns = _to_nanos(step.completed_at)
    if start_ns is None or end_ns is None:
        return

    span = tracer.start_span(
        f"step: {step.name}",
        context=job_context,
        kind=SpanKind.INTERNAL,
        start_time=start_ns,
        attributes=_attributes(
            {
                "ci.step.number": step.number,
                "ci.step.name": step.name,
                "ci.step.status": step.status,
                "ci.step.conclusion": step.conclusion,
            }
        ),
    )
    span.set_status(_status_for(step.conclusion))
    span.end(end_time=max(start_ns, end_ns))


def _trace_job(tracer: Tracer, run_context: Any, job: Job) -> str | None:
    start_ns = _to_nanos(job.started_at)
    if start_ns is None:
        logger.debug("Job never started, no span", job_id=job.id, job_name=job.name)
        return None

    end_ns = _to_nanos(job.completed_at)
    span = tracer.start_span(
        f"job: {job.name}",
        context=run_context,
        kind=SpanKind.INTERNAL,
        start_time=start_ns,
        attributes=_attributes(
            {
                "ci.job.id": job.id,
                "ci.job.name": job.name,
                "ci.job.status": job.status,
                "ci.job.conclusion": job.conclusion,
                "ci.job.run_attempt": job.run_attempt,
                "ci.job.runner_name": job.runner_name,
                "ci.job.html_url": job.html_url,
                "ci.job.incomplete": True if end_ns is None else None,
            }
        ),
    )
    job_context = trace.set_span_in_context(span)
    for step in job.steps:
        _trace_step(tracer, job_context, step)

    span.set_status(_status_for(job.conclusion))
    span.end(end_time=start_ns if end_ns is None else max(start_ns, end_ns))
    return format_span_id(span.get_span_context().span_id)


def trace_workflow_run(tracer: Tracer, run: RunContext, jobs: Sequence[Job]) -> TraceContext:
    """Emit the run's spans and return its trace context.

    Jobs without a start time get no span. Jobs still running get a
    zero-duration span flagged ``ci.job.incomplete``. Steps missing either
    timestamp get no span.

    Args:
        tracer: Tracer from the run's provider
        run: Run metadata
        jobs: Every job of the run

    Returns:
        TraceContext whose trace_id every log record must carry
    """
    start_ns = _run_start_ns(run, jobs)
    root = tracer.start_span(
        f"workflow run: {run.run_name or run.workflow_id}",
        context=trace.set_span_in_context(trace.INVALID_SPAN),
        kind=SpanKind.SERVER,
        start_time=start_ns,
        attributes=_attributes(
            {
                "ci.run.id": run.run_id,
                "ci.run.name": run.run_name,
                "ci.run.attempt": run.run_attempt,
                "ci.run.event": run.event,
                "ci.run.head_branch": run.head_branch,
                "ci.run.head_sha": run.head_sha,
                "ci.run.html_url": run.html_url,
                "ci.workflow.id": run.workflow_id,
                "ci.job_count": len(jobs),
            }
        ),
    )
    run_context = trace.set_span_in_context(root)

    job_span_ids: dict[int, str] = {}
    for job in jobs:
        span_id = _trace_job(tracer, run_context, job)
        if span_id is not None:
            job_span_ids[job.id] = span_id

    if any(job.conclusion in _FAILED_CONCLUSIONS for job in jobs):
        root.set_status(Status(StatusCode.ERROR, "one or more jobs failed"))
    root.end(end_time=_run_end_ns(run, jobs, start_ns))

    span_context = root.get_span_context()
    trace_context = TraceContext(
        trace_id=format_trace_id(span_context.trace_id),
        root_span_id=format_span_id(span_context.span_id),
        job_span_ids=job_span_ids,
    )
    logger.info(
        "Workflow run traced",
        run_id=run.run_id,
        trace_id=trace_context.trace_id,
        job_spans=len(job_span_ids),
    )
    return trace_context
