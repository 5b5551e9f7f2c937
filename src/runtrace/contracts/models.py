# src/runtrace/contracts/models.py
"""Data model shared by all pipeline stages.

All records are frozen: they are created fresh for one pipeline invocation,
read by several stages (possibly from worker threads) and never mutated.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from runtrace.contracts.timestamps import parse_api_datetime


@dataclass(frozen=True, slots=True)
class Step:
    """One step of a job as reported by the CI platform."""

    number: int
    name: str
    status: str
    conclusion: str | None
    started_at: datetime | None
    completed_at: datetime | None

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> Step:
        return cls(
            number=data["number"],
            name=data["name"],
            status=data["status"],
            conclusion=data.get("conclusion"),
            started_at=parse_api_datetime(data.get("started_at")),
            completed_at=parse_api_datetime(data.get("completed_at")),
        )


@dataclass(frozen=True, slots=True)
class Job:
    """A job within a workflow run.

    Attributes:
        id: Platform job id (unique across attempts)
        name: Display name
        run_attempt: Attempt number of the run this job belongs to, None if unreported
        status: queued, in_progress or completed
        conclusion: success, failure, cancelled, skipped... (None while running)
        started_at: When the job started executing
        completed_at: When the job finished, None while still running
        steps: Ordered steps of the job
    """

    id: int
    name: str
    run_attempt: int | None
    status: str
    conclusion: str | None
    started_at: datetime | None
    completed_at: datetime | None
    runner_name: str | None = None
    html_url: str | None = None
    steps: tuple[Step, ...] = ()

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> Job:
        return cls(
            id=data["id"],
            name=data["name"],
            run_attempt=data.get("run_attempt"),
            status=data["status"],
            conclusion=data.get("conclusion"),
            started_at=parse_api_datetime(data.get("started_at")),
            completed_at=parse_api_datetime(data.get("completed_at")),
            runner_name=data.get("runner_name"),
            html_url=data.get("html_url"),
            steps=tuple(Step.from_api(step) for step in data.get("steps") or ()),
        )


@dataclass(frozen=True, slots=True)
class RunContext:
    """Workflow run metadata, fetched once and shared read-only by every stage."""

    run_id: int
    run_name: str | None
    workflow_id: int
    repository_owner: str
    repository_name: str
    head_sha: str
    run_attempt: int
    run_started_at: datetime | None = None
    updated_at: datetime | None = None
    event: str | None = None
    head_branch: str | None = None
    html_url: str | None = None

    @property
    def repo_full_name(self) -> str:
        return f"{self.repository_owner}/{self.repository_name}"

    @classmethod
    def from_api(cls, data: Mapping[str, Any]) -> RunContext:
        repository = data["repository"]
        return cls(
            run_id=data["id"],
            run_name=data.get("name"),
            workflow_id=data["workflow_id"],
            repository_owner=repository["owner"]["login"],
            repository_name=repository["name"],
            head_sha=data["head_sha"],
            run_attempt=data.get("run_attempt") or 1,
            run_started_at=parse_api_datetime(data.get("run_started_at") or data.get("created_at")),
            updated_at=parse_api_datetime(data.get("updated_at")),
            event=data.get("event"),
            head_branch=data.get("head_branch"),
            html_url=data.get("html_url"),
        )


@dataclass(frozen=True, slots=True)
class LogRecord:
    """One parsed log line. Order within a job is the original line order."""

    timestamp_ns: int
    message: str


@dataclass(frozen=True, slots=True)
class CorrelatedLogRecord:
    """A log line in the log backend's two-value entry shape.

    Attributes:
        timestamp: Nanoseconds since epoch, as a decimal string
        line: JSON envelope holding the trace/job metadata and the message
    """

    timestamp: str
    line: str

    def as_value(self) -> list[str]:
        return [self.timestamp, self.line]


@dataclass(frozen=True, slots=True)
class StreamPayload:
    """All correlated records of one job under a single label set."""

    job_id: int
    labels: Mapping[str, str]
    entries: tuple[CorrelatedLogRecord, ...]

    def to_stream(self) -> dict[str, Any]:
        """Render as one element of the ingest request's ``streams`` array."""
        return {
            "stream": dict(self.labels),
            "values": [entry.as_value() for entry in self.entries],
        }


@dataclass(frozen=True, slots=True)
class TraceContext:
    """Identifiers of the trace built for one run.

    Attributes:
        trace_id: 32 lowercase hex characters, shared by every span and log record
        root_span_id: 16 hex characters of the run span
        job_span_ids: Job id -> 16 hex character span id, for jobs that got a span
    """

    trace_id: str
    root_span_id: str
    job_span_ids: Mapping[int, str] = field(default_factory=dict)
