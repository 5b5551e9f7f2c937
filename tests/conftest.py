# tests/conftest.py
"""Shared test fixtures and helpers.

API payload factories build dicts shaped like the GitHub Actions REST
responses, so tests exercise the same from_api() parsing as production.

Hypothesis Configuration:
- "ci" profile: Fast tests for CI (100 examples) - default
- "nightly" profile: Thorough tests (1000 examples)
- "debug" profile: Minimal tests with verbose output (10 examples)

Set profile via environment variable:
    HYPOTHESIS_PROFILE=nightly pytest tests/property/
"""

import os
from collections.abc import Callable, Iterator
from typing import Any

import pytest
from hypothesis import Phase, Verbosity, settings
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from runtrace.contracts import Job, RunContext
from runtrace.core.config import RuntraceSettings

settings.register_profile(
    "ci",
    max_examples=100,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,  # Disable deadline for CI (timing varies)
)

settings.register_profile(
    "nightly",
    max_examples=1000,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.register_profile(
    "debug",
    max_examples=10,
    verbosity=Verbosity.verbose,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.shrink],
    deadline=None,
)

settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "ci"))


# =============================================================================
# GitHub API payload factories
# =============================================================================

API_URL = "https://api.github.com"
LOKI_URL = "https://loki.example.com/loki/api/v1/push"
OWNER = "octo-org"
REPO = "hello-world"
RUN_ID = 30433642
WORKFLOW_ID = 159038


def make_run_data(**overrides: Any) -> dict[str, Any]:
    """Workflow run response body."""
    data: dict[str, Any] = {
        "id": RUN_ID,
        "name": "Build",
        "workflow_id": WORKFLOW_ID,
        "head_sha": "acb5820ced9479c074f688cc328bf03f341a511d",
        "head_branch": "main",
        "event": "push",
        "run_attempt": 1,
        "run_started_at": "2023-06-13T19:09:40Z",
        "created_at": "2023-06-13T19:09:39Z",
        "updated_at": "2023-06-13T19:12:00Z",
        "html_url": f"https://github.com/{OWNER}/{REPO}/actions/runs/{RUN_ID}",
        "repository": {
            "name": REPO,
            "full_name": f"{OWNER}/{REPO}",
            "owner": {"login": OWNER},
        },
    }
    data.update(overrides)
    return data


def make_step_data(number: int, name: str, **overrides: Any) -> dict[str, Any]:
    data: dict[str, Any] = {
        "number": number,
        "name": name,
        "status": "completed",
        "conclusion": "success",
        "started_at": "2023-06-13T19:09:46Z",
        "completed_at": "2023-06-13T19:09:50Z",
    }
    data.update(overrides)
    return data


def make_job_data(job_id: int, name: str | None = None, **overrides: Any) -> dict[str, Any]:
    """One element of the job listing's ``jobs`` array."""
    data: dict[str, Any] = {
        "id": job_id,
        "run_id": RUN_ID,
        "name": name or f"job-{job_id}",
        "run_attempt": 1,
        "status": "completed",
        "conclusion": "success",
        "started_at": "2023-06-13T19:09:45Z",
        "completed_at": "2023-06-13T19:11:00Z",
        "runner_name": "GitHub Actions 2",
        "html_url": f"https://github.com/{OWNER}/{REPO}/actions/runs/{RUN_ID}/job/{job_id}",
        "steps": [
            make_step_data(1, "Set up job"),
            make_step_data(
                2,
                "Run tests",
                started_at="2023-06-13T19:09:50Z",
                completed_at="2023-06-13T19:10:55Z",
            ),
        ],
    }
    data.update(overrides)
    return data


@pytest.fixture
def run_data() -> dict[str, Any]:
    return make_run_data()


@pytest.fixture
def run_context(run_data: dict[str, Any]) -> RunContext:
    return RunContext.from_api(run_data)


@pytest.fixture
def job() -> Job:
    return Job.from_api(make_job_data(101, "build"))


@pytest.fixture
def make_settings() -> Callable[..., RuntraceSettings]:
    """Factory for settings pointing at the test endpoints (no retry delay)."""

    def _make(**overrides: Any) -> RuntraceSettings:
        raw: dict[str, Any] = {
            "github": {"repository": f"{OWNER}/{REPO}", "run_id": RUN_ID, "token": "ghs_test", "api_url": API_URL},
            "otlp": {"console_only": True, "shutdown_grace_seconds": 0},
            "loki": {
                "endpoint": LOKI_URL,
                "headers": "X-Scope-OrgID: tenant1",
                "retry": {"max_attempts": 2, "initial_delay_seconds": 0, "max_delay_seconds": 0},
            },
            "concurrency": {"max_workers": 2},
        }
        raw.update(overrides)
        return RuntraceSettings(**raw)

    return _make


@pytest.fixture
def span_exporter() -> Iterator[InMemorySpanExporter]:
    exporter = InMemorySpanExporter()
    yield exporter
    exporter.clear()
