# src/runtrace/core/config.py
"""
Configuration schema and loading for runtrace.

Uses Pydantic for validation and Dynaconf for multi-source loading.
Settings are frozen (immutable) after construction.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any, Self

from pydantic import BaseModel, Field, field_validator, model_validator

# GitHub's listing endpoints reject per_page above 100
MAX_PAGE_SIZE = 100


class GitHubSettings(BaseModel):
    """CI platform API access and the run to export."""

    model_config = {"frozen": True}

    repository: str = Field(description="Repository as owner/name")
    run_id: int = Field(gt=0, description="Workflow run to export")
    token: str | None = Field(default=None, description="API token (GITHUB_TOKEN)")
    api_url: str = Field(default="https://api.github.com", description="REST API base URL")
    page_size: int = Field(
        default=MAX_PAGE_SIZE,
        ge=1,
        le=MAX_PAGE_SIZE,
        description="Jobs requested per listing page",
    )
    timeout_seconds: float = Field(default=30.0, gt=0, description="HTTP timeout per request")

    @field_validator("repository")
    @classmethod
    def validate_repository(cls, v: str) -> str:
        owner, sep, name = v.partition("/")
        if not sep or not owner or not name or "/" in name:
            raise ValueError(f"repository must be 'owner/name', got {v!r}")
        return v

    @property
    def owner(self) -> str:
        return self.repository.partition("/")[0]

    @property
    def repo(self) -> str:
        return self.repository.partition("/")[2]


class OTLPSettings(BaseModel):
    """Span export to an OTLP/HTTP collector."""

    model_config = {"frozen": True}

    endpoint: str | None = Field(default=None, description="OTLP/HTTP traces endpoint URL")
    headers: str = Field(default="", description="Header string 'key: value, key: value'")
    console_only: bool = Field(default=False, description="Print spans to the console instead of exporting")
    flush_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="How long to wait for queued spans to be exported before reporting the outcome",
    )
    shutdown_grace_seconds: float = Field(
        default=2.0,
        ge=0,
        description="Delay before the tracer provider is shut down after the pipeline completes",
    )

    @model_validator(mode="after")
    def _require_endpoint(self) -> Self:
        if not self.console_only and not self.endpoint:
            raise ValueError("otlp.endpoint is required unless otlp.console_only is set")
        return self


class LabelPolicySettings(BaseModel):
    """Which identifiers become indexed stream labels.

    Labels are index keys in the log backend. Adding run or job ids makes
    every run (or job) its own stream, which makes label-only queries
    possible at the cost of stream cardinality. Left off, the ids are
    still present in every log line's JSON envelope.
    """

    model_config = {"frozen": True}

    include_run_id: bool = Field(default=False, description="Add github_run_id as a stream label")
    include_job_id: bool = Field(default=False, description="Add github_job_id as a stream label")


class RetrySettings(BaseModel):
    """Retry behavior for log export POSTs."""

    model_config = {"frozen": True}

    max_attempts: int = Field(default=2, gt=0, description="Total attempts per payload (1 = no retry)")
    initial_delay_seconds: float = Field(default=1.0, ge=0, description="Initial backoff delay")
    max_delay_seconds: float = Field(default=10.0, ge=0, description="Maximum backoff delay")
    exponential_base: float = Field(default=2.0, gt=1.0, description="Exponential backoff base")


class LokiSettings(BaseModel):
    """Log export to a Loki-compatible push endpoint."""

    model_config = {"frozen": True}

    endpoint: str = Field(description="Push endpoint URL (…/loki/api/v1/push)")
    headers: str = Field(default="", description="Header string 'key: value, key: value'")
    env_label: str = Field(default="ci", description="Value of the env stream label")
    labels: LabelPolicySettings = Field(default_factory=LabelPolicySettings)
    retry: RetrySettings = Field(default_factory=RetrySettings)
    timeout_seconds: float = Field(default=30.0, gt=0, description="HTTP timeout per request")


class ConcurrencySettings(BaseModel):
    """Per-job download/parse worker pool."""

    model_config = {"frozen": True}

    max_workers: int = Field(default=4, ge=1, description="Jobs processed concurrently")


class RuntraceSettings(BaseModel):
    """Top-level configuration for one pipeline invocation."""

    model_config = {"frozen": True}

    github: GitHubSettings
    otlp: OTLPSettings
    loki: LokiSettings
    service_name: str | None = Field(
        default=None,
        description="Overrides the trace service.name (defaults to run name, then workflow id)",
    )
    concurrency: ConcurrencySettings = Field(default_factory=ConcurrencySettings)


def _lower_keys(value: Any) -> Any:
    """Recursively lowercase mapping keys (Dynaconf uppercases env-sourced keys)."""
    if isinstance(value, Mapping):
        return {str(k).lower(): _lower_keys(v) for k, v in value.items()}
    return value


def _deep_merge(base: dict[str, Any], overrides: Mapping[str, Any]) -> dict[str, Any]:
    """Merge overrides into base. None values in overrides are skipped."""
    merged = dict(base)
    for key, value in overrides.items():
        if value is None:
            continue
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = _deep_merge(dict(merged[key]), value)
        elif isinstance(value, Mapping):
            merged[key] = _deep_merge({}, value)
        else:
            merged[key] = value
    return merged


def load_settings(
    config_path: Path | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> RuntraceSettings:
    """Load settings from YAML, environment variables and explicit overrides.

    Precedence (highest first):
    1. overrides (CLI flags); None values are ignored
    2. Environment variables (RUNTRACE_*), e.g. RUNTRACE_LOKI__ENDPOINT
    3. Config file, when given
    4. Defaults from the Pydantic schema

    Args:
        config_path: Optional path to a YAML configuration file
        overrides: Nested dict of explicit values

    Returns:
        Validated RuntraceSettings instance

    Raises:
        ValidationError: If configuration fails Pydantic validation
        FileNotFoundError: If config_path is given but doesn't exist
    """
    from dynaconf import Dynaconf

    # Dynaconf silently accepts missing files
    if config_path is not None and not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    dynaconf_settings = Dynaconf(
        envvar_prefix="RUNTRACE",
        settings_files=[str(config_path)] if config_path is not None else [],
        environments=False,
        load_dotenv=False,
        merge_enabled=True,
    )

    internal_keys = {"LOAD_DOTENV", "ENVIRONMENTS", "SETTINGS_FILES"}
    raw_config = _lower_keys({k: v for k, v in dynaconf_settings.as_dict().items() if k not in internal_keys})

    if overrides:
        raw_config = _deep_merge(raw_config, overrides)

    return RuntraceSettings(**raw_config)
