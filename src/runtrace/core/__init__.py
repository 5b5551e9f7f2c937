# src/runtrace/core/__init__.py
"""Core infrastructure: Configuration, Logging, Failure reporting, Header parsing."""

from runtrace.core.config import (
    ConcurrencySettings,
    GitHubSettings,
    LabelPolicySettings,
    LokiSettings,
    OTLPSettings,
    RetrySettings,
    RuntraceSettings,
    load_settings,
)
from runtrace.core.failures import FailureReporter
from runtrace.core.headers import parse_header_string

__all__ = [
    "ConcurrencySettings",
    "FailureReporter",
    "GitHubSettings",
    "LabelPolicySettings",
    "LokiSettings",
    "OTLPSettings",
    "RetrySettings",
    "RuntraceSettings",
    "load_settings",
    "parse_header_string",
]
