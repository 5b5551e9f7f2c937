# src/runtrace/github/__init__.py
"""GitHub Actions API access: run metadata, job enumeration and log download."""

from runtrace.github.client import GitHubClient
from runtrace.github.pagination import JobListingClient, fetch_workflow_run_jobs

__all__ = [
    "GitHubClient",
    "JobListingClient",
    "fetch_workflow_run_jobs",
]
