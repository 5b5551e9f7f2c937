# src/runtrace/logs/packaging.py
"""Grouping correlated records into per-job stream payloads."""

from __future__ import annotations

from collections.abc import Sequence

from runtrace.contracts.models import CorrelatedLogRecord, Job, RunContext, StreamPayload
from runtrace.core.config import LabelPolicySettings


def build_stream_labels(
    run: RunContext,
    job: Job,
    *,
    env: str = "ci",
    policy: LabelPolicySettings | None = None,
) -> dict[str, str]:
    """Build the label set of a job's stream.

    The base set is low-cardinality (one stream per workflow). Run and
    job ids are added only when the label policy asks for them.
    """
    policy = policy or LabelPolicySettings()
    labels = {
        "env": env,
        "github_owner": run.repository_owner,
        "github_repo": run.repository_name,
        "github_workflow_id": str(run.workflow_id),
    }
    if policy.include_run_id:
        labels["github_run_id"] = str(run.run_id)
    if policy.include_job_id:
        labels["github_job_id"] = str(job.id)
    return labels


def package_job_logs(
    run: RunContext,
    job: Job,
    records: Sequence[CorrelatedLogRecord],
    *,
    env: str = "ci",
    policy: LabelPolicySettings | None = None,
) -> StreamPayload:
    """Package one job's correlated records as a single stream payload.

    Records keep their order. Only records of this job may be passed in:
    one payload never mixes jobs.
    """
    return StreamPayload(
        job_id=job.id,
        labels=build_stream_labels(run, job, env=env, policy=policy),
        entries=tuple(records),
    )
