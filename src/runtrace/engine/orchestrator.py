# src/runtrace/engine/orchestrator.py
"""Orchestrator: full lifecycle of one telemetry export.

Stages:
    FetchJobs -> BuildTrace -> ForEachJob(Download -> Parse -> Correlate -> Package)
    -> ExportLogs -> FlushSpans -> Done

The trace is built first because its trace id is an input to every
job's correlation step. Per-job processing runs on a thread pool: jobs
share only the read-only RunContext and the trace id. Log export and
span flush go to different backends and don't order against each other.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from threading import Timer

import httpx
import structlog
from opentelemetry.sdk.trace.export import SpanExporter

from runtrace.contracts.errors import FetchError, RuntraceError, TraceBackendError
from runtrace.contracts.models import Job, RunContext, StreamPayload
from runtrace.contracts.results import PipelineResult, PipelineStatus
from runtrace.core.config import RuntraceSettings
from runtrace.core.failures import FailureReporter
from runtrace.core.retry import RetryConfig
from runtrace.github.client import GitHubClient
from runtrace.github.pagination import fetch_workflow_run_jobs
from runtrace.logs.correlation import correlate_records
from runtrace.logs.loki import LokiExporter
from runtrace.logs.packaging import package_job_logs
from runtrace.logs.parser import parse_log_text
from runtrace.tracing.provider import create_tracer_provider, schedule_shutdown
from runtrace.tracing.spans import trace_workflow_run

logger = structlog.get_logger(__name__)

_TRACER_NAME = "runtrace"


@dataclass
class _RunState:
    """Mutable state of one run() call."""

    reporter: FailureReporter = field(default_factory=FailureReporter)
    shutdown_timer: Timer | None = None


class Orchestrator:
    """Runs the telemetry export pipeline for one workflow run.

    Collaborators can be injected for testing; by default they're built
    from settings.

    Example:
        settings = load_settings(Path("runtrace.yaml"))
        result = Orchestrator(settings).run()
        print(result.trace_id)

    Args:
        settings: Validated configuration
        github_client: Client for the CI platform API
        loki_client: httpx.Client the log exporter sends through (not closed)
        span_exporter: Span exporter replacing the OTLP/console one
        batch_spans: Queue spans in a batch processor instead of exporting as they end
    """

    def __init__(
        self,
        settings: RuntraceSettings,
        *,
        github_client: GitHubClient | None = None,
        loki_client: httpx.Client | None = None,
        span_exporter: SpanExporter | None = None,
        batch_spans: bool = True,
    ) -> None:
        self._settings = settings
        self._github = github_client
        self._loki_client = loki_client
        self._span_exporter = span_exporter
        self._batch_spans = batch_spans
        self._last_state: _RunState | None = None

    @property
    def shutdown_timer(self) -> Timer | None:
        """Timer of the most recent run's provider shutdown, for callers that want to join it."""
        return self._last_state.shutdown_timer if self._last_state else None

    def run(self) -> PipelineResult:
        """Execute the pipeline.

        Returns:
            PipelineResult. FAILED_FATAL if the run or its jobs couldn't be
            fetched (nothing exported); FAILED_PARTIAL if any job log,
            payload or span export failed; SUCCEEDED otherwise.
        """
        state = _RunState()
        self._last_state = state
        github_settings = self._settings.github
        owns_client = self._github is None
        client = self._github or GitHubClient(
            github_settings.owner,
            github_settings.repo,
            token=github_settings.token,
            api_url=github_settings.api_url,
            timeout=github_settings.timeout_seconds,
        )
        try:
            try:
                run, jobs = self._fetch(client)
            except FetchError as e:
                logger.error("Fetching workflow run failed", run_id=github_settings.run_id, error=str(e))
                return PipelineResult(status=PipelineStatus.FAILED_FATAL, errors=(e,))
            return self._export(client, run, jobs, state)
        finally:
            if owns_client:
                client.close()

    def _fetch(self, client: GitHubClient) -> tuple[RunContext, list[Job]]:
        run_id = self._settings.github.run_id
        logger.info("Fetching workflow run jobs", run_id=run_id)
        try:
            run = RunContext.from_api(client.get_workflow_run(run_id))
            jobs = fetch_workflow_run_jobs(client, run_id, page_size=self._settings.github.page_size)
        except (KeyError, TypeError) as e:
            raise FetchError("parse_response", f"unexpected response shape: {e!r}") from e
        logger.info("Fetched workflow run", run_id=run_id, run_name=run.run_name, job_count=len(jobs))
        return run, jobs

    def _export(
        self,
        client: GitHubClient,
        run: RunContext,
        jobs: list[Job],
        state: _RunState,
    ) -> PipelineResult:
        otlp = self._settings.otlp
        reporter = state.reporter
        provider = create_tracer_provider(
            run,
            otlp,
            reporter=reporter,
            service_name=self._settings.service_name,
            exporter=self._span_exporter,
            batch=self._batch_spans,
        )
        try:
            trace_context = trace_workflow_run(provider.get_tracer(_TRACER_NAME), run, jobs)

            payloads = self._build_payloads(client, run, jobs, trace_context.trace_id, reporter)
            logger.info("Exporting logs", run_id=run.run_id, payloads=len(payloads))
            exported = self._export_logs(payloads, reporter)

            if not provider.force_flush(timeout_millis=int(otlp.flush_timeout_seconds * 1000)):
                logger.warning("Span flush timed out", timeout_seconds=otlp.flush_timeout_seconds)
                reporter.report(TraceBackendError(f"Span flush timed out after {otlp.flush_timeout_seconds}s"))
        finally:
            logger.info("Scheduling tracer provider shutdown", grace_seconds=otlp.shutdown_grace_seconds)
            state.shutdown_timer = schedule_shutdown(provider, otlp.shutdown_grace_seconds)

        status = PipelineStatus.FAILED_PARTIAL if reporter.failed else PipelineStatus.SUCCEEDED
        logger.info(
            "Pipeline finished",
            run_id=run.run_id,
            status=status.value,
            trace_id=trace_context.trace_id,
            exported_payloads=exported,
        )
        return PipelineResult(
            status=status,
            trace_id=trace_context.trace_id,
            job_count=len(jobs),
            exported_payloads=exported,
            errors=reporter.errors,
        )

    def _build_payloads(
        self,
        client: GitHubClient,
        run: RunContext,
        jobs: list[Job],
        trace_id: str,
        reporter: FailureReporter,
    ) -> list[StreamPayload]:
        max_workers = min(self._settings.concurrency.max_workers, max(1, len(jobs)))
        with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="runtrace-job") as pool:
            results = list(pool.map(lambda job: self._process_job(client, run, job, trace_id, reporter), jobs))
        return [payload for payload in results if payload is not None]

    def _process_job(
        self,
        client: GitHubClient,
        run: RunContext,
        job: Job,
        trace_id: str,
        reporter: FailureReporter,
    ) -> StreamPayload | None:
        """Download -> Parse -> Correlate -> Package for one job.

        Returns None when the job contributes no log lines. Download, format
        and other pipeline errors are reported, never raised.
        """
        try:
            body = client.download_job_log(job.id)
            records = parse_log_text(body, job_id=job.id)
        except RuntraceError as e:
            logger.warning("Job logs skipped", run_id=run.run_id, job_id=job.id, error=str(e))
            reporter.report(e)
            return None

        if not records:
            logger.debug("Job log is empty", job_id=job.id)
            return None

        correlated = correlate_records(records, run, job, trace_id)
        loki = self._settings.loki
        payload = package_job_logs(run, job, correlated, env=loki.env_label, policy=loki.labels)
        logger.debug("Processed job logs", run_id=run.run_id, job_id=job.id, records=len(records))
        return payload

    def _export_logs(self, payloads: list[StreamPayload], reporter: FailureReporter) -> int:
        loki = self._settings.loki
        with LokiExporter(
            loki.endpoint,
            loki.headers,
            reporter=reporter,
            retry_config=RetryConfig.from_settings(loki.retry),
            timeout=loki.timeout_seconds,
            client=self._loki_client,
        ) as exporter:
            return exporter.export(payloads)
