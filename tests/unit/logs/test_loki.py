# tests/unit/logs/test_loki.py
"""Tests for LokiExporter push, retry and failure reporting."""

import json
from collections.abc import Iterator

import httpx
import pytest
import respx

from runtrace.contracts.errors import ExportError
from runtrace.contracts.models import CorrelatedLogRecord, StreamPayload
from runtrace.core.failures import FailureReporter
from runtrace.core.retry import RetryConfig
from runtrace.logs.loki import LokiExporter, build_push_body
from tests.conftest import LOKI_URL

LABELS = {"env": "ci", "github_owner": "octo-org", "github_repo": "hello-world", "github_workflow_id": "159038"}


def _payload(job_id: int = 101, count: int = 2) -> StreamPayload:
    return StreamPayload(
        job_id=job_id,
        labels=LABELS,
        entries=tuple(CorrelatedLogRecord(str(1686683385000000000 + i), f'{{"msg":"line {i}"}}') for i in range(count)),
    )


@pytest.fixture
def reporter() -> FailureReporter:
    return FailureReporter()


@pytest.fixture
def exporter(reporter: FailureReporter) -> Iterator[LokiExporter]:
    with LokiExporter(
        LOKI_URL,
        "X-Scope-OrgID: tenant1, Authorization: Basic dXNlcjpwYXNz",
        reporter=reporter,
        retry_config=RetryConfig(max_attempts=2, base_delay=0, max_delay=0, jitter=0),
    ) as e:
        yield e


def test_build_push_body_single_stream() -> None:
    body = json.loads(build_push_body(_payload(count=1)))

    assert body == {"streams": [{"stream": LABELS, "values": [["1686683385000000000", '{"msg":"line 0"}']]}]}


@respx.mock
def test_accepted_payload(exporter: LokiExporter, reporter: FailureReporter) -> None:
    route = respx.post(LOKI_URL).mock(return_value=httpx.Response(204))

    assert exporter.export_payload(_payload()) is True

    request = route.calls.last.request
    assert request.headers["Content-Type"] == "application/json"
    assert request.headers["X-Scope-OrgID"] == "tenant1"
    assert request.headers["Authorization"] == "Basic dXNlcjpwYXNz"
    assert json.loads(request.content) == json.loads(build_push_body(_payload()))
    assert not reporter.failed


@respx.mock
def test_any_2xx_is_success(exporter: LokiExporter, reporter: FailureReporter) -> None:
    respx.post(LOKI_URL).mock(return_value=httpx.Response(200, text="ok"))

    assert exporter.export_payload(_payload()) is True
    assert not reporter.failed


@respx.mock
def test_server_error_retried_then_reported(exporter: LokiExporter, reporter: FailureReporter) -> None:
    route = respx.post(LOKI_URL).mock(return_value=httpx.Response(500, text="ingester unavailable"))

    assert exporter.export_payload(_payload()) is False

    assert route.call_count == 2
    (error,) = reporter.errors
    assert isinstance(error, ExportError)
    assert error.job_id == 101
    assert error.status_code == 500
    assert error.body == "ingester unavailable"


@respx.mock
def test_server_error_then_success(exporter: LokiExporter, reporter: FailureReporter) -> None:
    route = respx.post(LOKI_URL).mock(side_effect=[httpx.Response(503), httpx.Response(204)])

    assert exporter.export_payload(_payload()) is True
    assert route.call_count == 2
    assert not reporter.failed


@respx.mock
def test_client_error_not_retried(exporter: LokiExporter, reporter: FailureReporter) -> None:
    route = respx.post(LOKI_URL).mock(
        return_value=httpx.Response(400, text="entry too far behind"),
    )

    assert exporter.export_payload(_payload()) is False

    assert route.call_count == 1
    (error,) = reporter.errors
    assert isinstance(error, ExportError)
    assert error.status_code == 400
    assert error.body == "entry too far behind"


@respx.mock
def test_transport_error_retried_then_reported(exporter: LokiExporter, reporter: FailureReporter) -> None:
    route = respx.post(LOKI_URL).mock(side_effect=httpx.ConnectError("connection refused"))

    assert exporter.export_payload(_payload()) is False

    assert route.call_count == 2
    (error,) = reporter.errors
    assert isinstance(error, ExportError)
    assert error.status_code is None
    assert "connection refused" in str(error)


@respx.mock
def test_failure_does_not_stop_remaining_payloads(exporter: LokiExporter, reporter: FailureReporter) -> None:
    route = respx.post(LOKI_URL).mock(side_effect=[httpx.Response(400, text="bad"), httpx.Response(204)])

    exported = exporter.export([_payload(job_id=1), _payload(job_id=2)])

    assert exported == 1
    assert route.call_count == 2
    assert [e.job_id for e in reporter.errors] == [1]  # type: ignore[attr-defined]


@respx.mock
def test_no_retry_config_makes_single_attempt(reporter: FailureReporter) -> None:
    route = respx.post(LOKI_URL).mock(return_value=httpx.Response(502))

    with LokiExporter(LOKI_URL, reporter=reporter, retry_config=RetryConfig.no_retry()) as single:
        assert single.export_payload(_payload()) is False

    assert route.call_count == 1
    assert reporter.failed


@respx.mock
def test_dict_headers_and_injected_client(reporter: FailureReporter) -> None:
    route = respx.post(LOKI_URL).mock(return_value=httpx.Response(204))
    client = httpx.Client()

    with LokiExporter(LOKI_URL, {"X-Scope-OrgID": "tenant2"}, reporter=reporter, client=client) as injected:
        injected.export_payload(_payload())

    assert route.calls.last.request.headers["X-Scope-OrgID"] == "tenant2"
    assert not client.is_closed
    client.close()


@respx.mock
def test_non_http_error_reported_and_export_continues(exporter: LokiExporter, reporter: FailureReporter) -> None:
    route = respx.post(LOKI_URL).mock(side_effect=[httpx.InvalidURL("Invalid port"), httpx.Response(204)])

    exported = exporter.export([_payload(job_id=1), _payload(job_id=2)])

    assert exported == 1
    assert route.call_count == 2
    (error,) = reporter.errors
    assert isinstance(error, ExportError)
    assert error.job_id == 1
    assert "InvalidURL" in str(error)
