# src/runtrace/logs/loki.py
"""Log export to a Loki-compatible push endpoint.

Request body, one stream per request:

    {"streams": [{"stream": {"env": "ci", ...},
                  "values": [["1686683385403719700", "{...json envelope...}"], ...]}]}

Each job's payload is an independent unit of failure: a rejected payload
is logged, reported to the FailureReporter, and the next payload is
still attempted.
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from types import TracebackType

import httpx
import structlog

from runtrace.contracts.errors import ExportError
from runtrace.contracts.models import StreamPayload
from runtrace.core.failures import FailureReporter
from runtrace.core.headers import parse_header_string
from runtrace.core.retry import MaxRetriesExceeded, RetryConfig, RetryManager

logger = structlog.get_logger(__name__)


class _ServerErrorResponse(Exception):
    """A 5xx answer, raised inside the retry loop so it can be retried."""

    def __init__(self, response: httpx.Response) -> None:
        self.response = response
        super().__init__(f"HTTP {response.status_code}")


def _is_retryable(error: BaseException) -> bool:
    return isinstance(error, (_ServerErrorResponse, httpx.TransportError))


def build_push_body(payload: StreamPayload) -> str:
    """Serialize one payload as a single-stream push request body."""
    return json.dumps({"streams": [payload.to_stream()]}, ensure_ascii=False, separators=(",", ":"))


class LokiExporter:
    """Pushes stream payloads to the log backend.

    Example:
        reporter = FailureReporter()
        with LokiExporter(endpoint, "X-Scope-OrgID: tenant1", reporter=reporter) as exporter:
            exported = exporter.export(payloads)
        if reporter.failed:
            ...

    Args:
        endpoint: Push URL
        headers: Auth headers, as a "key: value, key: value" string or a dict
        reporter: Receives an ExportError for every payload that fails
        retry_config: Retry policy for 5xx answers and transport errors
        timeout: Per-request timeout in seconds
        client: Optional httpx.Client to use (not closed by close())
    """

    def __init__(
        self,
        endpoint: str,
        headers: str | dict[str, str] | None = None,
        *,
        reporter: FailureReporter,
        retry_config: RetryConfig | None = None,
        timeout: float = 30.0,
        client: httpx.Client | None = None,
    ) -> None:
        self._endpoint = endpoint
        parsed = parse_header_string(headers) if isinstance(headers, str) or headers is None else dict(headers)
        self._headers = {"Content-Type": "application/json", **parsed}
        self._reporter = reporter
        self._retry = RetryManager(retry_config or RetryConfig())
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=timeout)

    def __enter__(self) -> LokiExporter:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def _post(self, body: str) -> httpx.Response:
        response = self._client.post(self._endpoint, content=body, headers=self._headers)
        if response.status_code >= 500:
            raise _ServerErrorResponse(response)
        return response

    def export_payload(self, payload: StreamPayload) -> bool:
        """Push one payload. Request failures go to the reporter instead of raising.

        Returns:
            True if the backend accepted the payload (any 2xx)
        """
        body = build_push_body(payload)
        logger.info("Sending log stream", job_id=payload.job_id, stream=dict(payload.labels), entries=len(payload.entries))
        logger.debug("Sending log body", job_id=payload.job_id, body=body)

        def on_retry(attempt: int, error: BaseException) -> None:
            logger.warning("Retrying log push", job_id=payload.job_id, attempt=attempt, error=str(error))

        try:
            response = self._retry.execute_with_retry(
                lambda: self._post(body),
                is_retryable=_is_retryable,
                on_retry=on_retry,
            )
        except MaxRetriesExceeded as e:
            last = e.last_error
            if isinstance(last, _ServerErrorResponse):
                return self._rejected(payload, last.response, attempts=e.attempts)
            self._reporter.report(ExportError(payload.job_id, f"{last} after {e.attempts} attempts"))
            return False
        except (httpx.HTTPError, httpx.InvalidURL, httpx.StreamError) as e:
            # Invalid endpoints and stream misuse aren't HTTPError subclasses
            self._reporter.report(ExportError(payload.job_id, f"{type(e).__name__}: {e}"))
            return False

        if not response.is_success:
            return self._rejected(payload, response, attempts=1)

        logger.info("Submitted logs", job_id=payload.job_id, status_code=response.status_code)
        return True

    def _rejected(self, payload: StreamPayload, response: httpx.Response, *, attempts: int) -> bool:
        logger.error(
            "Submitting logs failed",
            job_id=payload.job_id,
            status_code=response.status_code,
            reason=response.reason_phrase,
            response_body=response.text,
            attempts=attempts,
        )
        self._reporter.report(
            ExportError(
                payload.job_id,
                f"HTTP {response.status_code}",
                status_code=response.status_code,
                body=response.text,
            )
        )
        return False

    def export(self, payloads: Iterable[StreamPayload]) -> int:
        """Push every payload, continuing past failures.

        Returns:
            Number of payloads the backend accepted
        """
        return sum(1 for payload in payloads if self.export_payload(payload))
