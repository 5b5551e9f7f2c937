# src/runtrace/github/client.py
"""GitHub Actions REST client.

Thin httpx wrapper over the three endpoints the pipeline needs:
workflow run metadata, the paginated job listing, and job log download.
HTTP failures are translated into the pipeline's error taxonomy here so
that callers never see httpx exceptions.
"""

from __future__ import annotations

from json import JSONDecodeError
from types import TracebackType
from typing import Any

import httpx
import structlog

from runtrace.contracts.errors import FetchError, LogDownloadError

logger = structlog.get_logger(__name__)

_API_VERSION = "2022-11-28"


class GitHubClient:
    """Client for the Actions API of one repository.

    Two httpx clients are held: one for the API (carries the token) and
    one for log blob downloads. Log download URLs are pre-signed and live
    on a different host, so the API token is never sent there.

    Example:
        with GitHubClient("octo", "hello", token="...") as client:
            run = client.get_workflow_run(42)
            page = client.list_jobs(42, page=1, per_page=100)
    """

    def __init__(
        self,
        owner: str,
        repo: str,
        *,
        token: str | None = None,
        api_url: str = "https://api.github.com",
        timeout: float = 30.0,
    ) -> None:
        self.owner = owner
        self.repo = repo
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": _API_VERSION,
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._api = httpx.Client(base_url=api_url, headers=headers, timeout=timeout, follow_redirects=False)
        self._download = httpx.Client(timeout=timeout, follow_redirects=True)

    def __enter__(self) -> GitHubClient:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()

    def close(self) -> None:
        self._api.close()
        self._download.close()

    @property
    def _repo_path(self) -> str:
        return f"/repos/{self.owner}/{self.repo}/actions"

    def _get_json(self, operation: str, path: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        try:
            response = self._api.get(path, params=params)
            response.raise_for_status()
            data: dict[str, Any] = response.json()
        except httpx.HTTPStatusError as e:
            raise FetchError(
                operation,
                f"HTTP {e.response.status_code}: {e.response.text}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise FetchError(operation, str(e)) from e
        except JSONDecodeError as e:
            raise FetchError(operation, f"invalid JSON response: {e}") from e
        return data

    def get_workflow_run(self, run_id: int) -> dict[str, Any]:
        """Fetch workflow run metadata.

        Raises:
            FetchError: On any HTTP or decoding failure
        """
        return self._get_json("get_workflow_run", f"{self._repo_path}/runs/{run_id}")

    def list_jobs(
        self,
        run_id: int,
        *,
        page: int,
        per_page: int,
        filter: str = "latest",
    ) -> dict[str, Any]:
        """Fetch one page of a run's jobs.

        Returns:
            Response body: ``{"total_count": int, "jobs": [...]}``

        Raises:
            FetchError: On any HTTP or decoding failure
        """
        return self._get_json(
            "list_jobs",
            f"{self._repo_path}/runs/{run_id}/jobs",
            params={"filter": filter, "page": page, "per_page": per_page},
        )

    def get_job_log_url(self, job_id: int) -> str:
        """Resolve the short-lived download URL of a job's log.

        The API answers with a redirect; the Location header is the URL.

        Raises:
            LogDownloadError: If the API doesn't answer with a redirect
        """
        try:
            response = self._api.get(f"{self._repo_path}/jobs/{job_id}/logs")
        except httpx.HTTPError as e:
            raise LogDownloadError(job_id, str(e)) from e

        location = response.headers.get("location")
        if not response.is_redirect or not location:
            raise LogDownloadError(job_id, f"expected redirect, got HTTP {response.status_code}: {response.text}")
        return location

    def download_job_log(self, job_id: int) -> Any:
        """Download the raw log of one job.

        Returns:
            The log text as str for text bodies. JSON bodies (error objects)
            are returned parsed, and undecodable bodies as bytes, so the
            log parser can reject them.

        Raises:
            LogDownloadError: On HTTP failure of either request
        """
        url = self.get_job_log_url(job_id)
        logger.debug("Downloading job log", job_id=job_id)
        try:
            response = self._download.get(url)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise LogDownloadError(job_id, f"HTTP {e.response.status_code}: {e.response.text}") from e
        except httpx.HTTPError as e:
            raise LogDownloadError(job_id, str(e)) from e

        content_type = response.headers.get("content-type", "")
        if "json" in content_type:
            try:
                return response.json()
            except JSONDecodeError:
                return response.text
        try:
            return response.content.decode("utf-8-sig")
        except UnicodeDecodeError:
            return response.content
