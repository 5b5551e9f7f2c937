# src/runtrace/github/pagination.py
"""Complete job enumeration for a workflow run.

The listing endpoint is paginated and eventually consistent: a re-run
started mid-fetch can change total_count between pages. The total is
therefore taken from the first page only, and the page count is capped
at what that total requires, so a shifting total can cause an undercount
but never an endless loop.
"""

from __future__ import annotations

import math
from typing import Any, Protocol

import structlog

from runtrace.contracts.models import Job
from runtrace.core.config import MAX_PAGE_SIZE

logger = structlog.get_logger(__name__)


class JobListingClient(Protocol):
    """The slice of GitHubClient the fetcher depends on."""

    def list_jobs(self, run_id: int, *, page: int, per_page: int, filter: str = "latest") -> dict[str, Any]: ...


def fetch_workflow_run_jobs(
    client: JobListingClient,
    run_id: int,
    *,
    page_size: int = MAX_PAGE_SIZE,
) -> list[Job]:
    """Fetch every job of the latest attempt of a run.

    Pages are requested from 1 upwards until the accumulated count reaches
    the total reported by the first page, or a page comes back empty, or
    ``ceil(total / page_size)`` pages have been requested. Jobs repeated
    across pages (listing shifted under us) are kept once, first
    occurrence wins.

    Args:
        client: Job listing client
        run_id: Workflow run id
        page_size: Jobs per page (1..100)

    Returns:
        Jobs in listing order

    Raises:
        FetchError: If any page request fails. A partial job list is never returned.
    """
    if not 1 <= page_size <= MAX_PAGE_SIZE:
        raise ValueError(f"page_size must be in 1..{MAX_PAGE_SIZE}, got {page_size}")

    jobs: list[Job] = []
    seen: set[int] = set()
    total_count: int | None = None
    max_pages = 1
    page = 1

    while page <= max_pages:
        response = client.list_jobs(run_id, page=page, per_page=page_size, filter="latest")
        if total_count is None:
            total_count = int(response["total_count"])
            max_pages = max(1, math.ceil(total_count / page_size))

        page_jobs = response.get("jobs") or []
        for data in page_jobs:
            if data["id"] in seen:
                continue
            seen.add(data["id"])
            jobs.append(Job.from_api(data))

        logger.debug(
            "Fetched job page",
            run_id=run_id,
            page=page,
            page_jobs=len(page_jobs),
            accumulated=len(jobs),
            total_count=total_count,
        )

        if not page_jobs or len(jobs) >= total_count:
            break
        page += 1

    if total_count is not None and len(jobs) < total_count:
        logger.warning(
            "Job listing returned fewer jobs than reported",
            run_id=run_id,
            fetched=len(jobs),
            total_count=total_count,
        )
    return jobs
