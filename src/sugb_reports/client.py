"""ReportsClient — thin httpx wrapper around the report endpoints.

Usage::

    async with ReportsClient("http://localhost:8080", user_id="u-1") as client:
        job_id = await client.request_report(response_id)
        status = await client.wait_for_report(job_id)
        pdf = await client.download(status.artifact_ref)
"""

from __future__ import annotations

from typing import Any

import httpx

from sugb_reports.artifacts import artifact_name_from_ref
from sugb_reports.constants import MAX_POLLS, POLL_INTERVAL_SECONDS
from sugb_reports.models import JobStatusInfo, ReportOptions
from sugb_reports.poller import ReportStatusPoller

_API = "/api/v1"


class ReportsClient:
    """Async HTTP client for requesting, tracking and downloading reports."""

    def __init__(
        self,
        base_url: str,
        *,
        user_id: str,
        proxy_secret: str | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        headers = {"X-User-ID": user_id}
        if proxy_secret:
            headers["X-Proxy-Secret"] = proxy_secret
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "ReportsClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def request_report(
        self, survey_response_id: str, options: ReportOptions | None = None
    ) -> str:
        """Enqueue a report; returns the job id."""
        body = {
            "survey_response_id": survey_response_id,
            "options": (options or ReportOptions()).model_dump(),
        }
        resp = await self._client.post(f"{_API}/reports", json=body)
        resp.raise_for_status()
        return resp.json()["job_id"]

    async def get_status(self, job_id: str) -> JobStatusInfo:
        resp = await self._client.get(f"{_API}/reports/jobs/{job_id}")
        resp.raise_for_status()
        return JobStatusInfo.model_validate(resp.json())

    async def wait_for_report(
        self,
        job_id: str,
        *,
        interval: float = POLL_INTERVAL_SECONDS,
        max_polls: int = MAX_POLLS,
    ) -> JobStatusInfo:
        """Poll until the job completes or fails; ``TimeoutError`` otherwise."""
        async with ReportStatusPoller(
            self.get_status, job_id, interval=interval, max_polls=max_polls,
        ) as poller:
            return await poller.wait()

    async def download(self, ref: str) -> bytes:
        """Fetch artifact bytes by download reference or bare file name."""
        name = artifact_name_from_ref(ref)
        resp = await self._client.get(f"{_API}/reports/download/{name}")
        resp.raise_for_status()
        return resp.content
