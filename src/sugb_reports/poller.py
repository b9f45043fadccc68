"""ReportStatusPoller — wait for a report job to finish.

The poller owns one background task that fetches the job status every
``interval`` seconds until the job is ``completed`` or ``failed``.  The
task is an explicit resource: ``start()`` creates it, ``stop()`` cancels
it, and ``async with`` guarantees it is cancelled on exit, so abandoning
a poll (user navigates away, request cancelled) never leaves a timer
running.

Usage::

    async with ReportStatusPoller(client.get_status, job_id) as poller:
        status = await poller.wait()
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

from sugb_reports.constants import MAX_POLLS, POLL_INTERVAL_SECONDS
from sugb_reports.models import JobStatusInfo

logger = logging.getLogger(__name__)

StatusFetcher = Callable[[str], Awaitable[JobStatusInfo | dict[str, Any]]]

TIMEOUT_MESSAGE = "Report generation timed out"


class ReportStatusPoller:
    """Poll a job's status until it reaches a terminal state.

    Args:
        fetch_status: async callable returning the job status for an id
        job_id: the job to watch
        interval: seconds between polls
        max_polls: polls before giving up with ``TimeoutError``
        on_update: optional callback invoked with every fetched status
    """

    def __init__(
        self,
        fetch_status: StatusFetcher,
        job_id: str,
        *,
        interval: float = POLL_INTERVAL_SECONDS,
        max_polls: int = MAX_POLLS,
        on_update: Callable[[JobStatusInfo], None] | None = None,
    ) -> None:
        self._fetch = fetch_status
        self._job_id = job_id
        self._interval = interval
        self._max_polls = max_polls
        self._on_update = on_update
        self._task: asyncio.Task[JobStatusInfo] | None = None
        self._last: JobStatusInfo | None = None

    async def __aenter__(self) -> "ReportStatusPoller":
        self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()

    @property
    def last_status(self) -> JobStatusInfo | None:
        return self._last

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start polling; a second call while running is a no-op."""
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(self._run())

    async def stop(self) -> None:
        """Cancel the poll task and wait for it to unwind.

        The poller can be started again afterwards.
        """
        task, self._task = self._task, None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def wait(self) -> JobStatusInfo:
        """Return the terminal status.

        Raises ``TimeoutError`` after ``max_polls`` non-terminal polls, and
        re-raises whatever the status fetch raised.
        """
        self.start()
        assert self._task is not None
        return await self._task

    async def _run(self) -> JobStatusInfo:
        for poll in range(1, self._max_polls + 1):
            raw = await self._fetch(self._job_id)
            status = raw if isinstance(raw, JobStatusInfo) else JobStatusInfo.model_validate(raw)
            self._last = status
            if self._on_update is not None:
                self._on_update(status)
            if status.is_terminal:
                logger.debug("Job %s reached %s after %d poll(s)", self._job_id, status.status, poll)
                return status
            if poll < self._max_polls:
                await asyncio.sleep(self._interval)
        raise TimeoutError(TIMEOUT_MESSAGE)
