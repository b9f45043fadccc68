"""ReportQueue — durable, retryable background queue for PDF reports.

The ``queue_jobs`` table is the queue.  ``enqueue`` inserts a pending row
inside the caller's transaction; ``drain`` works the backlog with its own
short transactions:

    1. reclaim jobs stuck in ``processing`` past ``stale_after``
    2. select the oldest pending job with attempts left
    3. claim it with a conditional UPDATE (``status = 'pending'`` re-checked
       in the WHERE clause) and commit, so other workers see the claim
    4. publish the report outside any transaction
    5. record the outcome: completed with the artifact reference, or back
       to pending / failed once attempts are exhausted

A lost claim (another worker got there first) just moves on to the next
job.  An exception while processing one job is recorded on that job and
never aborts the drain.  Within one process, drains are single-flight:
a second caller waits for the running drain and then drains whatever is
left.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Awaitable, Callable

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from sugb_db.models.base import utcnow
from sugb_db.models.enums import JobStatus
from sugb_db.repository import QueueJobRepository, SurveyResponseRepository

from sugb_reports.artifacts import ReportPublisher
from sugb_reports.constants import (
    DEFAULT_JOB_DELAY_SECONDS,
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_RETRY_BACKOFF_SECONDS,
    DEFAULT_STALE_AFTER_SECONDS,
)
from sugb_reports.models import JobStatusInfo, ReportOptions

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _ClaimedJob:
    """What a drain needs to know about a job it has claimed."""

    id: uuid.UUID
    survey_response_id: uuid.UUID
    attempts: int
    options: dict[str, Any] = field(default_factory=dict)


class ReportQueue:
    """Enqueue, drain and inspect report-generation jobs.

    Args:
        session_factory: async session factory; each drain step opens and
            commits its own session
        publisher: renders and stores the report, returning its reference
        max_attempts: attempts per job before it is marked failed
        job_delay: pause between jobs in one drain (seconds)
        retry_backoff: a failed attempt ``n`` pauses ``retry_backoff * n``
        stale_after: age (seconds) after which a ``processing`` claim is
            considered abandoned
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        publisher: ReportPublisher,
        *,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        job_delay: float = DEFAULT_JOB_DELAY_SECONDS,
        retry_backoff: float = DEFAULT_RETRY_BACKOFF_SECONDS,
        stale_after: float = DEFAULT_STALE_AFTER_SECONDS,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._session_factory = session_factory
        self._publisher = publisher
        self._max_attempts = max_attempts
        self._job_delay = job_delay
        self._retry_backoff = retry_backoff
        self._stale_after = stale_after

        self._repo = QueueJobRepository()
        self._responses = SurveyResponseRepository()
        self._drain_lock = asyncio.Lock()
        self._sleep: Callable[[float], Awaitable[None]] = asyncio.sleep

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    @property
    def is_draining(self) -> bool:
        return self._drain_lock.locked()

    # ==================================================================
    # Producer side
    # ==================================================================

    async def enqueue(
        self,
        db: AsyncSession,
        survey_response_id: str | uuid.UUID,
        options: ReportOptions | dict[str, Any] | None = None,
    ) -> str:
        """Insert a pending job and return its id.

        Raises ``ValueError`` for a malformed response id or invalid
        options.  The caller must ``await db.commit()`` to persist.
        """
        if not isinstance(options, ReportOptions):
            options = ReportOptions.model_validate(options or {})
        pk = uuid.UUID(str(survey_response_id))
        job = await self._repo.create_job(
            db,
            survey_response_id=pk,
            payload={"options": options.model_dump()},
            max_attempts=self._max_attempts,
        )
        logger.info("Enqueued report job %s for response %s", job.id, pk)
        return str(job.id)

    # ==================================================================
    # Consumer side
    # ==================================================================

    async def drain(self) -> int:
        """Process pending jobs until none are left; return how many ran.

        Every attempt counts, so a job that fails twice and then succeeds
        contributes three.
        """
        async with self._drain_lock:
            try:
                async with self._session_factory() as db:
                    reclaimed = await self.reclaim_stale(db)
                    await db.commit()
                if reclaimed:
                    logger.warning("Reclaimed %d stale report job(s)", reclaimed)
            except Exception:
                logger.exception("Stale-job reclaim failed; continuing drain")

            processed = 0
            while True:
                try:
                    found, claimed = await self._claim_next()
                except Exception:
                    logger.exception("Could not claim next report job; stopping drain")
                    break
                if not found:
                    break
                if claimed is None:
                    logger.debug("Lost claim race; moving on")
                    continue

                await self._process(claimed)
                processed += 1
                if self._job_delay > 0:
                    await self._sleep(self._job_delay)

            if processed:
                logger.info("Drain finished: %d job attempt(s)", processed)
            return processed

    async def _claim_next(self) -> tuple[bool, _ClaimedJob | None]:
        """Select and claim one job.

        Returns ``(False, None)`` when the queue is empty, ``(True, None)``
        when another worker won the claim, and ``(True, job)`` on success.
        """
        async with self._session_factory() as db:
            job = await self._repo.find_next_pending(db)
            if job is None:
                return False, None
            job_id = job.id
            claimed = _ClaimedJob(
                id=job_id,
                survey_response_id=job.survey_response_id,
                attempts=job.attempts + 1,
                options=dict((job.payload or {}).get("options") or {}),
            )
            won = await self._repo.claim(db, job_id)
            await db.commit()
        return True, (claimed if won else None)

    async def _process(self, job: _ClaimedJob) -> None:
        logger.info(
            "Processing report job %s (attempt %d/%d)",
            job.id, job.attempts, self._max_attempts,
        )
        try:
            options = ReportOptions.model_validate(job.options)
            ref = await self._publisher.publish(str(job.survey_response_id), options)
            async with self._session_factory() as db:
                if not await self._repo.mark_completed(db, job.id, ref):
                    # Reclaimed while rendering; closing without commit discards the write
                    logger.warning(
                        "Report job %s lost its claim while rendering; discarding %s",
                        job.id, ref,
                    )
                    return
                await self._responses.record_report(db, job.survey_response_id, ref)
                await db.commit()
        except Exception as exc:
            await self._record_failure(job, exc)
            return
        logger.info("Report job %s completed: %s", job.id, ref)

    async def _record_failure(self, job: _ClaimedJob, exc: Exception) -> None:
        message = str(exc) or type(exc).__name__
        try:
            async with self._session_factory() as db:
                status = await self._repo.mark_attempt_failed(db, job.id, message)
                await db.commit()
        except Exception:
            # The job stays in processing; the stale reclaim picks it up later
            logger.exception("Could not record failure of report job %s", job.id)
            return

        if status == JobStatus.PENDING.value:
            delay = self._retry_backoff * job.attempts
            logger.warning(
                "Report job %s attempt %d failed, retrying in %.1fs: %s",
                job.id, job.attempts, delay, message,
            )
            if delay > 0:
                await self._sleep(delay)
        else:
            logger.error(
                "Report job %s failed permanently after %d attempt(s): %s",
                job.id, job.attempts, message,
            )

    async def reclaim_stale(self, db: AsyncSession) -> int:
        """Release ``processing`` jobs older than ``stale_after``.

        Jobs with attempts left go back to ``pending``, the rest become
        ``failed`` with a timeout message.  The caller commits.
        """
        cutoff = utcnow() - timedelta(seconds=self._stale_after)
        return await self._repo.reclaim_stale(db, cutoff)

    # ==================================================================
    # Status
    # ==================================================================

    async def get_status(
        self,
        db: AsyncSession,
        job_id: str,
        *,
        user_id: str | None = None,
    ) -> JobStatusInfo | None:
        """Return the job's status, or ``None`` if unknown.

        When ``user_id`` is given, jobs for other users' responses are
        reported as unknown too.
        """
        try:
            pk = uuid.UUID(str(job_id))
        except ValueError:
            return None
        row = await self._repo.get_status_row(db, pk)
        if row is None:
            return None
        job, response_pdf_url, owner = row
        if user_id is not None and owner != user_id:
            return None
        return JobStatusInfo(
            id=str(job.id),
            status=str(getattr(job.status, "value", job.status)),
            attempts=job.attempts,
            max_attempts=job.max_attempts,
            error=job.error_message,
            created_at=job.created_at,
            completed_at=job.completed_at,
            artifact_ref=job.artifact_ref or response_pdf_url,
        )
