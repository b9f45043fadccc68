"""Async CRUD repositories for survey responses, queue jobs and audit logs.

All public methods accept an ``AsyncSession`` so the caller controls
transaction boundaries.  Methods ``flush()`` but never ``commit()``; the
report queue is the one caller that commits after every step, because a
claim must be visible to other workers before the job is processed.

The queue methods are written as single conditional UPDATE statements so
that the state checks and the writes happen atomically inside PostgreSQL.
"""

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import case, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from sugb_db.models.audit_log import AuditLog
from sugb_db.models.base import utcnow
from sugb_db.models.enums import JobStatus, JobType, SurveyStatus
from sugb_db.models.queue_job import QueueJob
from sugb_db.models.survey_response import SurveyResponse

_ACTIVE_STATUSES = [SurveyStatus.DRAFT.value, SurveyStatus.IN_PROGRESS.value]

TIMED_OUT_MESSAGE = "Processing timed out"


class SurveyResponseRepository:
    """Async read/write operations on the ``survey_responses`` table."""

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    async def get_by_id(
        self, db: AsyncSession, response_id: uuid.UUID
    ) -> SurveyResponse | None:
        """Fetch a response by its primary-key UUID."""
        return await db.get(SurveyResponse, response_id)

    async def get_active_draft(
        self, db: AsyncSession, user_id: str
    ) -> SurveyResponse | None:
        """Return the user's latest ``draft``/``in_progress`` response, if any."""
        stmt = (
            select(SurveyResponse)
            .where(
                SurveyResponse.user_id == user_id,
                SurveyResponse.status.in_(_ACTIVE_STATUSES),
            )
            .order_by(SurveyResponse.created_at.desc())
            .limit(1)
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    async def create_response(
        self,
        db: AsyncSession,
        *,
        user_id: str,
        responses: dict[str, Any],
        survey_version: str = "1.0",
        organization_id: str | None = None,
    ) -> SurveyResponse:
        """Insert a new draft row and return it."""
        row = SurveyResponse(
            user_id=user_id,
            organization_id=organization_id,
            survey_version=survey_version,
            responses=dict(responses),
            status=SurveyStatus.IN_PROGRESS.value if responses else SurveyStatus.DRAFT.value,
        )
        db.add(row)
        await db.flush()  # Populate id and timestamps
        return row

    async def update_responses(
        self,
        db: AsyncSession,
        row: SurveyResponse,
        responses: dict[str, Any],
        *,
        organization_id: str | None = None,
    ) -> SurveyResponse:
        """Replace the stored answer map (idempotent upsert of a draft).

        The whole map is written, not merged: the client always sends the
        complete answer map it holds.
        """
        row.responses = dict(responses)
        if organization_id is not None:
            row.organization_id = organization_id
        if row.status == SurveyStatus.DRAFT.value and responses:
            row.status = SurveyStatus.IN_PROGRESS.value
        row.updated_at = utcnow()
        await db.flush()
        return row

    async def mark_submitted(
        self, db: AsyncSession, row: SurveyResponse
    ) -> SurveyResponse:
        """Transition a response to ``completed``.

        The CHECK constraint ``ck_completed_has_submitted_at`` enforces
        that ``submitted_at`` is set together with the status.
        """
        now = utcnow()
        row.status = SurveyStatus.COMPLETED.value
        row.submitted_at = now
        row.updated_at = now
        await db.flush()
        return row

    async def record_report(
        self, db: AsyncSession, response_id: uuid.UUID, artifact_ref: str
    ) -> bool:
        """Store the latest report reference on the response.

        Returns ``False`` when the response no longer exists.
        """
        stmt = (
            update(SurveyResponse)
            .where(SurveyResponse.id == response_id)
            .values(pdf_generated=True, pdf_url=artifact_ref, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        return result.rowcount == 1


class QueueJobRepository:
    """Async operations on the ``queue_jobs`` table."""

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    async def create_job(
        self,
        db: AsyncSession,
        *,
        survey_response_id: uuid.UUID,
        payload: dict[str, Any],
        max_attempts: int = 3,
        job_type: JobType = JobType.PDF_GENERATION,
    ) -> QueueJob:
        """Insert a ``pending`` job with zero attempts and return it."""
        job = QueueJob(
            id=uuid.uuid4(),
            survey_response_id=survey_response_id,
            job_type=job_type.value,
            payload=payload,
            status=JobStatus.PENDING.value,
            attempts=0,
            max_attempts=max_attempts,
        )
        db.add(job)
        await db.flush()
        return job

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    async def get_by_id(self, db: AsyncSession, job_id: uuid.UUID) -> QueueJob | None:
        return await db.get(QueueJob, job_id)

    async def find_next_pending(
        self, db: AsyncSession, job_type: JobType = JobType.PDF_GENERATION
    ) -> QueueJob | None:
        """Return the oldest pending job that still has attempts left."""
        stmt = (
            select(QueueJob)
            .where(
                QueueJob.job_type == job_type.value,
                QueueJob.status == JobStatus.PENDING.value,
                QueueJob.attempts < QueueJob.max_attempts,
            )
            .order_by(QueueJob.created_at.asc())
            .limit(1)
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_status_row(
        self, db: AsyncSession, job_id: uuid.UUID
    ) -> tuple[QueueJob, str | None, str | None] | None:
        """Return ``(job, response_pdf_url, response_owner)`` or ``None``.

        The response columns are ``None`` when the response row is gone.
        """
        stmt = (
            select(QueueJob, SurveyResponse.pdf_url, SurveyResponse.user_id)
            .outerjoin(SurveyResponse, SurveyResponse.id == QueueJob.survey_response_id)
            .where(QueueJob.id == job_id)
        )
        result = await db.execute(stmt)
        row = result.first()
        if row is None:
            return None
        return row[0], row[1], row[2]

    # ------------------------------------------------------------------
    # State transitions
    # ------------------------------------------------------------------

    async def claim(self, db: AsyncSession, job_id: uuid.UUID) -> bool:
        """Atomically move one job ``pending -> processing``.

        The WHERE clause re-checks the status, so of several concurrent
        claimers exactly one sees ``rowcount == 1``.
        """
        now = utcnow()
        stmt = (
            update(QueueJob)
            .where(
                QueueJob.id == job_id,
                QueueJob.status == JobStatus.PENDING.value,
                QueueJob.attempts < QueueJob.max_attempts,
            )
            .values(
                status=JobStatus.PROCESSING.value,
                attempts=QueueJob.attempts + 1,
                started_at=now,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        return result.rowcount == 1

    async def mark_completed(
        self, db: AsyncSession, job_id: uuid.UUID, artifact_ref: str
    ) -> bool:
        """``processing -> completed`` with the artifact reference."""
        now = utcnow()
        stmt = (
            update(QueueJob)
            .where(
                QueueJob.id == job_id,
                QueueJob.status == JobStatus.PROCESSING.value,
            )
            .values(
                status=JobStatus.COMPLETED.value,
                artifact_ref=artifact_ref,
                completed_at=now,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        return result.rowcount == 1

    async def mark_attempt_failed(
        self, db: AsyncSession, job_id: uuid.UUID, error: str
    ) -> str | None:
        """Record a failed attempt and return the job's new status.

        The job goes back to ``pending`` while ``attempts < max_attempts``
        and becomes ``failed`` otherwise; the decision is made in SQL from
        the row's own counters.  Returns ``None`` if the job was no longer
        in ``processing``.
        """
        now = utcnow()
        has_attempts_left = QueueJob.attempts < QueueJob.max_attempts
        stmt = (
            update(QueueJob)
            .where(
                QueueJob.id == job_id,
                QueueJob.status == JobStatus.PROCESSING.value,
            )
            .values(
                status=case(
                    (has_attempts_left, JobStatus.PENDING.value),
                    else_=JobStatus.FAILED.value,
                ),
                completed_at=case((has_attempts_left, None), else_=now),
                error_message=error,
                updated_at=now,
            )
            .returning(QueueJob.status)
            .execution_options(synchronize_session=False)
        )
        result = await db.execute(stmt)
        return result.scalar_one_or_none()

    async def reclaim_stale(self, db: AsyncSession, cutoff: datetime) -> int:
        """Release jobs stuck in ``processing`` since before ``cutoff``.

        Jobs with attempts left return to ``pending``; the rest are failed
        with a timeout message.  Returns the number of rows touched.
        """
        now = utcnow()
        stale = (
            QueueJob.status == JobStatus.PROCESSING.value,
            QueueJob.started_at < cutoff,
        )
        requeue = (
            update(QueueJob)
            .where(*stale, QueueJob.attempts < QueueJob.max_attempts)
            .values(status=JobStatus.PENDING.value, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        give_up = (
            update(QueueJob)
            .where(*stale, QueueJob.attempts >= QueueJob.max_attempts)
            .values(
                status=JobStatus.FAILED.value,
                error_message=TIMED_OUT_MESSAGE,
                completed_at=now,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        requeued = (await db.execute(requeue)).rowcount
        failed = (await db.execute(give_up)).rowcount
        return requeued + failed


class AuditLogRepository:
    """Append-only writes to ``audit_logs``."""

    async def add_entry(
        self,
        db: AsyncSession,
        *,
        user_id: str,
        action: str,
        resource_type: str,
        resource_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> AuditLog:
        entry = AuditLog(
            user_id=user_id,
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            details=details or {},
        )
        db.add(entry)
        await db.flush()
        return entry
