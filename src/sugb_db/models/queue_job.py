"""QueueJob ORM model — durable record of one background job.

The table doubles as the queue: workers select the oldest ``pending`` row
and claim it with a conditional UPDATE whose WHERE clause re-checks
``status = 'pending'``.  Only one concurrent claimer can win that update.
"""

import uuid
from datetime import datetime

from sqlalchemy import (
    CheckConstraint,
    ForeignKey,
    Index,
    SmallInteger,
    String,
    Text,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP, UUID
from sqlalchemy.orm import Mapped, mapped_column

from sugb_db.models.base import Base, utcnow
from sugb_db.models.enums import JobStatus, JobType


class QueueJob(Base):
    """One report-generation job for one survey response."""

    __tablename__ = "queue_jobs"

    # --- Primary key (generated at enqueue time) ---
    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    # --- Target ---
    survey_response_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("survey_responses.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    job_type: Mapped[str] = mapped_column(
        String(40), nullable=False, default=JobType.PDF_GENERATION
    )
    # {"options": {"format": "A4", "orientation": "portrait", ...}}
    payload: Mapped[dict] = mapped_column(
        JSONB,
        nullable=False,
        default=dict,
        server_default=text("'{}'::jsonb"),
    )

    # --- Lifecycle ---
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=JobStatus.PENDING
    )
    attempts: Mapped[int] = mapped_column(SmallInteger, nullable=False, default=0)
    max_attempts: Mapped[int] = mapped_column(SmallInteger, nullable=False, default=3)
    # Last failure message; kept after a later success for diagnostics
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Download reference, written once on completion
    artifact_ref: Mapped[str | None] = mapped_column(Text, nullable=True)

    # --- Timestamps ---
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=utcnow
    )
    started_at: Mapped[datetime | None] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'processing', 'completed', 'failed')",
            name="ck_job_status",
        ),
        CheckConstraint("attempts >= 0", name="ck_job_attempts_non_negative"),
        CheckConstraint("max_attempts >= 1", name="ck_job_max_attempts_positive"),
        CheckConstraint(
            "status != 'completed' OR artifact_ref IS NOT NULL",
            name="ck_completed_has_artifact",
        ),
        # Hot path for drain: oldest pending job of a type
        Index(
            "ix_pending_jobs",
            "job_type",
            "created_at",
            postgresql_where=text("status = 'pending'"),
        ),
        # Stale-claim sweep
        Index(
            "ix_processing_jobs",
            "started_at",
            postgresql_where=text("status = 'processing'"),
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<QueueJob(id={self.id!s}, type={self.job_type!r}, "
            f"status={self.status!r}, attempts={self.attempts}/{self.max_attempts})>"
        )
