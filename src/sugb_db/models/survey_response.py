"""SurveyResponse ORM model — one row per survey attempt of a user.

The whole answer map lives in a single JSONB column keyed by question id,
in the raw shapes the form produced.  Hidden answers are kept: the form
engine decides what counts, storage never prunes.
"""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, Index, String, Text, text
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP, UUID
from sqlalchemy.orm import Mapped, mapped_column

from sugb_db.models.base import Base, utcnow
from sugb_db.models.enums import SurveyStatus


class SurveyResponse(Base):
    """A user's survey answers plus the report bookkeeping for them."""

    __tablename__ = "survey_responses"

    # --- Primary key ---
    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    # --- Identity ---
    # External user id supplied by the identity proxy
    user_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    organization_id: Mapped[str | None] = mapped_column(Text, nullable=True)

    # --- Survey content ---
    survey_version: Mapped[str] = mapped_column(
        String(20), nullable=False, default="1.0", server_default=text("'1.0'")
    )
    # {qid: raw answer value}
    responses: Mapped[dict] = mapped_column(
        JSONB,
        nullable=False,
        default=dict,
        server_default=text("'{}'::jsonb"),
    )

    # --- Lifecycle ---
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=SurveyStatus.DRAFT,
        index=True,
    )
    submitted_at: Mapped[datetime | None] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )

    # --- Report ---
    pdf_generated: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )
    # Download reference of the most recently published report
    pdf_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    # --- Timestamps ---
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('draft', 'in_progress', 'completed')",
            name="ck_survey_status",
        ),
        CheckConstraint(
            "status != 'completed' OR submitted_at IS NOT NULL",
            name="ck_completed_has_submitted_at",
        ),
        # Draft lookup: latest active response per user
        Index(
            "ix_active_user_response",
            "user_id",
            "created_at",
            postgresql_where=text("status IN ('draft', 'in_progress')"),
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<SurveyResponse(id={self.id!s}, user={self.user_id!r}, "
            f"status={self.status!r}, answers={len(self.responses or {})})>"
        )
