"""Create survey_responses, queue_jobs and audit_logs.

Revision ID: 20261012_initial
Revises:
Create Date: 2026-10-12
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, TIMESTAMP, UUID

# revision identifiers, used by Alembic.
revision = "20261012_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # --- survey_responses ---
    op.create_table(
        "survey_responses",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", sa.Text, nullable=False),
        sa.Column("organization_id", sa.Text, nullable=True),
        sa.Column("survey_version", sa.String(20), nullable=False, server_default=sa.text("'1.0'")),
        sa.Column("responses", JSONB, nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("submitted_at", TIMESTAMP(timezone=True), nullable=True),
        sa.Column("pdf_generated", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("pdf_url", sa.Text, nullable=True),
        sa.Column("created_at", TIMESTAMP(timezone=True), nullable=False),
        sa.Column("updated_at", TIMESTAMP(timezone=True), nullable=False),
        sa.CheckConstraint(
            "status IN ('draft', 'in_progress', 'completed')",
            name="ck_survey_status",
        ),
        sa.CheckConstraint(
            "status != 'completed' OR submitted_at IS NOT NULL",
            name="ck_completed_has_submitted_at",
        ),
    )
    op.create_index("ix_survey_responses_user_id", "survey_responses", ["user_id"])
    op.create_index("ix_survey_responses_status", "survey_responses", ["status"])
    op.create_index(
        "ix_active_user_response",
        "survey_responses",
        ["user_id", "created_at"],
        postgresql_where=sa.text("status IN ('draft', 'in_progress')"),
    )

    # --- queue_jobs ---
    op.create_table(
        "queue_jobs",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "survey_response_id",
            UUID(as_uuid=True),
            sa.ForeignKey("survey_responses.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("job_type", sa.String(40), nullable=False),
        sa.Column("payload", JSONB, nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("attempts", sa.SmallInteger, nullable=False),
        sa.Column("max_attempts", sa.SmallInteger, nullable=False),
        sa.Column("error_message", sa.Text, nullable=True),
        sa.Column("artifact_ref", sa.Text, nullable=True),
        sa.Column("created_at", TIMESTAMP(timezone=True), nullable=False),
        sa.Column("started_at", TIMESTAMP(timezone=True), nullable=True),
        sa.Column("completed_at", TIMESTAMP(timezone=True), nullable=True),
        sa.Column("updated_at", TIMESTAMP(timezone=True), nullable=False),
        sa.CheckConstraint(
            "status IN ('pending', 'processing', 'completed', 'failed')",
            name="ck_job_status",
        ),
        sa.CheckConstraint("attempts >= 0", name="ck_job_attempts_non_negative"),
        sa.CheckConstraint("max_attempts >= 1", name="ck_job_max_attempts_positive"),
        sa.CheckConstraint(
            "status != 'completed' OR artifact_ref IS NOT NULL",
            name="ck_completed_has_artifact",
        ),
    )
    op.create_index("ix_queue_jobs_survey_response_id", "queue_jobs", ["survey_response_id"])
    op.create_index(
        "ix_pending_jobs",
        "queue_jobs",
        ["job_type", "created_at"],
        postgresql_where=sa.text("status = 'pending'"),
    )
    op.create_index(
        "ix_processing_jobs",
        "queue_jobs",
        ["started_at"],
        postgresql_where=sa.text("status = 'processing'"),
    )

    # --- audit_logs ---
    op.create_table(
        "audit_logs",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", sa.Text, nullable=False),
        sa.Column("action", sa.String(40), nullable=False),
        sa.Column("resource_type", sa.String(40), nullable=False),
        sa.Column("resource_id", sa.Text, nullable=True),
        sa.Column("details", JSONB, nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column("created_at", TIMESTAMP(timezone=True), nullable=False),
    )
    op.create_index("ix_audit_user_created", "audit_logs", ["user_id", "created_at"])


def downgrade() -> None:
    op.drop_index("ix_audit_user_created", table_name="audit_logs")
    op.drop_table("audit_logs")

    op.drop_index("ix_processing_jobs", table_name="queue_jobs")
    op.drop_index("ix_pending_jobs", table_name="queue_jobs")
    op.drop_index("ix_queue_jobs_survey_response_id", table_name="queue_jobs")
    op.drop_table("queue_jobs")

    op.drop_index("ix_active_user_response", table_name="survey_responses")
    op.drop_index("ix_survey_responses_status", table_name="survey_responses")
    op.drop_index("ix_survey_responses_user_id", table_name="survey_responses")
    op.drop_table("survey_responses")
