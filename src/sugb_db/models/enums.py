"""Database-level enumerations for survey responses and queue jobs."""

import enum


class SurveyStatus(str, enum.Enum):
    """Lifecycle states for a survey response.

    Transitions:
        draft -> in_progress     (first autosave with at least one answer)
        in_progress -> completed (final save with ``is_complete=True``)
    """

    DRAFT = "draft"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class JobStatus(str, enum.Enum):
    """Lifecycle states for a background queue job.

    Transitions:
        pending -> processing     (claimed by a drain)
        processing -> completed   (artifact published)
        processing -> pending     (attempt failed, attempts remain)
        processing -> failed      (attempt failed, attempts exhausted)
    """

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class JobType(str, enum.Enum):
    """Kinds of queue job.  Only PDF reports are produced today."""

    PDF_GENERATION = "pdf_generation"


class AuditAction(str, enum.Enum):
    """Actions recorded in the audit log."""

    SURVEY_SAVED = "survey_saved"
    SURVEY_SUBMITTED = "survey_submitted"
    REPORT_REQUESTED = "report_requested"
