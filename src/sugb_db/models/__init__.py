"""ORM models for sugb_db."""

from sugb_db.models.audit_log import AuditLog
from sugb_db.models.base import Base
from sugb_db.models.enums import AuditAction, JobStatus, JobType, SurveyStatus
from sugb_db.models.queue_job import QueueJob
from sugb_db.models.survey_response import SurveyResponse

__all__ = [
    "AuditAction",
    "AuditLog",
    "Base",
    "JobStatus",
    "JobType",
    "QueueJob",
    "SurveyResponse",
    "SurveyStatus",
]
