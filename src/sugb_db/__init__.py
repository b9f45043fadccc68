"""sugb_db — PostgreSQL persistence for survey responses and report jobs.

This package provides the ORM models, the async engine factory, and the
repositories used by the draft service, the report queue and the API.
"""

from sugb_db.engine import dispose_engine, get_engine, get_session_factory, session_scope
from sugb_db.models import (
    AuditAction,
    AuditLog,
    JobStatus,
    JobType,
    QueueJob,
    SurveyResponse,
    SurveyStatus,
)
from sugb_db.repository import (
    AuditLogRepository,
    QueueJobRepository,
    SurveyResponseRepository,
)

__all__ = [
    "AuditAction",
    "AuditLog",
    "AuditLogRepository",
    "JobStatus",
    "JobType",
    "QueueJob",
    "QueueJobRepository",
    "SurveyResponse",
    "SurveyResponseRepository",
    "SurveyStatus",
    "dispose_engine",
    "get_engine",
    "get_session_factory",
    "session_scope",
]
