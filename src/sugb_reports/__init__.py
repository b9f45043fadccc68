"""sugb_reports — background PDF report pipeline.

Public API:
    ReportQueue          — durable, claim-guarded, retrying job queue
    ReportPublisher      — renders into an artifact store; self-healing fetch
    SurveyReportRenderer — ReportLab implementation of ReportRenderer
    LocalArtifactStore   — artifacts as files under one directory
    ReportStatusPoller   — cancellable wait for a job to finish
    ReportsClient        — httpx client for the report endpoints

Interfaces:
    ReportRenderer, ArtifactStore

Models & errors:
    ReportOptions, JobStatusInfo, ReportError, ReportNotFoundError,
    RenderError, ArtifactNotFoundError
"""

from sugb_reports.artifacts import LocalArtifactStore, ReportPublisher
from sugb_reports.client import ReportsClient
from sugb_reports.exceptions import (
    ArtifactNotFoundError,
    RenderError,
    ReportError,
    ReportNotFoundError,
)
from sugb_reports.interfaces import ArtifactStore, ReportRenderer
from sugb_reports.models import JobStatusInfo, ReportOptions
from sugb_reports.poller import ReportStatusPoller
from sugb_reports.queue import ReportQueue
from sugb_reports.renderer import SurveyReportRenderer

__all__ = [
    # Queue & publishing
    "LocalArtifactStore",
    "ReportPublisher",
    "ReportQueue",
    "SurveyReportRenderer",
    # Client side
    "ReportStatusPoller",
    "ReportsClient",
    # Interfaces
    "ArtifactStore",
    "ReportRenderer",
    # Models & errors
    "ArtifactNotFoundError",
    "JobStatusInfo",
    "RenderError",
    "ReportError",
    "ReportNotFoundError",
    "ReportOptions",
]
