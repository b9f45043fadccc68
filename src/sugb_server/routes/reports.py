"""Report endpoints — request a PDF, check job status, download it.

Generation is asynchronous: ``POST /reports`` enqueues a job and returns
its id at once.  Unless a separate worker owns the queue, a drain is
started as a background task after the response is sent.  Clients then
poll ``GET /reports/jobs/{job_id}`` until the job is terminal and fetch
the artifact from the returned ``artifact_ref``.
"""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends
from fastapi.responses import Response
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from sugb_db.models.enums import AuditAction
from sugb_db.repository import AuditLogRepository
from sugb_forms.drafts import DraftService
from sugb_reports.artifacts import ReportPublisher
from sugb_reports.constants import ARTIFACT_NAME_RE
from sugb_reports.exceptions import ArtifactNotFoundError
from sugb_reports.models import JobStatusInfo, ReportOptions
from sugb_reports.queue import ReportQueue

from sugb_server.config import ServerSettings
from sugb_server.dependencies import (
    get_db,
    get_draft_service,
    get_publisher,
    get_report_queue,
    get_settings,
    get_user_id,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reports", tags=["reports"])

_audit = AuditLogRepository()


# ------------------------------------------------------------------
# Request / response models
# ------------------------------------------------------------------

class ReportRequest(BaseModel):
    """Body for POST /reports."""
    survey_response_id: str
    options: ReportOptions = Field(default_factory=ReportOptions)


class ReportAccepted(BaseModel):
    message: str = "PDF generation started"
    job_id: str


# ------------------------------------------------------------------
# Background drain
# ------------------------------------------------------------------

async def drain_queue(queue: ReportQueue) -> None:
    """Run one drain; failures are logged, never raised into the server."""
    try:
        await queue.drain()
    except Exception:
        logger.exception("Background report drain failed")


# ------------------------------------------------------------------
# Endpoints
# ------------------------------------------------------------------

@router.post("", status_code=202)
async def request_report(
    body: ReportRequest,
    background: BackgroundTasks,
    user_id: str = Depends(get_user_id),
    db: AsyncSession = Depends(get_db),
    drafts: DraftService = Depends(get_draft_service),
    queue: ReportQueue = Depends(get_report_queue),
    settings: ServerSettings = Depends(get_settings),
) -> ReportAccepted:
    """Enqueue report generation for one of the caller's survey responses.

    Returns 404 if the response does not exist or belongs to someone else.
    """
    response = await drafts.get_owned_response(db, user_id, body.survey_response_id)
    job_id = await queue.enqueue(db, response.survey_response_id, body.options)
    await _audit.add_entry(
        db,
        user_id=user_id,
        action=AuditAction.REPORT_REQUESTED.value,
        resource_type="survey_response",
        resource_id=response.survey_response_id,
        details={"job_id": job_id, "options": body.options.model_dump()},
    )
    # The drain runs in other sessions and must see the job row
    await db.commit()

    if settings.drain_on_request:
        background.add_task(drain_queue, queue)
    return ReportAccepted(job_id=job_id)


@router.get("/jobs/{job_id}")
async def get_job_status(
    job_id: str,
    user_id: str = Depends(get_user_id),
    db: AsyncSession = Depends(get_db),
    queue: ReportQueue = Depends(get_report_queue),
) -> JobStatusInfo:
    """Return the job's status.  404 for unknown jobs and other users' jobs."""
    status = await queue.get_status(db, job_id, user_id=user_id)
    if status is None:
        raise ValueError(f"Job not found: {job_id}")
    return status


@router.get("/download/{filename}")
async def download_report(
    filename: str,
    user_id: str = Depends(get_user_id),
    db: AsyncSession = Depends(get_db),
    drafts: DraftService = Depends(get_draft_service),
    publisher: ReportPublisher = Depends(get_publisher),
) -> Response:
    """Stream a report PDF, regenerating it if the stored file is gone.

    400 for names that are not ``.pdf`` files, 404 for names outside the
    report naming scheme or reports of other users.
    """
    if not filename.lower().endswith(".pdf"):
        raise ValueError(f"Invalid artifact name: {filename!r}")
    match = ARTIFACT_NAME_RE.match(filename)
    if match is None:
        raise ArtifactNotFoundError(f"Artifact not found: {filename}")
    await drafts.get_owned_response(db, user_id, match.group(1))

    data = await publisher.fetch(filename)
    return Response(
        content=data,
        media_type="application/pdf",
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
            "Cache-Control": "private, max-age=0, no-cache",
        },
    )
