"""Admin endpoints — operate the report queue by hand.

Protected by the ``ADMIN_API_KEY`` setting.  Every request must include
an ``X-Admin-Key`` header whose value matches the configured key.
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from sugb_reports.queue import ReportQueue

from sugb_server.dependencies import get_db, get_report_queue, require_admin_key

router = APIRouter(prefix="/admin", tags=["admin"])


class QueueOpResult(BaseModel):
    """Response body for queue operations."""
    affected_jobs: int
    action: str


@router.post("/reports/drain")
async def drain_reports(
    queue: ReportQueue = Depends(get_report_queue),
    _admin: str = Depends(require_admin_key),
) -> QueueOpResult:
    """Run a drain now and wait for it; returns the number of job attempts."""
    processed = await queue.drain()
    return QueueOpResult(affected_jobs=processed, action="drain")


@router.post("/reports/reclaim")
async def reclaim_reports(
    db: AsyncSession = Depends(get_db),
    queue: ReportQueue = Depends(get_report_queue),
    _admin: str = Depends(require_admin_key),
) -> QueueOpResult:
    """Release report jobs stuck in ``processing`` past the stale threshold."""
    reclaimed = await queue.reclaim_stale(db)
    return QueueOpResult(affected_jobs=reclaimed, action="reclaim_stale")
