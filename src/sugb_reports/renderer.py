"""SurveyReportRenderer — the shipped :class:`ReportRenderer`.

Loads the survey response through the repository in its own short-lived
session, extracts the report fields and draws the PDF in a worker thread
so the event loop stays responsive while ReportLab runs.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from sugb_db.repository import SurveyResponseRepository

from sugb_reports.exceptions import RenderError, ReportNotFoundError
from sugb_reports.interfaces import ReportRenderer
from sugb_reports.models import ReportOptions
from sugb_reports.pdf import build_report_data, build_report_pdf

logger = logging.getLogger(__name__)


class SurveyReportRenderer(ReportRenderer):
    """Renders the pay-equity PDF report for one survey response.

    Args:
        session_factory: async session factory used to load the response
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory
        self._repo = SurveyResponseRepository()

    async def render(self, survey_response_id: str, options: ReportOptions) -> bytes:
        try:
            pk = uuid.UUID(str(survey_response_id))
        except ValueError:
            raise ReportNotFoundError(f"Survey response not found: {survey_response_id}") from None

        async with self._session_factory() as db:
            row = await self._repo.get_by_id(db, pk)
            if row is None:
                raise ReportNotFoundError(f"Survey response not found: {survey_response_id}")
            responses = dict(row.responses or {})
            contact = row.user_id

        data = build_report_data(
            str(pk),
            responses,
            contact=contact,
            generated_at=datetime.now(timezone.utc),
        )
        try:
            pdf = await asyncio.to_thread(build_report_pdf, data, options)
        except Exception as exc:
            logger.exception("PDF rendering failed for %s", pk)
            raise RenderError(f"Failed to render report: {exc}") from exc

        logger.info("Rendered report for %s (%d bytes)", pk, len(pdf))
        return pdf
