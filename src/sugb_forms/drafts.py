"""DraftService — server-side persistence for the form's save callback.

Stateless like :class:`FormEngine`: each call loads the user's active
response, applies the change and returns a :class:`SurveyResponseInfo`.
The caller passes an ``AsyncSession`` and owns the commit.

A user has at most one active (draft / in_progress) response; saving
updates it in place, so repeated autosaves of the same answers are
idempotent.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from sugb_db.models.enums import AuditAction
from sugb_db.models.survey_response import SurveyResponse
from sugb_db.repository import AuditLogRepository, SurveyResponseRepository

from sugb_forms.engine import FormEngine
from sugb_forms.models.form import SurveyResponseInfo

logger = logging.getLogger(__name__)


class DraftService:
    """Load and upsert survey drafts, and finalise submissions.

    Args:
        engine: the :class:`FormEngine` used to gate final submission
    """

    def __init__(self, engine: FormEngine) -> None:
        self._engine = engine
        self._repo = SurveyResponseRepository()
        self._audit = AuditLogRepository()

    @property
    def engine(self) -> FormEngine:
        return self._engine

    # ==================================================================
    # Read
    # ==================================================================

    async def get_draft(
        self, db: AsyncSession, user_id: str
    ) -> SurveyResponseInfo | None:
        """Return the user's active draft, or ``None``."""
        row = await self._repo.get_active_draft(db, user_id)
        if row is None:
            return None
        return self._to_info(row)

    async def get_owned_response(
        self, db: AsyncSession, user_id: str, survey_response_id: str
    ) -> SurveyResponseInfo:
        """Load a response that belongs to ``user_id``.

        Raises ``ValueError`` (mapped to 404) when the id is malformed,
        unknown, or owned by someone else; the three cases are not
        distinguished so ids cannot be probed.
        """
        try:
            pk = uuid.UUID(str(survey_response_id))
        except ValueError:
            raise ValueError(f"Survey response not found: {survey_response_id}") from None
        row = await self._repo.get_by_id(db, pk)
        if row is None or row.user_id != user_id:
            raise ValueError(f"Survey response not found: {survey_response_id}")
        return self._to_info(row)

    # ==================================================================
    # Write
    # ==================================================================

    async def save_draft(
        self,
        db: AsyncSession,
        *,
        user_id: str,
        responses: dict[str, Any],
        is_complete: bool = False,
        survey_version: str | None = None,
        organization_id: str | None = None,
    ) -> SurveyResponseInfo:
        """Upsert the user's active draft; submit it when ``is_complete``.

        Raises ``ValueError`` for answers to unknown questions, and for a
        final submission while any section is still invalid.
        """
        unknown = sorted(qid for qid in responses if not self._has_question(qid))
        if unknown:
            raise ValueError(f"Unknown question ids: {', '.join(unknown)}")

        if is_complete:
            invalid = self._engine.invalid_sections(responses)
            if invalid:
                raise ValueError(f"Survey incomplete: {', '.join(invalid)}")

        row = await self._repo.get_active_draft(db, user_id)
        if row is None:
            row = await self._repo.create_response(
                db,
                user_id=user_id,
                responses=responses,
                survey_version=survey_version or self._engine.schema.version,
                organization_id=organization_id,
            )
            logger.info("Created survey draft %s for user %s", row.id, user_id)
        else:
            row = await self._repo.update_responses(
                db, row, responses, organization_id=organization_id,
            )

        if is_complete:
            row = await self._repo.mark_submitted(db, row)
            action = AuditAction.SURVEY_SUBMITTED
            logger.info("Survey %s submitted by user %s", row.id, user_id)
        else:
            action = AuditAction.SURVEY_SAVED

        await self._audit.add_entry(
            db,
            user_id=user_id,
            action=action.value,
            resource_type="survey_response",
            resource_id=str(row.id),
            details={
                "answered": len(responses),
                "progress": self._engine.progress(responses),
            },
        )
        return self._to_info(row)

    # ==================================================================
    # Helpers
    # ==================================================================

    def _has_question(self, qid: str) -> bool:
        try:
            self._engine.get_question(qid)
        except KeyError:
            return False
        return True

    @staticmethod
    def _to_info(row: SurveyResponse) -> SurveyResponseInfo:
        """Convert an ORM row to the public :class:`SurveyResponseInfo`."""
        return SurveyResponseInfo(
            survey_response_id=str(row.id),
            user_id=row.user_id,
            status=str(getattr(row.status, "value", row.status)),
            survey_version=row.survey_version,
            responses=dict(row.responses or {}),
            submitted_at=row.submitted_at,
            pdf_url=row.pdf_url,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )
