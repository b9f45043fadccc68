"""Survey endpoints — schema, draft load and draft save/submit.

All draft endpoints require the ``X-User-ID`` header.  The form runs
client-side; these endpoints are the persistence side of its save and
submit callbacks, and return the engine's view of the saved answers so
clients without a local engine can render progress and errors.
"""

from typing import Any

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from sugb_forms.drafts import DraftService
from sugb_forms.engine import FormEngine
from sugb_forms.models.form import FormSnapshot, SurveyResponseInfo
from sugb_forms.models.schema import SurveySchema
from sugb_forms.schema_store import SchemaStore

from sugb_server.dependencies import (
    get_db,
    get_draft_service,
    get_form_engine,
    get_schema_store,
    get_user_id,
)

router = APIRouter(prefix="/survey", tags=["survey"])


# ------------------------------------------------------------------
# Request / response models
# ------------------------------------------------------------------

class SaveDraftRequest(BaseModel):
    """Body for POST /survey/draft — the complete answer map."""
    responses: dict[str, Any] = Field(default_factory=dict)
    is_complete: bool = False
    survey_version: str | None = None
    organization_id: str | None = None


class DraftView(BaseModel):
    """Active draft (if any) plus the form state computed from it."""
    draft: SurveyResponseInfo | None
    form: FormSnapshot


class SaveDraftResult(BaseModel):
    survey_response: SurveyResponseInfo
    progress: int
    can_submit: bool
    errors: dict[str, str]


# ------------------------------------------------------------------
# Endpoints
# ------------------------------------------------------------------

@router.get("/schema")
async def get_schema(
    store: SchemaStore = Depends(get_schema_store),
) -> SurveySchema:
    """Return the loaded survey schema."""
    return store.schema


@router.get("/draft")
async def get_draft(
    section_index: int = Query(0, ge=0),
    user_id: str = Depends(get_user_id),
    db: AsyncSession = Depends(get_db),
    drafts: DraftService = Depends(get_draft_service),
    engine: FormEngine = Depends(get_form_engine),
) -> DraftView:
    """Return the user's active draft and the form snapshot for one section.

    A user without a draft gets ``draft: null`` and an empty form.
    """
    if section_index >= engine.section_count:
        raise ValueError(f"Section index out of range: {section_index}")
    draft = await drafts.get_draft(db, user_id)
    answers = draft.responses if draft is not None else {}
    return DraftView(draft=draft, form=engine.snapshot(answers, section_index))


@router.post("/draft")
async def save_draft(
    body: SaveDraftRequest,
    user_id: str = Depends(get_user_id),
    db: AsyncSession = Depends(get_db),
    drafts: DraftService = Depends(get_draft_service),
    engine: FormEngine = Depends(get_form_engine),
) -> SaveDraftResult:
    """Upsert the active draft; ``is_complete`` validates and submits it.

    Raises 422 when submitting an incomplete survey and 400 for answers
    to unknown questions.
    """
    info = await drafts.save_draft(
        db,
        user_id=user_id,
        responses=body.responses,
        is_complete=body.is_complete,
        survey_version=body.survey_version,
        organization_id=body.organization_id,
    )
    return SaveDraftResult(
        survey_response=info,
        progress=engine.progress(info.responses),
        can_submit=engine.can_submit(info.responses),
        errors=engine.all_errors(info.responses),
    )
