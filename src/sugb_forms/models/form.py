"""Form state models — the contract between the engine and API callers.

These models describe what the UI needs to render the active section and
its navigation controls.  They are decoupled from the ORM models in
``sugb_db`` so API consumers never see database internals.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel


class QuestionPayload(BaseModel):
    """Flattened question for API consumers."""

    id: str
    text: str
    type: str
    is_required: bool
    options: list[str] | None = None
    # {min, max, pattern} when the question carries a validation rule
    constraints: dict | None = None
    help_text: str | None = None
    value: Any = None
    error: str | None = None


class SectionSummary(BaseModel):
    """Per-section status for the section navigator."""

    id: str
    name: str
    index: int
    is_valid: bool
    is_unlocked: bool
    is_completed: bool


class FormSnapshot(BaseModel):
    """Everything the UI needs at one point in time.

    ``progress`` is a whole percentage computed over all sections, not
    only the visited ones.
    """

    current_section_index: int
    section_id: str
    section_name: str
    questions: list[QuestionPayload]
    errors: dict[str, str]
    progress: int
    furthest_unlocked: int
    can_advance: bool
    can_submit: bool
    is_last_section: bool
    sections: list[SectionSummary]


class SurveyResponseInfo(BaseModel):
    """Public view of a persisted survey response (draft or submitted).

    Maps from the ORM ``SurveyResponse`` model but exposes only what
    external callers need.
    """

    survey_response_id: str
    user_id: str
    status: str
    survey_version: str
    responses: dict[str, Any]
    submitted_at: datetime | None = None
    pdf_url: str | None = None
    created_at: datetime
    updated_at: datetime
