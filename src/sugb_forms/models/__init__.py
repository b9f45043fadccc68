"""Public model re-exports for sugb_forms.

Consumers should import from ``sugb_forms.models`` rather than reaching
into sub-modules directly.
"""

# --- Schema ---
from sugb_forms.models.schema import (
    NUMERIC_TYPES,
    TEXT_TYPES,
    ConditionalLogic,
    Question,
    QuestionType,
    Section,
    SurveySchema,
    ValidationRule,
)

# --- Form state ---
from sugb_forms.models.form import (
    FormSnapshot,
    QuestionPayload,
    SectionSummary,
    SurveyResponseInfo,
)

__all__ = [
    # Schema
    "NUMERIC_TYPES",
    "TEXT_TYPES",
    "ConditionalLogic",
    "Question",
    "QuestionType",
    "Section",
    "SurveySchema",
    "ValidationRule",
    # Form state
    "FormSnapshot",
    "QuestionPayload",
    "SectionSummary",
    "SurveyResponseInfo",
]
