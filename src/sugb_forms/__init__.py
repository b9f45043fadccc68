"""sugb_forms — survey Form Engine SDK.

Public API:
    FormEngine      — stateless visibility / validation / progress / navigation
    FormSession     — stateful form with debounced autosave and submission
    AutosaveTimer   — single pending debounce timer driving the autosave
    SchemaStore     — loads the survey schema from YAML or JSON
    validate_question, is_required_answered — per-question rules
    coerce_answer, answer_tokens            — typed view of raw answers

Models:
    SurveySchema, Section, Question, QuestionType, ConditionalLogic,
    ValidationRule, FormSnapshot, QuestionPayload, SectionSummary,
    SurveyResponseInfo, YesNoAnswer, SelectionWithExplanation

Draft persistence lives in ``sugb_forms.drafts`` and is imported
explicitly, since it pulls in the database layer.
"""

from sugb_forms.answers import (
    SelectionWithExplanation,
    YesNoAnswer,
    answer_tokens,
    coerce_answer,
    parse_number,
)
from sugb_forms.autosave import AutosaveTimer
from sugb_forms.engine import FormEngine
from sugb_forms.models import (
    ConditionalLogic,
    FormSnapshot,
    Question,
    QuestionPayload,
    QuestionType,
    Section,
    SectionSummary,
    SurveyResponseInfo,
    SurveySchema,
    ValidationRule,
)
from sugb_forms.schema_store import SchemaStore
from sugb_forms.session import FormSession
from sugb_forms.validation import is_required_answered, validate_question

__all__ = [
    # Engine, session & store
    "AutosaveTimer",
    "FormEngine",
    "FormSession",
    "SchemaStore",
    # Rules
    "answer_tokens",
    "coerce_answer",
    "is_required_answered",
    "parse_number",
    "validate_question",
    # Models
    "ConditionalLogic",
    "FormSnapshot",
    "Question",
    "QuestionPayload",
    "QuestionType",
    "Section",
    "SectionSummary",
    "SelectionWithExplanation",
    "SurveyResponseInfo",
    "SurveySchema",
    "ValidationRule",
    "YesNoAnswer",
]
