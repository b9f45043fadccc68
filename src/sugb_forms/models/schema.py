"""Survey schema models — the declarative description of the questionnaire.

A schema is a list of ordered ``Section`` objects, each holding ordered
``Question`` objects.  Schemas are loaded once (see ``SchemaStore``) and
are read-only at runtime.

Keys are accepted in snake_case (YAML convention) and in the camelCase
form used by the JSON schema format (``isRequired``, ``dependsOn``,
``showWhen``, ...), so both files load into the same models.

Invariants enforced on construction:
  - section ids are unique
  - question ids are unique across the *whole* schema, because
    conditional logic references them globally
  - every ``depends_on`` points at an existing question
  - sections and questions are sorted ascending by ``order``
"""

from __future__ import annotations

import enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class QuestionType(str, enum.Enum):
    """Supported question types; each maps to one input widget."""

    TEXT = "TEXT"
    TEXTAREA = "TEXTAREA"
    NUMBER = "NUMBER"
    MONEY = "MONEY"
    PERCENT = "PERCENT"
    SELECT = "SELECT"
    MULTISELECT = "MULTISELECT"
    MULTISELECT_WITH_EXPLANATION = "MULTISELECT_WITH_EXPLANATION"
    YES_NO_WITH_EXPLANATION = "YES_NO_WITH_EXPLANATION"
    CHECKBOX = "CHECKBOX"
    RADIO = "RADIO"
    DATE = "DATE"
    FILE = "FILE"


NUMERIC_TYPES: frozenset[QuestionType] = frozenset(
    {QuestionType.NUMBER, QuestionType.MONEY, QuestionType.PERCENT}
)
TEXT_TYPES: frozenset[QuestionType] = frozenset({QuestionType.TEXT, QuestionType.TEXTAREA})


class _SchemaModel(BaseModel):
    """Base config: accept both field names and camelCase aliases."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class ValidationRule(_SchemaModel):
    """Structural constraints for a question.

    ``min``/``max`` are numeric bounds for NUMBER/MONEY/PERCENT and
    character-length bounds for TEXT/TEXTAREA.
    """

    min: Optional[float] = None
    max: Optional[float] = None
    pattern: Optional[str] = None
    message: Optional[str] = None


def _as_list(value: Any) -> list:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


class ConditionalLogic(_SchemaModel):
    """Visibility rule: show the question depending on another answer.

    ``show_when`` and ``hide_when`` accept a single value or a list; both
    are normalised to lists of strings.  ``hide_when`` takes precedence.
    """

    depends_on: str = Field(alias="dependsOn")
    show_when: List[str] = Field(default_factory=list, alias="showWhen")
    hide_when: List[str] = Field(default_factory=list, alias="hideWhen")

    @field_validator("show_when", "hide_when", mode="before")
    @classmethod
    def _normalise(cls, value: Any) -> list[str]:
        return [str(v) for v in _as_list(value)]


class Question(_SchemaModel):
    """A single survey question."""

    id: str
    text: str
    type: QuestionType
    order: int = 0
    is_required: bool = Field(default=False, alias="isRequired")
    validation: Optional[ValidationRule] = None
    options: Optional[List[str]] = None
    conditional_logic: Optional[ConditionalLogic] = Field(default=None, alias="conditionalLogic")
    help_text: Optional[str] = Field(default=None, alias="helpText")
    # Key into third-party organisation data used to prefill the answer
    prefill_mapping: Optional[str] = Field(default=None, alias="prefillMapping")


class Section(_SchemaModel):
    """An ordered group of questions presented together."""

    id: str
    name: str
    order: int = 0
    is_required: bool = Field(default=True, alias="isRequired")
    questions: List[Question] = Field(default_factory=list)

    @field_validator("questions")
    @classmethod
    def _sort_questions(cls, questions: list[Question]) -> list[Question]:
        return sorted(questions, key=lambda q: q.order)


class SurveySchema(_SchemaModel):
    """The complete survey: sections visited in ascending ``order``."""

    version: str = "1.0"
    sections: List[Section]

    @field_validator("sections")
    @classmethod
    def _sort_sections(cls, sections: list[Section]) -> list[Section]:
        return sorted(sections, key=lambda s: s.order)

    @model_validator(mode="after")
    def _chk(self):
        if not self.sections:
            raise ValueError("schema must contain at least one section")

        section_ids: set[str] = set()
        question_ids: set[str] = set()
        for section in self.sections:
            if section.id in section_ids:
                raise ValueError(f"duplicate section id: {section.id}")
            section_ids.add(section.id)
            for question in section.questions:
                if question.id in question_ids:
                    raise ValueError(f"duplicate question id: {question.id}")
                question_ids.add(question.id)

        for section in self.sections:
            for question in section.questions:
                logic = question.conditional_logic
                if logic is not None and logic.depends_on not in question_ids:
                    raise ValueError(
                        f"question {question.id} depends on unknown question {logic.depends_on}"
                    )
        return self

    def iter_questions(self):
        """Yield ``(section_index, question)`` pairs in display order."""
        for index, section in enumerate(self.sections):
            for question in section.questions:
                yield index, question

