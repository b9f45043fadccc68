"""FormEngine — computes every UI-facing and gating fact about a survey.

Stateless engine pattern: each call takes the answer map (and, where
relevant, the active section index) and derives the result from the
schema.  No per-user state is kept on the engine, so one instance is
shared by every ``FormSession`` and by the server-side submit check.

Facts computed:
    visibility       — conditional show/hide rules (hide wins)
    errors           — one message per visible question, first failing rule
    section validity — no error among the section's visible questions
    progress         — answered / total over visible required questions
                       across ALL sections
    navigation lock  — furthest section reachable given prior validity
"""

from __future__ import annotations

import logging
import math
from typing import Any, Mapping

from sugb_forms.answers import answer_tokens, numeric_token
from sugb_forms.models.form import FormSnapshot, QuestionPayload, SectionSummary
from sugb_forms.models.schema import NUMERIC_TYPES, Question, Section, SurveySchema
from sugb_forms.validation import is_required_answered, validate_question

logger = logging.getLogger(__name__)


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up (not banker's rounding)."""
    return int(math.floor(value + 0.5))


class FormEngine:
    """Derives visibility, validation, progress and navigation from a schema.

    Args:
        schema: a validated :class:`SurveySchema`
    """

    def __init__(self, schema: SurveySchema) -> None:
        self._schema = schema
        # Global qid index — conditional logic references ids across sections
        self._questions: dict[str, Question] = {
            q.id: q for _, q in schema.iter_questions()
        }
        self._section_of: dict[str, int] = {
            q.id: idx for idx, q in schema.iter_questions()
        }

    # ==================================================================
    # Schema access
    # ==================================================================

    @property
    def schema(self) -> SurveySchema:
        return self._schema

    @property
    def section_count(self) -> int:
        return len(self._schema.sections)

    def section(self, index: int) -> Section:
        """Return the section at ``index``; raises ``IndexError`` when out of range."""
        if not 0 <= index < self.section_count:
            raise IndexError(f"section index out of range: {index}")
        return self._schema.sections[index]

    def get_question(self, qid: str) -> Question:
        """Look up a question by id; raises ``KeyError`` for unknown ids."""
        try:
            return self._questions[qid]
        except KeyError:
            raise KeyError(f"Unknown question: {qid}") from None

    def section_index_of(self, qid: str) -> int:
        return self._section_of[qid]

    # ==================================================================
    # Visibility
    # ==================================================================

    def is_visible(self, question: Question, answers: Mapping[str, Any]) -> bool:
        """Evaluate the question's conditional-visibility rule.

        No rule means always visible.  ``hide_when`` is checked first and
        wins over a matching ``show_when``.  Otherwise the question is
        visible iff the dependent answer matches any ``show_when`` value.
        """
        logic = question.conditional_logic
        if logic is None:
            return True

        dependency = self._questions.get(logic.depends_on)
        tokens = answer_tokens(
            dependency.type if dependency is not None else None,
            answers.get(logic.depends_on),
        )

        show_when, hide_when = logic.show_when, logic.hide_when
        if dependency is not None and dependency.type in NUMERIC_TYPES:
            show_when = [numeric_token(v) for v in show_when]
            hide_when = [numeric_token(v) for v in hide_when]

        if hide_when and tokens.intersection(hide_when):
            return False
        return bool(tokens.intersection(show_when))

    def visible_questions(self, section_index: int, answers: Mapping[str, Any]) -> list[Question]:
        """Questions of one section that are currently shown."""
        return [
            q for q in self.section(section_index).questions
            if self.is_visible(q, answers)
        ]

    # ==================================================================
    # Validation
    # ==================================================================

    def section_errors(self, section_index: int, answers: Mapping[str, Any]) -> dict[str, str]:
        """Validate every visible question in a section; hidden ones are skipped."""
        errors: dict[str, str] = {}
        for question in self.visible_questions(section_index, answers):
            message = validate_question(question, answers.get(question.id))
            if message:
                errors[question.id] = message
        return errors

    def is_section_valid(self, section_index: int, answers: Mapping[str, Any]) -> bool:
        return not self.section_errors(section_index, answers)

    def all_errors(self, answers: Mapping[str, Any]) -> dict[str, str]:
        """Errors across the whole survey, keyed by question id."""
        errors: dict[str, str] = {}
        for index in range(self.section_count):
            errors.update(self.section_errors(index, answers))
        return errors

    def invalid_sections(self, answers: Mapping[str, Any]) -> list[str]:
        """Ids of sections that currently fail validation, in order."""
        return [
            section.id
            for index, section in enumerate(self._schema.sections)
            if not self.is_section_valid(index, answers)
        ]

    def can_submit(self, answers: Mapping[str, Any]) -> bool:
        """True only when every section, visited or not, is valid."""
        return not self.invalid_sections(answers)

    # ==================================================================
    # Progress & navigation lock
    # ==================================================================

    def progress(self, answers: Mapping[str, Any]) -> int:
        """Whole-percent progress over visible required questions in all sections.

        Defined as 100 when the survey has no visible required question.
        """
        total = 0
        answered = 0
        for _, question in self._schema.iter_questions():
            if not question.is_required or not self.is_visible(question, answers):
                continue
            total += 1
            if is_required_answered(question, answers.get(question.id)):
                answered += 1
        if total == 0:
            return 100
        return round_half_up(100 * answered / total)

    def furthest_unlocked(self, answers: Mapping[str, Any]) -> int:
        """Largest section index ``i`` such that sections ``0..i-1`` are all valid."""
        for index in range(self.section_count - 1):
            if not self.is_section_valid(index, answers):
                return index
        return self.section_count - 1

    def can_navigate_to(self, target: int, current: int, answers: Mapping[str, Any]) -> bool:
        """Backward moves are always allowed; forward only up to the unlock point."""
        if not 0 <= target < self.section_count:
            return False
        if target <= current:
            return True
        return target <= self.furthest_unlocked(answers)

    # ==================================================================
    # Snapshot
    # ==================================================================

    def snapshot(
        self,
        answers: Mapping[str, Any],
        section_index: int = 0,
        completed_sections: set[str] | None = None,
    ) -> FormSnapshot:
        """Build the complete UI-facing view for the given section."""
        section = self.section(section_index)
        completed = completed_sections or set()
        errors = self.section_errors(section_index, answers)
        furthest = self.furthest_unlocked(answers)
        validity = [self.is_section_valid(i, answers) for i in range(self.section_count)]
        is_last = section_index == self.section_count - 1

        return FormSnapshot(
            current_section_index=section_index,
            section_id=section.id,
            section_name=section.name,
            questions=[
                self._to_payload(q, answers.get(q.id), errors.get(q.id))
                for q in self.visible_questions(section_index, answers)
            ],
            errors=errors,
            progress=self.progress(answers),
            furthest_unlocked=furthest,
            can_advance=validity[section_index] and not is_last,
            can_submit=all(validity),
            is_last_section=is_last,
            sections=[
                SectionSummary(
                    id=s.id,
                    name=s.name,
                    index=i,
                    is_valid=validity[i],
                    is_unlocked=i <= max(furthest, section_index),
                    is_completed=s.id in completed,
                )
                for i, s in enumerate(self._schema.sections)
            ],
        )

    @staticmethod
    def _to_payload(question: Question, value: Any, error: str | None) -> QuestionPayload:
        constraints = None
        if question.validation is not None:
            constraints = question.validation.model_dump(exclude_none=True, exclude={"message"}) or None
        return QuestionPayload(
            id=question.id,
            text=question.text,
            type=question.type.value,
            is_required=question.is_required,
            options=question.options,
            constraints=constraints,
            help_text=question.help_text,
            value=value,
            error=error,
        )
