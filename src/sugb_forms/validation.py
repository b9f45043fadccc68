"""Per-question validation rules.

Two checks apply to every *visible* question:

  - :func:`is_required_answered` — the type-specific "has a usable answer"
    rule for required questions.  Non-required questions always pass.
  - :func:`validate_question` — produces at most one human-readable error
    message per question: the first failing rule wins.  Structural checks
    (number parsing, range, length, pattern) apply whether or not the
    question is required, as soon as the user has entered something.

Visibility is not decided here; see ``FormEngine.is_visible``.  Both
functions take the raw stored value and coerce it via
:func:`sugb_forms.answers.coerce_answer`.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from sugb_forms.answers import (
    SelectionWithExplanation,
    YesNoAnswer,
    coerce_answer,
    format_number,
    has_value,
    parse_number,
)
from sugb_forms.constants import OTHER_OPTION_LABELS, PERCENT_DEFAULT_MAX
from sugb_forms.models.schema import NUMERIC_TYPES, TEXT_TYPES, Question, QuestionType

logger = logging.getLogger(__name__)


def is_other_option(option: str) -> bool:
    """True if ``option`` is an "Other"-style sentinel (e.g. "Other (please specify)")."""
    label = option.strip().lower()
    if label in OTHER_OPTION_LABELS:
        return True
    # Labels like "Other, namely" or "Anders, namelijk"
    head = re.split(r"[\s,:(]", label, maxsplit=1)[0]
    return head in OTHER_OPTION_LABELS


def numeric_bounds(question: Question) -> tuple[float | None, float | None]:
    """Effective ``(min, max)`` for a numeric question.

    PERCENT questions default their max to 100 when the schema leaves it
    unset.
    """
    rule = question.validation
    lo = rule.min if rule is not None else None
    hi = rule.max if rule is not None else None
    if hi is None and question.type == QuestionType.PERCENT:
        hi = PERCENT_DEFAULT_MAX
    return lo, hi


def is_required_answered(question: Question, value: Any) -> bool:
    """Type-specific required check.  Non-required questions always pass."""
    if not question.is_required:
        return True
    if value is None:
        return False

    qtype = question.type
    typed = coerce_answer(qtype, value)

    if qtype in TEXT_TYPES or qtype == QuestionType.SELECT:
        return bool(typed.strip())

    if qtype in NUMERIC_TYPES:
        if typed is None:
            return False
        lo, hi = numeric_bounds(question)
        if lo is not None and typed < lo:
            return False
        if hi is not None and typed > hi:
            return False
        return True

    if qtype == QuestionType.MULTISELECT:
        return len(typed) > 0

    if qtype == QuestionType.YES_NO_WITH_EXPLANATION:
        if typed.answer is None:
            return False
        if typed.answer == "yes":
            return bool(typed.explanation.strip())
        return True

    if qtype == QuestionType.MULTISELECT_WITH_EXPLANATION:
        if not typed.selected:
            return False
        if any(is_other_option(opt) for opt in typed.selected):
            return bool(typed.explanation.strip())
        return True

    # TEXT-like fallbacks: RADIO, DATE, FILE, CHECKBOX
    return bool(str(typed).strip())


def _required_message(question: Question) -> str:
    return f"{question.text} is required"


def _numeric_error(question: Question, number: float | None) -> str | None:
    if number is None:
        return f"{question.text} must be a valid number"
    lo, hi = numeric_bounds(question)
    if lo is not None and number < lo:
        return f"{question.text} must be at least {format_number(lo)}"
    if hi is not None and number > hi:
        return f"{question.text} must be at most {format_number(hi)}"
    return None


def _text_error(question: Question, text: str) -> str | None:
    rule = question.validation
    if rule is None:
        return None
    if rule.min is not None and len(text) < rule.min:
        return f"{question.text} must be at least {format_number(rule.min)} characters"
    if rule.max is not None and len(text) > rule.max:
        return f"{question.text} must be at most {format_number(rule.max)} characters"
    if rule.pattern:
        try:
            matched = re.search(rule.pattern, text) is not None
        except re.error:
            # A broken pattern in the schema must not lock the user out
            logger.warning("Invalid pattern on question %s: %r", question.id, rule.pattern)
            return None
        if not matched:
            return rule.message or f"{question.text} format is invalid"
    return None


def _explanation_error(question: Question, typed: Any) -> str | None:
    if isinstance(typed, YesNoAnswer):
        if typed.answer is None:
            return f"{question.text}: please answer yes or no"
        if typed.answer == "yes" and not typed.explanation.strip():
            return f"{question.text}: please explain your answer"
    if isinstance(typed, SelectionWithExplanation):
        if not typed.selected:
            return f"{question.text}: please select at least one option"
        if any(is_other_option(o) for o in typed.selected) and not typed.explanation.strip():
            return f"{question.text}: please explain your 'Other' selection"
    return None


def validate_question(question: Question, value: Any) -> str | None:
    """Return the first failing rule's message for ``value``, or ``None``.

    Order: missing required value, numeric parse, numeric range, text
    length, text pattern, explanation rules (required questions only),
    then the generic required rule as a catch-all.
    """
    qtype = question.type

    if not has_value(qtype, value):
        return _required_message(question) if question.is_required else None

    if qtype in NUMERIC_TYPES:
        error = _numeric_error(question, parse_number(value))
        if error:
            return error
    elif qtype in TEXT_TYPES:
        error = _text_error(question, coerce_answer(qtype, value))
        if error:
            return error

    if question.is_required:
        error = _explanation_error(question, coerce_answer(qtype, value))
        if error:
            return error
        if not is_required_answered(question, value):
            return _required_message(question)

    return None
