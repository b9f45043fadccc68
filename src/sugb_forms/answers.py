"""Typed views over raw answer values.

Answers are stored exactly as the client sends them (plain JSON), so the
same answer slot holds a string, a list, or an object depending on the
question type.  Instead of probing shapes at each use site, every consumer
goes through :func:`coerce_answer`, which dispatches on ``QuestionType``
through an exhaustive table:

    TEXT, TEXTAREA, SELECT, RADIO, DATE, FILE, CHECKBOX -> str
    NUMBER, MONEY, PERCENT                              -> float | None
    MULTISELECT                                         -> list[str]
    MULTISELECT_WITH_EXPLANATION                        -> SelectionWithExplanation
    YES_NO_WITH_EXPLANATION                             -> YesNoAnswer
"""

from __future__ import annotations

import math
import re
from typing import Any, Callable, Literal, Optional, Union

from pydantic import BaseModel

from sugb_forms.constants import NUMERIC_NOISE_PATTERN
from sugb_forms.models.schema import NUMERIC_TYPES, QuestionType

_NOISE = re.compile(NUMERIC_NOISE_PATTERN)


class YesNoAnswer(BaseModel):
    """Answer to a YES_NO_WITH_EXPLANATION question."""

    answer: Optional[Literal["yes", "no"]] = None
    explanation: str = ""


class SelectionWithExplanation(BaseModel):
    """Answer to a MULTISELECT_WITH_EXPLANATION question."""

    selected: list[str] = []
    explanation: str = ""


TypedAnswer = Union[str, float, None, list[str], YesNoAnswer, SelectionWithExplanation]


def parse_number(raw: Any) -> float | None:
    """Parse user numeric input; ``None`` if it is not a finite number.

    Thousands separators, whitespace and currency/percent signs are
    stripped first, so ``"5,000"``, ``"€ 1 250.50"`` and ``"37%"`` parse.
    Booleans are rejected even though they are ints in Python.
    """
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        value = float(raw)
    elif isinstance(raw, str):
        cleaned = _NOISE.sub("", raw)
        if not cleaned:
            return None
        try:
            value = float(cleaned)
        except ValueError:
            return None
    else:
        return None
    return value if math.isfinite(value) else None


def format_number(number: float) -> str:
    """Render a number without a trailing ``.0`` when it is whole."""
    return str(int(number)) if float(number).is_integer() else str(number)


def numeric_token(raw: Any) -> str:
    """Canonical text of a numeric answer or condition value.

    ``5``, ``5.0`` and ``"5"`` all become ``"5"``, and ``"5,000"`` becomes
    ``"5000"``.  Unparsable input falls back to its stripped text.
    """
    number = parse_number(raw)
    if number is None:
        return _as_text(raw).strip()
    return format_number(number)


def _as_text(raw: Any) -> str:
    if raw is None:
        return ""
    return raw if isinstance(raw, str) else str(raw)


def _as_str_list(raw: Any) -> list[str]:
    if isinstance(raw, (list, tuple)):
        return [str(v) for v in raw]
    return []


def _as_yes_no(raw: Any) -> YesNoAnswer:
    if isinstance(raw, YesNoAnswer):
        return raw
    if isinstance(raw, dict):
        answer = str(raw.get("answer") or "").strip().lower()
        return YesNoAnswer(
            answer=answer if answer in ("yes", "no") else None,
            explanation=_as_text(raw.get("explanation")),
        )
    # Bare "yes"/"no" strings come from older drafts
    if isinstance(raw, str) and raw.strip().lower() in ("yes", "no"):
        return YesNoAnswer(answer=raw.strip().lower())
    return YesNoAnswer()


def _as_selection(raw: Any) -> SelectionWithExplanation:
    if isinstance(raw, SelectionWithExplanation):
        return raw
    if isinstance(raw, dict):
        return SelectionWithExplanation(
            selected=_as_str_list(raw.get("selected")),
            explanation=_as_text(raw.get("explanation")),
        )
    return SelectionWithExplanation(selected=_as_str_list(raw))


# Exhaustive dispatch table: every QuestionType must have an entry.
_COERCERS: dict[QuestionType, Callable[[Any], TypedAnswer]] = {
    QuestionType.TEXT: _as_text,
    QuestionType.TEXTAREA: _as_text,
    QuestionType.SELECT: _as_text,
    QuestionType.RADIO: _as_text,
    QuestionType.DATE: _as_text,
    QuestionType.FILE: _as_text,
    QuestionType.CHECKBOX: _as_text,
    QuestionType.NUMBER: parse_number,
    QuestionType.MONEY: parse_number,
    QuestionType.PERCENT: parse_number,
    QuestionType.MULTISELECT: _as_str_list,
    QuestionType.MULTISELECT_WITH_EXPLANATION: _as_selection,
    QuestionType.YES_NO_WITH_EXPLANATION: _as_yes_no,
}

_MISSING = set(QuestionType) - set(_COERCERS)
if _MISSING:
    raise RuntimeError(f"No answer coercer for question types: {sorted(t.value for t in _MISSING)}")


def coerce_answer(question_type: QuestionType, raw: Any) -> TypedAnswer:
    """Return the typed view of ``raw`` for a question of ``question_type``."""
    return _COERCERS[question_type](raw)


def has_value(question_type: QuestionType, raw: Any) -> bool:
    """True if the user has entered anything for the question at all.

    Numeric answers count as present even when unparsable, so the
    validator can report "must be a valid number" rather than "required".
    """
    if raw is None:
        return False
    if question_type == QuestionType.YES_NO_WITH_EXPLANATION:
        typed = _as_yes_no(raw)
        return typed.answer is not None or bool(typed.explanation.strip())
    if question_type == QuestionType.MULTISELECT_WITH_EXPLANATION:
        typed = _as_selection(raw)
        return bool(typed.selected) or bool(typed.explanation.strip())
    if question_type == QuestionType.MULTISELECT:
        return bool(_as_str_list(raw))
    return bool(_as_text(raw).strip())


def answer_tokens(question_type: QuestionType | None, raw: Any) -> set[str]:
    """Comparable string tokens of an answer, for conditional visibility.

    A YES_NO answer matches on its yes/no part, multi-selects match on any
    selected option, numbers on their canonical form (see
    :func:`numeric_token`) and other scalars on their string form.  ``question_type``
    may be ``None`` when the dependency is unknown; the raw string form is
    used then.
    """
    if raw is None:
        return set()
    if question_type is None:
        return {_as_text(raw)}
    typed = coerce_answer(question_type, raw)
    if isinstance(typed, YesNoAnswer):
        return {typed.answer} if typed.answer else set()
    if isinstance(typed, SelectionWithExplanation):
        return set(typed.selected)
    if isinstance(typed, list):
        return set(typed)
    if question_type in NUMERIC_TYPES:
        return {numeric_token(raw)}
    return {_as_text(typed)}
