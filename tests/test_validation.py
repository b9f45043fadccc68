"""Per-question validation rules and answer coercion."""

import pytest

from sugb_forms.answers import answer_tokens, coerce_answer, has_value, numeric_token, parse_number
from sugb_forms.models.schema import Question, QuestionType
from sugb_forms.validation import is_other_option, is_required_answered, validate_question


def _q(qtype, *, required=True, text="Field", **extra):
    return Question(id="q", text=text, type=qtype, is_required=required, **extra)


# =====================================================================
# parse_number
# =====================================================================


@pytest.mark.parametrize("raw, expected", [
    ("5,000", 5000.0),
    ("€ 1 250.50", 1250.5),
    ("37%", 37.0),
    (42, 42.0),
    ("abc", None),
    ("", None),
    (True, None),
    ("inf", None),
])
def test_parse_number(raw, expected):
    assert parse_number(raw) == expected


# =====================================================================
# Required rules
# =====================================================================


def test_required_text_blank_fails():
    q = _q(QuestionType.TEXT)
    assert validate_question(q, "   ") == "Field is required"
    assert validate_question(q, "Acme") is None


def test_optional_empty_passes():
    assert validate_question(_q(QuestionType.MONEY, required=False), "") is None
    assert is_required_answered(_q(QuestionType.MONEY, required=False), None)


def test_required_multiselect_needs_one_option():
    q = _q(QuestionType.MULTISELECT, options=["a", "b"])
    assert validate_question(q, []) == "Field is required"
    assert validate_question(q, ["a"]) is None


# =====================================================================
# Numeric rules
# =====================================================================


def test_numeric_unparsable_reports_invalid_number():
    """Garbage in a numeric field is a parse error, not "required"."""
    q = _q(QuestionType.NUMBER)
    assert validate_question(q, "twelve") == "Field must be a valid number"


def test_numeric_range_messages():
    q = _q(QuestionType.MONEY, validation={"min": 10, "max": 100000})
    assert validate_question(q, "5") == "Field must be at least 10"
    assert validate_question(q, "150,000") == "Field must be at most 100000"
    assert validate_question(q, "50000") is None


def test_percent_defaults_max_to_100():
    q = _q(QuestionType.PERCENT)
    assert validate_question(q, 101) == "Field must be at most 100"
    assert validate_question(q, "100") is None
    assert not is_required_answered(q, 150)


def test_optional_numeric_still_range_checked():
    """Structural rules apply once something has been entered."""
    q = _q(QuestionType.NUMBER, required=False, validation={"max": 5})
    assert validate_question(q, 6) == "Field must be at most 5"


# =====================================================================
# Text rules
# =====================================================================


def test_text_length_and_pattern():
    q = _q(
        QuestionType.TEXT,
        validation={"min": 2, "max": 8, "pattern": r"^\d+$", "message": "Digits only"},
    )
    assert validate_question(q, "1") == "Field must be at least 2 characters"
    assert validate_question(q, "123456789") == "Field must be at most 8 characters"
    assert validate_question(q, "12ab") == "Digits only"
    assert validate_question(q, "1234") is None


def test_broken_pattern_is_ignored():
    q = _q(QuestionType.TEXT, validation={"pattern": "(["})
    assert validate_question(q, "anything") is None


# =====================================================================
# Explanation rules
# =====================================================================


class TestYesNoWithExplanation:
    """YES_NO_WITH_EXPLANATION: "yes" needs an explanation, "no" does not."""

    def test_yes_without_explanation_fails(self):
        q = _q(QuestionType.YES_NO_WITH_EXPLANATION)
        msg = validate_question(q, {"answer": "yes", "explanation": " "})
        assert msg == "Field: please explain your answer"

    def test_no_without_explanation_passes(self):
        q = _q(QuestionType.YES_NO_WITH_EXPLANATION)
        assert validate_question(q, {"answer": "no"}) is None

    def test_explanation_without_answer_fails(self):
        q = _q(QuestionType.YES_NO_WITH_EXPLANATION)
        msg = validate_question(q, {"explanation": "text"})
        assert msg == "Field: please answer yes or no"

    def test_bare_string_answer_accepted(self):
        q = _q(QuestionType.YES_NO_WITH_EXPLANATION)
        assert validate_question(q, "no") is None


class TestMultiselectWithExplanation:
    """Selecting an "Other" option makes the explanation mandatory."""

    def test_other_without_explanation_fails(self):
        q = _q(QuestionType.MULTISELECT_WITH_EXPLANATION, options=["Car", "Other"])
        msg = validate_question(q, {"selected": ["Other"], "explanation": ""})
        assert msg == "Field: please explain your 'Other' selection"

    def test_other_with_explanation_passes(self):
        q = _q(QuestionType.MULTISELECT_WITH_EXPLANATION, options=["Car", "Other"])
        assert validate_question(q, {"selected": ["Other"], "explanation": "Bike"}) is None

    def test_plain_selection_passes(self):
        q = _q(QuestionType.MULTISELECT_WITH_EXPLANATION, options=["Car", "Other"])
        assert validate_question(q, {"selected": ["Car"]}) is None

    def test_explanation_only_fails(self):
        q = _q(QuestionType.MULTISELECT_WITH_EXPLANATION, options=["Car", "Other"])
        msg = validate_question(q, {"selected": [], "explanation": "x"})
        assert msg == "Field: please select at least one option"


@pytest.mark.parametrize("label, expected", [
    ("Other", True),
    ("other (please specify)", True),
    ("Anders, namelijk", True),
    ("Otherwise", False),
    ("Car", False),
])
def test_is_other_option(label, expected):
    assert is_other_option(label) is expected


# =====================================================================
# Answer tokens and presence
# =====================================================================


def test_answer_tokens_by_type():
    assert answer_tokens(QuestionType.YES_NO_WITH_EXPLANATION, {"answer": "yes"}) == {"yes"}
    assert answer_tokens(QuestionType.MULTISELECT, ["a", "b"]) == {"a", "b"}
    assert answer_tokens(QuestionType.NUMBER, 5) == {"5"}
    assert answer_tokens(QuestionType.SELECT, None) == set()


@pytest.mark.parametrize("raw", [5, 5.0, "5", " 5.0 ", "€5"])
def test_numeric_tokens_are_canonical(raw):
    assert answer_tokens(QuestionType.NUMBER, raw) == {"5"}


@pytest.mark.parametrize("raw, token", [
    ("5,000", "5000"),
    ("€ 1 250.50", "1250.5"),
    (2.5, "2.5"),
    ("abc", "abc"),
])
def test_numeric_token(raw, token):
    assert numeric_token(raw) == token


def test_every_question_type_has_a_coercer():
    for qtype in QuestionType:
        coerce_answer(qtype, None)


def test_has_value_counts_unparsable_numbers():
    assert has_value(QuestionType.NUMBER, "abc")
    assert not has_value(QuestionType.NUMBER, "  ")
