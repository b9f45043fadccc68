"""FormEngine tests — visibility, section validity, progress and the
navigation lock, plus a walk through the packaged survey.

The small fixture schema (see conftest.py):
    s1: q1 TEXT required, q2 MONEY required (max 100000)
    s2: q3 SELECT required, options A/B
"""

import pytest

from sugb_forms.engine import FormEngine, round_half_up
from sugb_forms.models.schema import SurveySchema


def _conditional_schema(**logic):
    return SurveySchema.model_validate({
        "sections": [{
            "id": "s1",
            "name": "S1",
            "questions": [
                {
                    "id": "trigger",
                    "text": "Trigger",
                    "type": "MULTISELECT",
                    "order": 1,
                    "options": ["a", "b", "c"],
                },
                {
                    "id": "follow",
                    "text": "Follow-up",
                    "type": "TEXT",
                    "order": 2,
                    "isRequired": True,
                    "conditionalLogic": {"dependsOn": "trigger", **logic},
                },
            ],
        }],
    })


# =====================================================================
# Rounding
# =====================================================================


@pytest.mark.parametrize("value, expected", [(0.5, 1), (1.5, 2), (2.5, 3), (66.666, 67), (2.49, 2)])
def test_round_half_up(value, expected):
    assert round_half_up(value) == expected


# =====================================================================
# Visibility
# =====================================================================


class TestVisibility:
    """Conditional show/hide rules."""

    def test_show_when_matches_any_selected_option(self):
        engine = FormEngine(_conditional_schema(showWhen=["b"]))
        follow = engine.get_question("follow")
        assert not engine.is_visible(follow, {}), "No answer means hidden"
        assert not engine.is_visible(follow, {"trigger": ["a"]})
        assert engine.is_visible(follow, {"trigger": ["a", "b"]})

    def test_hide_when_wins_over_show_when(self):
        """When both rules match, the question is hidden."""
        engine = FormEngine(_conditional_schema(showWhen=["a"], hideWhen=["b"]))
        follow = engine.get_question("follow")
        assert engine.is_visible(follow, {"trigger": ["a"]})
        assert not engine.is_visible(follow, {"trigger": ["a", "b"]})

    def test_hidden_required_question_not_validated(self):
        """A required question that is hidden never blocks its section."""
        engine = FormEngine(_conditional_schema(showWhen=["b"]))
        assert engine.section_errors(0, {"trigger": ["a"]}) == {}
        errors = engine.section_errors(0, {"trigger": ["b"]})
        assert errors == {"follow": "Follow-up is required"}

    def test_hidden_required_question_not_counted_in_progress(self):
        engine = FormEngine(_conditional_schema(showWhen=["b"]))
        assert engine.progress({"trigger": ["a"]}) == 100, (
            "No visible required question means 100%"
        )
        assert engine.progress({"trigger": ["b"]}) == 0

    def test_numeric_dependency_compares_numbers(self):
        """Numeric answers match conditions by value, not by spelling."""
        schema = SurveySchema.model_validate({
            "sections": [{
                "id": "s1",
                "name": "S1",
                "questions": [
                    {"id": "staff", "text": "Staff", "type": "NUMBER", "order": 1},
                    {
                        "id": "follow",
                        "text": "Follow-up",
                        "type": "TEXT",
                        "order": 2,
                        "conditionalLogic": {"dependsOn": "staff", "showWhen": [5, "5000"]},
                    },
                ],
            }],
        })
        engine = FormEngine(schema)
        follow = engine.get_question("follow")
        for answer in (5, "5", 5.0, "5.0", "5,000", "5000"):
            assert engine.is_visible(follow, {"staff": answer}), answer
        assert not engine.is_visible(follow, {"staff": "50"})

    def test_unknown_question_lookup_raises(self, small_engine):
        with pytest.raises(KeyError, match="Unknown question: nope"):
            small_engine.get_question("nope")


# =====================================================================
# Progress and navigation lock
# =====================================================================


class TestProgressAndNavigation:
    """The end-to-end scenario over the small schema."""

    def test_empty_answers(self, small_engine):
        assert small_engine.progress({}) == 0
        assert small_engine.furthest_unlocked({}) == 0
        assert not small_engine.can_submit({})
        assert small_engine.invalid_sections({}) == ["s1", "s2"]

    def test_first_section_complete(self, small_engine):
        answers = {"q1": "Acme", "q2": "5000"}
        assert small_engine.is_section_valid(0, answers)
        assert small_engine.progress(answers) == 67, "2 of 3 required answered"
        assert small_engine.furthest_unlocked(answers) == 1
        assert small_engine.invalid_sections(answers) == ["s2"]

    def test_all_sections_complete(self, small_engine):
        answers = {"q1": "Acme", "q2": "5000", "q3": "A"}
        assert small_engine.progress(answers) == 100
        assert small_engine.can_submit(answers)

    def test_out_of_range_money_blocks_section(self, small_engine):
        answers = {"q1": "Acme", "q2": "250000"}
        assert small_engine.section_errors(0, answers) == {
            "q2": "Salary must be at most 100000",
        }
        assert small_engine.furthest_unlocked(answers) == 0
        assert small_engine.progress(answers) == 33, "Out-of-range value is unanswered"

    @pytest.mark.parametrize("order", [
        ("q1", "q2", "q3"),
        ("q3", "q2", "q1"),
        ("q2", "q3", "q1"),
    ])
    def test_progress_never_decreases_while_answering(self, small_engine, order):
        complete = {"q1": "Acme", "q2": "5000", "q3": "A"}
        answers = {}
        seen = [small_engine.progress(answers)]
        for qid in order:
            answers[qid] = complete[qid]
            seen.append(small_engine.progress(answers))
        assert seen == sorted(seen)
        assert seen[-1] == 100

    def test_can_navigate_backwards_always(self, small_engine):
        assert small_engine.can_navigate_to(0, 1, {})

    def test_can_navigate_forward_only_when_unlocked(self, small_engine):
        assert not small_engine.can_navigate_to(1, 0, {})
        assert small_engine.can_navigate_to(1, 0, {"q1": "Acme", "q2": "1"})

    def test_invalid_middle_section_locks_later_ones(self, three_section_engine):
        """An invalid earlier section caps the unlock point, whatever comes after it."""
        engine = three_section_engine
        answers = {"q1": "a", "q3": "c"}
        assert engine.furthest_unlocked(answers) == 1
        assert engine.can_navigate_to(1, 0, answers)
        assert not engine.can_navigate_to(2, 0, answers)
        assert not engine.can_navigate_to(2, 1, answers)
        assert engine.can_navigate_to(2, 1, {**answers, "q2": "b"})

    def test_can_navigate_out_of_range_refused(self, small_engine):
        assert not small_engine.can_navigate_to(5, 0, {})
        assert not small_engine.can_navigate_to(-1, 0, {})

    def test_section_out_of_range_raises(self, small_engine):
        with pytest.raises(IndexError):
            small_engine.section(2)


# =====================================================================
# Snapshot
# =====================================================================


class TestSnapshot:
    """The UI-facing view of one section."""

    def test_snapshot_fields(self, small_engine):
        snap = small_engine.snapshot({"q1": "Acme"}, 0)
        assert snap.section_id == "s1"
        assert [q.id for q in snap.questions] == ["q1", "q2"]
        assert snap.errors == {"q2": "Salary is required"}
        assert snap.questions[1].error == "Salary is required"
        assert snap.questions[1].constraints == {"max": 100000}
        assert snap.questions[0].value == "Acme"
        assert snap.progress == 33
        assert not snap.can_advance
        assert not snap.is_last_section
        assert [s.is_unlocked for s in snap.sections] == [True, False]

    def test_snapshot_last_section(self, small_engine):
        answers = {"q1": "Acme", "q2": "5000", "q3": "B"}
        snap = small_engine.snapshot(answers, 1, {"s1"})
        assert snap.is_last_section
        assert not snap.can_advance, "Cannot advance past the last section"
        assert snap.can_submit
        assert [s.is_completed for s in snap.sections] == [True, False]


# =====================================================================
# Packaged survey
# =====================================================================


class TestPackagedSurvey:
    """Conditional rules in survey.yaml."""

    def test_allowance_types_follow_has_allowances(self, survey_engine):
        q = survey_engine.get_question("allowance_types")
        assert not survey_engine.is_visible(q, {})
        assert survey_engine.is_visible(q, {"has_allowances": {"answer": "yes", "explanation": "x"}})
        assert not survey_engine.is_visible(q, {"has_allowances": {"answer": "no"}})

    def test_employer_contribution_hidden_without_scheme(self, survey_engine):
        q = survey_engine.get_question("employer_contribution")
        assert survey_engine.is_visible(q, {"pension_scheme": "ABP"})
        assert not survey_engine.is_visible(q, {"pension_scheme": "None"})

    def test_empty_survey_cannot_submit(self, survey_engine):
        assert survey_engine.progress({}) == 0
        assert not survey_engine.can_submit({})
        assert survey_engine.furthest_unlocked({}) == 0
