import pytest

from sugb_forms.engine import FormEngine
from sugb_forms.models.schema import SurveySchema
from sugb_forms.schema_store import SchemaStore


# Three questions over two sections: the smallest survey that exercises
# validation, the navigation lock and progress together.
SMALL_SCHEMA = {
    "version": "test",
    "sections": [
        {
            "id": "s1",
            "name": "Organisation",
            "order": 1,
            "questions": [
                {"id": "q1", "text": "Name", "type": "TEXT", "order": 1, "isRequired": True},
                {
                    "id": "q2",
                    "text": "Salary",
                    "type": "MONEY",
                    "order": 2,
                    "isRequired": True,
                    "validation": {"max": 100000},
                },
            ],
        },
        {
            "id": "s2",
            "name": "Pension",
            "order": 2,
            "questions": [
                {
                    "id": "q3",
                    "text": "Scheme",
                    "type": "SELECT",
                    "order": 1,
                    "isRequired": True,
                    "options": ["A", "B"],
                },
            ],
        },
    ],
}


# One required text question per section, for locks spanning several sections.
THREE_SECTION_SCHEMA = {
    "version": "test",
    "sections": [
        {
            "id": f"s{n}",
            "name": f"Section {n}",
            "order": n,
            "questions": [
                {"id": f"q{n}", "text": f"Question {n}", "type": "TEXT", "order": 1, "isRequired": True},
            ],
        }
        for n in (1, 2, 3)
    ],
}


@pytest.fixture
def small_schema():
    return SurveySchema.model_validate(SMALL_SCHEMA)


@pytest.fixture
def small_engine(small_schema):
    return FormEngine(small_schema)


@pytest.fixture
def three_section_engine():
    return FormEngine(SurveySchema.model_validate(THREE_SECTION_SCHEMA))


@pytest.fixture(scope="session")
def survey_store():
    """The packaged survey.yaml, loaded once per test session."""
    s = SchemaStore()
    s.load()
    return s


@pytest.fixture(scope="session")
def survey_engine(survey_store):
    return FormEngine(survey_store.schema)
