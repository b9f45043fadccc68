"""SchemaStore — loads the survey schema from YAML or JSON into typed models.

The store is loaded once at startup and handed to every component that
needs the schema (the ``FormEngine``, the draft service, the API).

Usage::

    store = SchemaStore()              # defaults to the packaged survey.yaml
    store.load()

    engine = FormEngine(store.schema)
    question = store.get_question("gross_salary")
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import yaml

from sugb_forms.models.schema import Question, SurveySchema

logger = logging.getLogger(__name__)

DEFAULT_SCHEMA_PATH = Path(__file__).parent / "data" / "survey.yaml"


def load_document(path: Path | str) -> Any:
    """Load a YAML or JSON file and return the parsed contents."""
    if isinstance(path, str):
        path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Missing schema file: {path}")
    with path.open("r", encoding="utf-8") as f:
        if path.suffix.lower() == ".json":
            return json.load(f)
        return yaml.safe_load(f)


class SchemaStore:
    """Holds one parsed :class:`SurveySchema` with lookup helpers.

    Args:
        schema_path: YAML or JSON schema file; defaults to the packaged
            ``data/survey.yaml``
    """

    def __init__(self, schema_path: str | Path | None = None) -> None:
        self._path = Path(schema_path) if schema_path is not None else DEFAULT_SCHEMA_PATH
        self._schema: SurveySchema | None = None
        self._questions: dict[str, Question] = {}

    @classmethod
    def from_schema(cls, schema: SurveySchema) -> "SchemaStore":
        """Build a store around an already-constructed schema (tests, embedding)."""
        store = cls()
        store._set(schema)
        return store

    def load(self) -> None:
        """Parse the schema file.  Raises ``FileNotFoundError`` or a pydantic
        ``ValidationError`` for a missing or malformed file."""
        raw = load_document(self._path)
        # The JSON schema format wraps sections in a top-level object;
        # bare lists of sections are accepted too.
        if isinstance(raw, list):
            raw = {"sections": raw}
        self._set(SurveySchema.model_validate(raw))
        logger.info(
            "SchemaStore loaded %s: version=%s, %d sections, %d questions",
            self._path, self.schema.version, len(self.schema.sections), len(self._questions),
        )

    def _set(self, schema: SurveySchema) -> None:
        self._schema = schema
        self._questions = {q.id: q for _, q in schema.iter_questions()}

    @property
    def schema(self) -> SurveySchema:
        if self._schema is None:
            raise RuntimeError("SchemaStore.load() has not been called")
        return self._schema

    def get_question(self, qid: str) -> Question:
        """Return a question by id; raises ``KeyError`` if unknown."""
        try:
            return self._questions[qid]
        except KeyError:
            raise KeyError(f"Unknown question: {qid}") from None
