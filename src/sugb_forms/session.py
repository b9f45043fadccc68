"""FormSession — the stateful, event-driven survey form.

One ``FormSession`` is owned by one user in one tab.  It holds the answer
map, the active section, the dirty flag and the error map, and drives two
injected async callbacks:

    save_draft(responses, is_complete)  -> None | bool
    submit(responses)                   -> None | bool

A callback failure is either a raised exception or an explicit ``False``
return.  Failures are stored as user-visible strings (``save_error``,
``submit_error``); they never propagate and never touch the answers.

Concurrency model: everything runs on one asyncio loop.  Answer changes
are applied synchronously; the autosave timer is the only suspension
point.  A save snapshots ``(answers, revision)`` before awaiting the
callback and clears ``is_dirty`` only if no newer change arrived in the
meantime, so edits made during an in-flight save are never reported as
saved.  Saves are serialised through a lock so persisted drafts are
written in revision order.

Usage::

    async with FormSession(engine, save_draft=save, submit=submit) as form:
        form.change_answer("q1", "Acme")
        if await form.next():
            ...
        await form.submit()
"""

from __future__ import annotations

import asyncio
import copy
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Mapping

from sugb_forms.autosave import AutosaveTimer
from sugb_forms.constants import AUTOSAVE_DELAY_SECONDS
from sugb_forms.engine import FormEngine
from sugb_forms.models.form import FormSnapshot
from sugb_forms.models.schema import Question, Section

logger = logging.getLogger(__name__)

SaveDraftCallback = Callable[[dict[str, Any], bool], Awaitable[Any]]
SubmitCallback = Callable[[dict[str, Any]], Awaitable[Any]]

_SAVE_FAILED = "Failed to save survey"
_SUBMIT_FAILED = "Failed to submit survey"


class FormSession:
    """Survey form state machine with debounced autosave.

    Args:
        engine: shared :class:`FormEngine` for the survey schema
        save_draft: async persistence callback (idempotent upsert)
        submit: async submission callback
        initial_responses: answers restored from a persisted draft
        autosave_delay: debounce window in seconds
    """

    def __init__(
        self,
        engine: FormEngine,
        *,
        save_draft: SaveDraftCallback,
        submit: SubmitCallback,
        initial_responses: Mapping[str, Any] | None = None,
        autosave_delay: float = AUTOSAVE_DELAY_SECONDS,
    ) -> None:
        self._engine = engine
        self._save_draft = save_draft
        self._submit = submit

        self._answers: dict[str, Any] = dict(initial_responses or {})
        self._current = 0
        self._completed: set[str] = set()
        self._errors: dict[str, str] = {}

        self._dirty = False
        self._revision = 0
        self._last_saved_at: datetime | None = None
        self._save_error: str | None = None
        self._submit_error: str | None = None
        self._submitted = False
        self._saving = False
        self._submitting = False

        self._save_lock = asyncio.Lock()
        self._autosave = AutosaveTimer(self._autosave_fired, autosave_delay)

        self._revalidate()

    async def __aenter__(self) -> "FormSession":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        """Tear down: cancel the pending autosave timer."""
        await self._autosave.close()

    # ==================================================================
    # Read-only state
    # ==================================================================

    @property
    def engine(self) -> FormEngine:
        return self._engine

    @property
    def answers(self) -> dict[str, Any]:
        """A copy of the answer map (hidden answers included)."""
        return copy.deepcopy(self._answers)

    @property
    def current_section_index(self) -> int:
        return self._current

    @property
    def current_section(self) -> Section:
        return self._engine.section(self._current)

    @property
    def completed_sections(self) -> set[str]:
        return set(self._completed)

    @property
    def errors(self) -> dict[str, str]:
        return dict(self._errors)

    @property
    def is_dirty(self) -> bool:
        return self._dirty

    @property
    def is_saving(self) -> bool:
        return self._saving

    @property
    def is_submitting(self) -> bool:
        return self._submitting

    @property
    def is_submitted(self) -> bool:
        return self._submitted

    @property
    def last_saved_at(self) -> datetime | None:
        return self._last_saved_at

    @property
    def save_error(self) -> str | None:
        return self._save_error

    @property
    def submit_error(self) -> str | None:
        return self._submit_error

    @property
    def autosave_pending(self) -> bool:
        return self._autosave.pending

    @property
    def progress(self) -> int:
        return self._engine.progress(self._answers)

    @property
    def furthest_unlocked(self) -> int:
        return self._engine.furthest_unlocked(self._answers)

    @property
    def is_current_section_valid(self) -> bool:
        return not self._errors

    @property
    def is_last_section(self) -> bool:
        return self._current == self._engine.section_count - 1

    @property
    def can_advance(self) -> bool:
        return self.is_current_section_valid and not self.is_last_section

    @property
    def can_submit(self) -> bool:
        return self._engine.can_submit(self._answers)

    def visible_questions(self) -> list[Question]:
        return self._engine.visible_questions(self._current, self._answers)

    def snapshot(self) -> FormSnapshot:
        return self._engine.snapshot(self._answers, self._current, self._completed)

    # ==================================================================
    # Answer changes
    # ==================================================================

    def change_answer(self, qid: str, value: Any) -> None:
        """Record one answer, mark the form dirty and (re)arm autosave.

        Raises ``KeyError`` for a question id that is not in the schema.
        Must be called from inside the running event loop.
        """
        self._engine.get_question(qid)
        self._answers[qid] = value
        self._revision += 1
        self._dirty = True
        self._revalidate()
        self._autosave.schedule()

    # ==================================================================
    # Saving
    # ==================================================================

    async def save(self) -> bool:
        """Manual save: immediate (non-debounced) when the form is dirty.

        Returns ``True`` when nothing needed saving or the save succeeded.
        """
        self._autosave.cancel()
        if not self._dirty:
            return True
        return await self._persist()

    async def _autosave_fired(self) -> None:
        if self._dirty:
            await self._persist()

    async def _persist(self, is_complete: bool = False) -> bool:
        async with self._save_lock:
            if not self._dirty:
                # An earlier queued save already covered this revision
                return True
            revision = self._revision
            payload = copy.deepcopy(self._answers)
            self._saving = True
            try:
                result = await self._save_draft(payload, is_complete)
            except Exception as exc:
                logger.warning("Save failed: %s", exc)
                self._save_error = str(exc) or _SAVE_FAILED
                return False
            finally:
                self._saving = False

            if result is False:
                logger.warning("Save callback reported failure")
                self._save_error = _SAVE_FAILED
                return False

            self._save_error = None
            self._last_saved_at = datetime.now(timezone.utc)
            if self._revision == revision:
                self._dirty = False
            else:
                logger.debug(
                    "Answers changed during save (saved rev %d, now %d); staying dirty",
                    revision, self._revision,
                )
            return True

    # ==================================================================
    # Navigation
    # ==================================================================

    async def next(self) -> bool:
        """Advance one section.

        Only permitted from a valid, non-last section.  When dirty, a
        checkpoint save runs first and the move happens only if it
        succeeded and the section is still valid once it returns.
        """
        if not self.can_advance:
            return False
        if not await self.save():
            return False
        # Answers may have changed while the save was awaiting
        if not self.can_advance:
            return False
        self._completed.add(self.current_section.id)
        self._set_section(self._current + 1)
        return True

    def previous(self) -> bool:
        """Go back one section; always permitted except on the first."""
        if self._current == 0:
            return False
        self._set_section(self._current - 1)
        return True

    async def go_to(self, index: int) -> bool:
        """Jump to ``index`` if it is behind us or within the unlocked range.

        A refused jump is a no-op: the current section does not change.
        Forward jumps checkpoint-save like :meth:`next`.
        """
        if not self._engine.can_navigate_to(index, self._current, self._answers):
            return False
        if index == self._current:
            return True
        if index > self._current:
            if not await self.save():
                return False
            if not self._engine.can_navigate_to(index, self._current, self._answers):
                return False
            for skipped in range(self._current, index):
                self._completed.add(self._engine.section(skipped).id)
        self._set_section(index)
        return True

    def _set_section(self, index: int) -> None:
        self._current = index
        self._revalidate()

    # ==================================================================
    # Submission
    # ==================================================================

    async def submit(self) -> bool:
        """Submit the survey.

        Refused without calling the callback when any section is invalid.
        Pending changes are flushed through an immediate save first; a
        failed flush aborts the submission.
        """
        self._autosave.cancel()
        invalid = self._engine.invalid_sections(self._answers)
        if invalid:
            self._submit_error = "Please complete all required sections before submitting"
            logger.info("Submit refused; invalid sections: %s", invalid)
            return False

        if self._dirty and not await self._persist():
            self._submit_error = self._save_error or _SAVE_FAILED
            return False

        self._submitting = True
        try:
            result = await self._submit(copy.deepcopy(self._answers))
        except Exception as exc:
            logger.warning("Submit failed: %s", exc)
            self._submit_error = str(exc) or _SUBMIT_FAILED
            return False
        finally:
            self._submitting = False

        if result is False:
            self._submit_error = _SUBMIT_FAILED
            return False

        self._submit_error = None
        self._submitted = True
        self._completed.add(self.current_section.id)
        return True

    # ==================================================================
    # Internal helpers
    # ==================================================================

    def _revalidate(self) -> None:
        self._errors = self._engine.section_errors(self._current, self._answers)
