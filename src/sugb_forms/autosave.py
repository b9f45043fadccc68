"""AutosaveTimer — the debounce timer behind form autosave.

The timer is an explicit resource owned by one ``FormSession``:

  - :meth:`schedule` cancels any pending timer and arms a new one, so at
    most one timer is pending per session and only one save fires per
    quiet period.
  - When the timer fires, the save coroutine runs as a tracked task.
  - :meth:`cancel` drops the pending timer (used before immediate saves).
  - :meth:`close` drops the pending timer and waits for an in-flight save
    to finish; call it on teardown.

Must be used from inside a running asyncio event loop.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)


class AutosaveTimer:
    """Single pending debounce timer that runs ``callback`` after ``delay`` seconds.

    Args:
        callback: zero-argument coroutine function performing the save
        delay: quiet period in seconds
    """

    def __init__(self, callback: Callable[[], Awaitable[object]], delay: float) -> None:
        self._callback = callback
        self._delay = delay
        self._handle: asyncio.TimerHandle | None = None
        self._task: asyncio.Task | None = None
        self._closed = False

    @property
    def delay(self) -> float:
        return self._delay

    @property
    def pending(self) -> bool:
        """True while a timer is armed and has not fired yet."""
        return self._handle is not None

    @property
    def in_flight(self) -> bool:
        """True while a fired save is still running."""
        return self._task is not None and not self._task.done()

    def schedule(self) -> None:
        """(Re)arm the timer, replacing any pending one."""
        if self._closed:
            raise RuntimeError("AutosaveTimer is closed")
        self.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self._delay, self._fire)

    def cancel(self) -> None:
        """Drop the pending timer, if any.  An in-flight save keeps running."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    async def wait(self) -> None:
        """Wait for the in-flight save, if any, to finish."""
        if self._task is not None:
            await asyncio.gather(self._task, return_exceptions=True)

    async def close(self) -> None:
        """Cancel the pending timer and let an in-flight save complete."""
        self._closed = True
        self.cancel()
        await self.wait()

    def _fire(self) -> None:
        self._handle = None
        logger.debug("Autosave timer fired after %.2fs", self._delay)
        self._task = asyncio.ensure_future(self._callback())
        self._task.add_done_callback(self._log_failure)

    @staticmethod
    def _log_failure(task: asyncio.Task) -> None:
        # The save callback reports its own failures; anything escaping
        # here is a bug worth surfacing in the log.
        if not task.cancelled() and task.exception() is not None:
            logger.error("Autosave task crashed", exc_info=task.exception())
