# funnel_builder/editor/autosave.py
from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from .session import EditorSession, Persist

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 30
DEFAULT_IDLE_DELAY_SECONDS = 3


class AutoSaver:
    """
    Best-effort background saving for an EditorSession.

    The host calls `touch()` after each edit and `tick()` from its event
    loop or timer. A dirty document is saved once the user has been idle for
    `idle_delay` seconds, or at the latest every `interval` seconds.
    Failures are logged and never raised.
    """

    def __init__(
        self,
        session: EditorSession,
        persist: Persist,
        interval: float = DEFAULT_INTERVAL_SECONDS,
        idle_delay: float = DEFAULT_IDLE_DELAY_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.session = session
        self.persist = persist
        self.interval = interval
        self.idle_delay = idle_delay
        self.enabled = True
        self._clock = clock
        self._last_edit: Optional[float] = None
        self._last_attempt = clock()

    def touch(self) -> None:
        self._last_edit = self._clock()

    def due(self, now: Optional[float] = None) -> bool:
        if not self.enabled or not self.session.is_dirty or self.session.is_saving:
            return False

        now = self._clock() if now is None else now
        idle = self._last_edit is not None and now - self._last_edit >= self.idle_delay
        periodic = now - self._last_attempt >= self.interval
        return idle or periodic

    def tick(self) -> bool:
        now = self._clock()
        if not self.due(now):
            return False
        return self._attempt(now)

    def flush(self) -> bool:
        """Final save attempt when the editor closes; only if dirty."""
        if not self.session.is_dirty:
            return False
        return self._attempt(self._clock())

    def _attempt(self, now: float) -> bool:
        self._last_attempt = now
        self._last_edit = None

        saved = self.session.save(self.persist)
        if not saved:
            logger.warning("Auto-save did not complete; will retry on the next cycle")
        return saved
