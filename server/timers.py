"""Per-room phase countdown on top of the event loop's call_later."""

import logging
from typing import Callable, Optional
from shared.constants import Phase
from shared.models import TimerState

logger = logging.getLogger(__name__)


class PhaseTimer:
    """At most one pending countdown per room.

    `loop` is anything with asyncio's `time()` and `call_later()`; arming
    always cancels whatever was pending before.
    """

    def __init__(self, loop):
        self._loop = loop
        self._handle = None
        self.phase: Optional[Phase] = None
        self.ends_at: Optional[float] = None
        self.duration_ms: Optional[int] = None

    @property
    def active(self) -> bool:
        return self._handle is not None

    def arm(self, phase: Phase, duration_ms: int, on_expire: Callable[[], None]):
        self.cancel()
        self.phase = phase
        self.duration_ms = duration_ms
        self.ends_at = self._loop.time() + duration_ms / 1000
        self._handle = self._loop.call_later(duration_ms / 1000, self._fire, on_expire)

    def cancel(self):
        if self._handle is not None:
            self._handle.cancel()
        self._handle = None
        self.phase = None
        self.ends_at = None
        self.duration_ms = None

    def remaining_ms(self) -> Optional[int]:
        if self.ends_at is None:
            return None
        return max(0, int(round((self.ends_at - self._loop.time()) * 1000)))

    def to_state(self) -> Optional[TimerState]:
        if not self.active:
            return None
        return TimerState(remaining_ms=self.remaining_ms(), duration_ms=self.duration_ms)

    def _fire(self, on_expire: Callable[[], None]):
        phase = self.phase
        self._handle = None
        self.phase = None
        self.ends_at = None
        self.duration_ms = None
        logger.debug("Phase timer expired (%s)", phase.value if phase else None)
        on_expire()
