from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)


def should_fire(now: float, last_input_at: Optional[float], quiet_period: float) -> bool:
    """True once input has been quiet for at least ``quiet_period`` seconds."""

    if last_input_at is None:
        return False
    return now - last_input_at >= quiet_period


class Debouncer:
    """Cancel-and-reschedule timer in front of the forward search.

    Every ``push`` restarts the quiet period. When it elapses without further
    input the callback receives the final trimmed text, provided it has at
    least ``min_chars`` characters. Empty input cancels the timer outright.
    """

    def __init__(
        self,
        callback: Callable[[str], object],
        *,
        quiet_period: float = 0.5,
        min_chars: int = 3,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self.callback = callback
        self.quiet_period = quiet_period
        self.min_chars = min_chars
        self._clock = clock
        self._handle: Optional[asyncio.TimerHandle] = None
        self._last_input_at: Optional[float] = None
        self._text = ""

    @property
    def pending(self) -> bool:
        return self._handle is not None

    @property
    def text(self) -> str:
        return self._text

    def _now(self, loop: asyncio.AbstractEventLoop) -> float:
        return self._clock() if self._clock is not None else loop.time()

    def push(self, text: str) -> None:
        self._text = text or ""
        self.cancel()
        if not self._text.strip():
            return
        loop = asyncio.get_running_loop()
        self._last_input_at = self._now(loop)
        self._handle = loop.call_later(self.quiet_period, self._elapsed, loop)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _elapsed(self, loop: asyncio.AbstractEventLoop) -> None:
        self._handle = None
        now = self._now(loop)
        if not should_fire(now, self._last_input_at, self.quiet_period):
            # The loop may run a timer up to one clock tick early.
            remaining = self.quiet_period - (now - (self._last_input_at or now))
            self._handle = loop.call_later(max(remaining, 0.0), self._elapsed, loop)
            return
        query = self._text.strip()
        if len(query) < self.min_chars:
            logger.debug("Search skipped, %d chars below minimum", len(query))
            return
        self.callback(query)
