"""Ledger clocks.

Registries never read the wall clock directly; they ask the clock bound to
their ``LedgerContext``. Time is unix seconds and never goes backwards.
"""

from __future__ import annotations

import threading
import time


class SystemClock:
    """Wall-clock time, truncated to whole seconds.

    Never returns less than a value it already returned, even if the
    system clock is stepped backwards.
    """

    def __init__(self) -> None:
        self._last = 0
        self._lock = threading.Lock()

    def now(self) -> int:
        with self._lock:
            self._last = max(self._last, int(time.time()))
            return self._last


class ManualClock:
    """A clock that only moves when told to. Used by tests and replays."""

    def __init__(self, start: int = 0) -> None:
        if start < 0:
            raise ValueError("start time must be non-negative")
        self._now = start

    def now(self) -> int:
        return self._now

    def advance(self, seconds: int) -> int:
        """Move time forward by ``seconds`` and return the new time."""
        if seconds < 0:
            raise ValueError("cannot advance the clock by a negative amount")
        self._now += seconds
        return self._now

    def set(self, timestamp: int) -> None:
        if timestamp < self._now:
            raise ValueError(
                f"clock is monotonic: {timestamp} is before current time {self._now}"
            )
        self._now = timestamp
