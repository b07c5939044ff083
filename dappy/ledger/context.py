"""Execution context shared by every registry on one ledger.

The context owns three things the registries must agree on:

- the clock (one monotonically non-decreasing time source)
- the event log (one notification stream, in commit order)
- the writer lock (at most one mutating call applied at a time)

Mutating registry operations run inside ``transaction()``. Events emitted
inside a transaction are buffered and only appended to the log when the
transaction commits, so a call that raises leaves no trace.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Any, Iterator, Optional

from dappy.ledger.clock import SystemClock
from dappy.ledger.events import EventLog


class LedgerContext:
    """Clock, event log and single-writer lock for a group of registries."""

    def __init__(self, clock=None, events: Optional[EventLog] = None) -> None:
        self.clock = clock or SystemClock()
        self.events = events or EventLog()
        self._lock = threading.Lock()
        self._writer: Optional[int] = None
        self._pending: list[tuple[str, str, dict[str, Any]]] = []

    def now(self) -> int:
        return self.clock.now()

    @property
    def in_transaction(self) -> bool:
        return self._writer == threading.get_ident()

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Apply one mutating call atomically.

        Raises ``RuntimeError`` on reentry from the thread already holding
        the writer lock.
        """
        if self.in_transaction:
            raise RuntimeError("reentrant registry call")
        with self._lock:
            self._writer = threading.get_ident()
            self._pending = []
            try:
                yield
            except BaseException:
                self._pending = []
                raise
            else:
                timestamp = self.now()
                for name, registry, args in self._pending:
                    self.events.append(name, registry, timestamp, args)
                self._pending = []
            finally:
                self._writer = None

    def emit(self, name: str, registry: str, **args: Any) -> None:
        """Queue a notification for the running transaction."""
        if not self.in_transaction:
            raise RuntimeError("events can only be emitted inside a transaction")
        self._pending.append((name, registry, args))
