"""Registry notifications.

Each successful mutation appends exactly one ``RegistryEvent`` per logical
change to the shared ``EventLog``. Failed calls append nothing.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegistryEvent:
    """A single notification emitted by a registry."""

    sequence: int
    name: str
    registry: str
    timestamp: int
    args: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


Subscriber = Callable[[RegistryEvent], None]


class EventLog:
    """Append-only, in-memory event log with synchronous subscribers."""

    def __init__(self) -> None:
        self._events: list[RegistryEvent] = []
        self._subscribers: list[Subscriber] = []
        self.handler_errors = 0

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self):
        return iter(list(self._events))

    def subscribe(self, callback: Subscriber) -> None:
        """Register a callback invoked with every appended event.

        A callback that raises is logged and skipped; later callbacks and
        later events are still delivered.
        """
        self._subscribers.append(callback)

    def append(
        self, name: str, registry: str, timestamp: int, args: dict[str, Any]
    ) -> RegistryEvent:
        event = RegistryEvent(
            sequence=len(self._events) + 1,
            name=name,
            registry=registry,
            timestamp=timestamp,
            args=dict(args),
        )
        self._events.append(event)
        logger.debug("event #%d %s.%s %s", event.sequence, registry, name, args)
        for callback in self._subscribers:
            try:
                callback(event)
            except Exception:
                # The mutation is already applied; a subscriber cannot undo it.
                self.handler_errors += 1
                logger.exception("subscriber %r failed on event #%d %s", callback, event.sequence, name)
        return event

    def filter(
        self, *, name: Optional[str] = None, registry: Optional[str] = None
    ) -> list[RegistryEvent]:
        """Return events matching the given name and/or registry, oldest first."""
        events = list(self._events)
        if name:
            events = [e for e in events if e.name == name]
        if registry:
            events = [e for e in events if e.registry == registry]
        return events

    def last(self) -> Optional[RegistryEvent]:
        return self._events[-1] if self._events else None
