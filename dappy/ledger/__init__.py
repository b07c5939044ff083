"""The execution environment registries run in.

Provides:
- Clocks: wall-clock and manually advanced time
- Events: the append-only notification log
- Context: serialized, atomic application of mutating calls
- Store: JSON snapshots of registry state on disk
"""

from dappy.ledger.clock import ManualClock, SystemClock
from dappy.ledger.context import LedgerContext
from dappy.ledger.events import EventLog, RegistryEvent

__all__ = ["EventLog", "LedgerContext", "ManualClock", "RegistryEvent", "SystemClock"]
