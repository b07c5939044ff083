"""Audit logging for registry events.

Persists every ``RegistryEvent`` as newline-delimited JSON in daily log
files under ``~/.dappy/audit_logs/``, with filtering and export. Attach it
to a ledger with ``AuditLogger.attach(context.events)``.
"""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from dappy.ledger.events import EventLog, RegistryEvent

logger = logging.getLogger(__name__)

_ACTOR_KEYS = ("account", "from_account", "new_owner", "owner")


@dataclass
class AuditEntry:
    """A single audit log entry."""

    id: str
    timestamp: str
    actor: str
    action: str
    registry: str
    resource_id: str
    sequence: int = 0
    ledger_time: int = 0
    details: dict[str, Any] = field(default_factory=dict)


class AuditLogger:
    """File-based JSON audit logger."""

    def __init__(self, base_dir: Optional[Path] = None) -> None:
        self._base_dir = Path(base_dir) if base_dir else Path.home() / ".dappy" / "audit_logs"
        self._base_dir.mkdir(parents=True, exist_ok=True)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _log_file_for_date(self, dt: datetime) -> Path:
        return self._base_dir / f"{dt.strftime('%Y-%m-%d')}.jsonl"

    def _current_log_file(self) -> Path:
        return self._log_file_for_date(datetime.now(timezone.utc))

    def _read_all_entries(self) -> list[AuditEntry]:
        """Read every entry from all log files."""
        entries: list[AuditEntry] = []
        for path in sorted(self._base_dir.glob("*.jsonl")):
            for lineno, line in enumerate(path.read_text(encoding="utf-8").splitlines(), 1):
                if not line.strip():
                    continue
                try:
                    entries.append(AuditEntry(**json.loads(line)))
                except (json.JSONDecodeError, TypeError):
                    logger.warning("skipping malformed audit line %s:%d", path.name, lineno)
        return entries

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def attach(self, events: EventLog) -> None:
        """Record every event appended to ``events`` from now on."""
        events.subscribe(self.record)

    def record(self, event: RegistryEvent) -> AuditEntry:
        """Persist one registry event and return the created entry."""
        args = event.args
        actor = next((str(args[k]) for k in _ACTOR_KEYS if args.get(k)), "")
        resource_id = str(args.get("token_id", args.get("account", "")))
        entry = AuditEntry(
            id=uuid.uuid4().hex[:16],
            timestamp=datetime.now(timezone.utc).isoformat(),
            actor=actor,
            action=event.name,
            registry=event.registry,
            resource_id=resource_id,
            sequence=event.sequence,
            ledger_time=event.timestamp,
            details=dict(args),
        )
        with self._current_log_file().open("a", encoding="utf-8") as fh:
            fh.write(json.dumps(asdict(entry)) + "\n")
        return entry

    def get_events(
        self,
        *,
        actor: Optional[str] = None,
        action: Optional[str] = None,
        registry: Optional[str] = None,
        limit: int = 200,
    ) -> list[AuditEntry]:
        """Return filtered audit entries, newest first."""
        entries = self._read_all_entries()

        if actor:
            entries = [e for e in entries if e.actor == actor.lower()]
        if action:
            entries = [e for e in entries if e.action == action]
        if registry:
            entries = [e for e in entries if e.registry == registry]

        entries.sort(key=lambda e: (e.timestamp, e.sequence), reverse=True)
        return entries[:limit]

    def export_events(self, fmt: str = "json", **filters: Any) -> str:
        """Export audit entries as ``json`` or ``csv``."""
        entries = self.get_events(**filters)

        if fmt == "csv":
            lines = ["id,timestamp,sequence,ledger_time,actor,action,registry,resource_id"]
            for e in entries:
                lines.append(
                    f"{e.id},{e.timestamp},{e.sequence},{e.ledger_time},{e.actor},"
                    f"{e.action},{e.registry},{e.resource_id}"
                )
            return "\n".join(lines)

        return json.dumps([asdict(e) for e in entries], indent=2)
