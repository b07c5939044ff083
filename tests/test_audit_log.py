"""Tests for the registry audit log."""

import json
import shutil
import tempfile
from pathlib import Path

import pytest

from dappy.errors import TokenNotFoundError
from dappy.ledger.clock import ManualClock
from dappy.ledger.context import LedgerContext
from dappy.security.audit_log import AuditLogger
from dappy.verification.registry import UserVerification

OWNER = "0x" + "1" * 40
ALICE = "0x" + "a" * 40
BOB = "0x" + "b" * 40


def _attached(tmpdir: str):
    audit = AuditLogger(Path(tmpdir) / "audit")
    context = LedgerContext(clock=ManualClock(500))
    audit.attach(context.events)
    registry = UserVerification(context)
    registry.initialize(OWNER, "UserVerificationToken", "UVT", 60)
    return audit, registry


def test_events_are_recorded():
    with tempfile.TemporaryDirectory() as tmpdir:
        audit, registry = _attached(tmpdir)
        registry.issue_token(OWNER, ALICE)
        registry.revoke_token(OWNER, 1)

        entries = audit.get_events(registry="verification")
        assert [e.action for e in entries] == ["TokenRevoked", "TokenIssued", "Initialized"]
        issued = entries[1]
        assert issued.actor == ALICE
        assert issued.resource_id == "1"
        assert issued.ledger_time == 500
        assert issued.details["expires_at"] == 560


def test_failed_calls_are_not_recorded():
    with tempfile.TemporaryDirectory() as tmpdir:
        audit, registry = _attached(tmpdir)
        with pytest.raises(TokenNotFoundError):
            registry.revoke_token(OWNER, 99)
        assert audit.get_events(action="TokenRevoked") == []


def test_filters_and_limit():
    with tempfile.TemporaryDirectory() as tmpdir:
        audit, registry = _attached(tmpdir)
        registry.issue_token(OWNER, ALICE)
        registry.issue_token(OWNER, BOB)

        assert len(audit.get_events(action="TokenIssued")) == 2
        assert [e.resource_id for e in audit.get_events(actor=BOB.upper().replace("0X", "0x"))] == ["2"]
        assert len(audit.get_events(limit=1)) == 1
        assert audit.get_events(registry="social_connections") == []


def test_malformed_lines_are_skipped():
    with tempfile.TemporaryDirectory() as tmpdir:
        audit, registry = _attached(tmpdir)
        registry.issue_token(OWNER, ALICE)
        log_file = next((Path(tmpdir) / "audit").glob("*.jsonl"))
        with log_file.open("a") as fh:
            fh.write("not json\n\n")
            fh.write(json.dumps({"unexpected": True}) + "\n")

        assert len(audit.get_events()) == 2


def test_export_json_and_csv():
    with tempfile.TemporaryDirectory() as tmpdir:
        audit, registry = _attached(tmpdir)
        registry.issue_token(OWNER, ALICE)

        exported = json.loads(audit.export_events("json", action="TokenIssued"))
        assert exported[0]["details"]["account"] == ALICE

        csv_text = audit.export_events("csv")
        lines = csv_text.splitlines()
        assert lines[0].startswith("id,timestamp,sequence")
        assert len(lines) == 3


def test_unwritable_audit_dir_does_not_undo_mutation():
    with tempfile.TemporaryDirectory() as tmpdir:
        _, registry = _attached(tmpdir)
        shutil.rmtree(Path(tmpdir) / "audit")

        token_id = registry.issue_token(OWNER, ALICE)

        assert registry.has_token(ALICE)
        assert registry.context.events.last().name == "TokenIssued"
        assert registry.context.events.handler_errors == 1
        assert registry.issue_token(OWNER, BOB) == token_id + 1
