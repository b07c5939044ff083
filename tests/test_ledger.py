"""Tests for the ledger context, clocks, event log and state store."""

import json
import tempfile
import threading
import time
from pathlib import Path

import pytest

from dappy.errors import TokenExistsError
from dappy.ledger.clock import ManualClock, SystemClock
from dappy.ledger.context import LedgerContext
from dappy.ledger.events import EventLog
from dappy.ledger.local import LocalLedger
from dappy.ledger.store import StateStore
from dappy.pointers.models import Multihash
from dappy.verification.registry import UserVerification

OWNER = "0x" + "1" * 40
ALICE = "0x" + "a" * 40


# --- clocks ---


def test_manual_clock_moves_forward_only():
    clock = ManualClock(10)
    assert clock.now() == 10
    assert clock.advance(5) == 15
    clock.set(20)
    assert clock.now() == 20
    with pytest.raises(ValueError):
        clock.advance(-1)
    with pytest.raises(ValueError):
        clock.set(19)


def test_system_clock_returns_whole_seconds():
    assert isinstance(SystemClock().now(), int)


def test_system_clock_never_goes_backwards(monkeypatch):
    readings = iter([1_000.9, 995.0, 1_002.2])
    monkeypatch.setattr(time, "time", lambda: next(readings))
    clock = SystemClock()
    assert [clock.now(), clock.now(), clock.now()] == [1_000, 1_000, 1_002]


# --- event log ---


def test_event_log_sequences_and_subscribers():
    log = EventLog()
    seen = []
    log.subscribe(seen.append)
    first = log.append("A", "r1", 1, {"x": 1})
    second = log.append("B", "r2", 2, {})
    assert (first.sequence, second.sequence) == (1, 2)
    assert seen == [first, second]
    assert log.filter(registry="r2") == [second]
    assert log.filter(name="A") == [first]
    assert log.last() == second
    assert first.to_dict()["args"] == {"x": 1}


def test_failing_subscriber_does_not_break_commit():
    context = LedgerContext(clock=ManualClock(5))
    seen = []

    def broken(event):
        raise OSError("disk gone")

    context.events.subscribe(broken)
    context.events.subscribe(seen.append)
    with context.transaction():
        context.emit("First", "test")
        context.emit("Second", "test")

    assert [e.name for e in context.events] == ["First", "Second"]
    assert [e.name for e in seen] == ["First", "Second"]
    assert context.events.handler_errors == 2


# --- context ---


def test_events_only_committed_on_success():
    context = LedgerContext(clock=ManualClock(7))
    with context.transaction():
        context.emit("Done", "test", value=1)
    with pytest.raises(KeyError):
        with context.transaction():
            context.emit("Lost", "test")
            raise KeyError("boom")
    assert [e.name for e in context.events] == ["Done"]
    assert context.events.last().timestamp == 7


def test_emit_outside_transaction_fails():
    context = LedgerContext()
    with pytest.raises(RuntimeError):
        context.emit("Nope", "test")


def test_reentrant_transaction_rejected():
    context = LedgerContext()
    with context.transaction():
        assert context.in_transaction
        with pytest.raises(RuntimeError):
            with context.transaction():
                pass
    assert not context.in_transaction


# --- state store ---


def test_state_store_save_and_load():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = StateStore(Path(tmpdir) / "state")
        assert store.load("verification") is None
        assert not store.exists("verification")

        path = store.save("verification", {"b": 1, "a": 2})
        assert store.exists("verification")
        assert store.load("verification") == {"a": 2, "b": 1}
        assert list(json.loads(path.read_text())) == ["a", "b"]
        assert not path.with_suffix(".json.tmp").exists()


def test_state_store_rejects_unknown_registry():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = StateStore(tmpdir)
        with pytest.raises(ValueError):
            store.save("bogus", {})


# --- local ledger ---


def test_local_ledger_persists_registries():
    with tempfile.TemporaryDirectory() as tmpdir:
        ledger = LocalLedger(StateStore(tmpdir), LedgerContext(clock=ManualClock(100)))
        ledger.verification.initialize(OWNER, "UserVerificationToken", "UVT", 3600)
        ledger.verification.issue_token(OWNER, ALICE)
        social = ledger.create_pointers("social_connections", OWNER)
        social.set_user_pointer(ALICE, Multihash.from_content("graph"))
        ledger.save()

        reloaded = LocalLedger(StateStore(tmpdir), LedgerContext(clock=ManualClock(200)))
        assert reloaded.verification.get_token_id(ALICE) == 1
        assert reloaded.verification.token_expiry(1) == 3700
        assert reloaded.pointers("social_connections").user_pointer(ALICE) == (
            Multihash.from_content("graph")
        )
        assert reloaded.pointers("filesystem_changes") is None


def test_local_ledger_uninitialized_verification_not_saved():
    with tempfile.TemporaryDirectory() as tmpdir:
        ledger = LocalLedger(StateStore(tmpdir))
        assert not ledger.verification.initialized
        ledger.save()
        assert not ledger.store.exists("verification")


def test_create_pointers_twice_fails():
    with tempfile.TemporaryDirectory() as tmpdir:
        ledger = LocalLedger(StateStore(tmpdir))
        ledger.create_pointers("filesystem_changes", OWNER)
        with pytest.raises(FileExistsError):
            ledger.create_pointers("filesystem_changes", OWNER)
        with pytest.raises(ValueError):
            ledger.create_pointers("verification", OWNER)


# --- concurrency ---


def test_concurrent_issue_of_same_token_id():
    registry = UserVerification(LedgerContext(clock=ManualClock(1)))
    registry.initialize(OWNER, "UserVerificationToken", "UVT", 3600)
    accounts = ["0x" + f"{i + 1:040x}" for i in range(32)]
    results = []
    barrier = threading.Barrier(len(accounts))

    def issue(account):
        barrier.wait()
        try:
            registry.issue_token(OWNER, account, 7)
            results.append("ok")
        except TokenExistsError:
            results.append("exists")

    threads = [threading.Thread(target=issue, args=(a,)) for a in accounts]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results.count("ok") == 1
    assert results.count("exists") == len(accounts) - 1
    assert registry.total_supply() == 1
    assert len(registry.context.events.filter(name="TokenIssued")) == 1


def test_concurrent_issues_get_distinct_ids():
    registry = UserVerification(LedgerContext(clock=ManualClock(1)))
    registry.initialize(OWNER, "UserVerificationToken", "UVT", 3600)
    accounts = ["0x" + f"{i + 1:040x}" for i in range(16)]

    threads = [threading.Thread(target=registry.issue_token, args=(OWNER, a)) for a in accounts]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sorted(registry.get_token_id(a) for a in accounts) == list(range(1, 17))
