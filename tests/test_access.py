"""Tests for owner/manager access control."""

import pytest

from dappy.auth.access import AccessControl
from dappy.auth.models import ZERO_ACCOUNT, Role, is_zero_account, normalize_account
from dappy.auth.permissions import has_permission, require_role
from dappy.errors import (
    InvalidAccountError,
    NotManagerError,
    NotOwnerError,
    NotPendingOwnerError,
)
from dappy.ledger.clock import ManualClock
from dappy.ledger.context import LedgerContext

OWNER = "0x" + "1" * 40
MANAGER = "0x" + "2" * 40
SECOND = "0x" + "3" * 40
STRANGER = "0x" + "4" * 40


def _access():
    return AccessControl(OWNER, LedgerContext(clock=ManualClock()), "test")


# --- accounts and roles ---


def test_normalize_account_lowercases():
    assert normalize_account("0x" + "AbCd" * 10) == "0x" + "abcd" * 10


@pytest.mark.parametrize("value", ["", "0x123", "1" * 40, "0x" + "g" * 40, None])
def test_normalize_account_rejects_garbage(value):
    with pytest.raises(InvalidAccountError):
        normalize_account(value)


def test_is_zero_account():
    assert is_zero_account(ZERO_ACCOUNT)
    assert not is_zero_account(OWNER)


def test_role_levels():
    assert Role.owner.level > Role.manager.level > Role.public.level
    assert has_permission(Role.owner, Role.manager)
    assert has_permission("manager", Role.manager)
    assert not has_permission(Role.public, Role.manager)
    assert not has_permission(Role.manager, Role.owner)


def test_require_role_errors():
    with pytest.raises(NotOwnerError):
        require_role(Role.manager, Role.owner)
    with pytest.raises(NotManagerError):
        require_role(Role.public, Role.manager)
    require_role(Role.owner, Role.manager)


# --- construction ---


def test_zero_owner_rejected():
    with pytest.raises(InvalidAccountError):
        AccessControl(ZERO_ACCOUNT, LedgerContext())


def test_role_of():
    access = _access()
    access.set_managers(OWNER, [MANAGER], True)
    assert access.role_of(OWNER) == Role.owner
    assert access.role_of(MANAGER) == Role.manager
    assert access.role_of(STRANGER) == Role.public


# --- managers ---


def test_set_managers_enables_and_disables():
    access = _access()
    changed = access.set_managers(OWNER, [MANAGER, SECOND], True)
    assert changed == [MANAGER, SECOND]
    assert access.managers() == [MANAGER, SECOND]

    changed = access.set_managers(OWNER, [MANAGER], False)
    assert changed == [MANAGER]
    assert not access.is_manager(MANAGER)
    assert access.is_manager(SECOND)


def test_set_managers_is_idempotent():
    access = _access()
    access.set_managers(OWNER, [MANAGER], True)
    assert access.set_managers(OWNER, [MANAGER, MANAGER], True) == []
    assert access.managers() == [MANAGER]
    assert access.set_managers(OWNER, [STRANGER], False) == []


def test_set_managers_emits_one_event_per_call():
    access = _access()
    events = access._context.events
    access.set_managers(OWNER, [MANAGER, SECOND], True)
    access.set_managers(OWNER, [], True)
    updates = events.filter(name="ManagersUpdated")
    assert len(updates) == 2
    assert updates[0].args == {"accounts": [MANAGER, SECOND], "enabled": True}
    assert updates[1].args == {"accounts": [], "enabled": True}
    assert updates[0].registry == "test"


def test_only_owner_can_set_managers():
    access = _access()
    access.set_managers(OWNER, [MANAGER], True)
    with pytest.raises(NotOwnerError):
        access.set_managers(MANAGER, [SECOND], True)
    with pytest.raises(NotOwnerError):
        access.set_managers(STRANGER, [STRANGER], True)
    assert access.managers() == [MANAGER]


def test_set_managers_with_bad_address_changes_nothing():
    access = _access()
    with pytest.raises(InvalidAccountError):
        access.set_managers(OWNER, [MANAGER, "nope"], True)
    assert access.managers() == []
    assert len(access._context.events) == 0


def test_owner_or_manager_check():
    access = _access()
    access.set_managers(OWNER, [MANAGER], True)
    access.require_owner_or_manager(OWNER)
    access.require_owner_or_manager(MANAGER)
    with pytest.raises(NotManagerError):
        access.require_owner_or_manager(STRANGER)


def test_owner_check_is_strict():
    access = _access()
    access.set_managers(OWNER, [MANAGER], True)
    access.require_owner(OWNER)
    with pytest.raises(NotOwnerError):
        access.require_owner(MANAGER)


# --- ownership ---


def test_transfer_ownership():
    access = _access()
    access.transfer_ownership(OWNER, SECOND)
    assert access.owner == SECOND
    with pytest.raises(NotOwnerError):
        access.require_owner(OWNER)
    event = access._context.events.last()
    assert event.name == "OwnershipTransferred"
    assert event.args == {"previous_owner": OWNER, "new_owner": SECOND}


def test_transfer_to_zero_account_rejected():
    access = _access()
    with pytest.raises(InvalidAccountError):
        access.transfer_ownership(OWNER, ZERO_ACCOUNT)
    assert access.owner == OWNER


def test_two_step_transfer():
    access = _access()
    access.begin_ownership_transfer(OWNER, SECOND)
    assert access.pending_owner == SECOND
    assert access.owner == OWNER

    with pytest.raises(NotPendingOwnerError):
        access.accept_ownership(STRANGER)

    access.accept_ownership(SECOND)
    assert access.owner == SECOND
    assert access.pending_owner is None
    names = [e.name for e in access._context.events]
    assert names == ["OwnershipTransferStarted", "OwnershipTransferred"]


def test_accept_without_pending_owner_fails():
    access = _access()
    with pytest.raises(NotPendingOwnerError):
        access.accept_ownership(OWNER)


def test_snapshot_restore():
    access = _access()
    access.set_managers(OWNER, [MANAGER], True)
    access.begin_ownership_transfer(OWNER, SECOND)
    restored = AccessControl.restore(access.snapshot(), LedgerContext(), "test")
    assert restored.owner == OWNER
    assert restored.pending_owner == SECOND
    assert restored.managers() == [MANAGER]


def test_restore_normalizes_pending_owner():
    data = {"owner": OWNER.upper().replace("0X", "0x"), "pending_owner": "0x" + "AB" * 20, "managers": []}
    restored = AccessControl.restore(data, LedgerContext(), "test")
    assert restored.pending_owner == "0x" + "ab" * 20
    restored.accept_ownership("0x" + "ab" * 20)
    assert restored.owner == "0x" + "ab" * 20


def test_restore_without_pending_owner():
    restored = AccessControl.restore({"owner": OWNER, "pending_owner": None}, LedgerContext())
    assert restored.pending_owner is None
