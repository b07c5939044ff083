"""Content-pointer registries.

Each registry keeps two slots per account:

- the *user* slot, written by the account itself (self-service)
- the *service* slot, written only by the registry owner for its own account

A write fully replaces the previous pointer. Removing a pointer resets the
slot to ``Multihash.EMPTY``. Writes only ever touch the caller's own slot,
so one account can never alter another account's pointer.

``SocialConnections`` and ``FilesystemChanges`` expose the same behaviour
under their own operation names.
"""

from __future__ import annotations

import logging
from typing import Optional

from dappy.auth.access import AccessControl
from dappy.auth.models import Account, normalize_account
from dappy.ledger.context import LedgerContext
from dappy.pointers.models import Multihash

logger = logging.getLogger(__name__)

USER_POINTER_SET = "UserConnectionSet"
SERVICE_POINTER_SET = "ServiceConnectionSet"
POINTER_REMOVED = "ConnectionRemoved"


def _as_pointer(pointer) -> Multihash:
    """Accept a Multihash or a (digest, hash_function, size) tuple."""
    if isinstance(pointer, Multihash):
        return pointer
    return Multihash(*pointer)


class ContentPointerRegistry:
    """Account -> content pointer store with user and service slots."""

    registry_name = "content_pointers"

    def __init__(self, owner: Account, context: Optional[LedgerContext] = None) -> None:
        self.context = context or LedgerContext()
        self.access = AccessControl(owner, self.context, self.registry_name)
        self._user_pointers: dict[Account, Multihash] = {}
        self._service_pointers: dict[Account, Multihash] = {}

    @property
    def owner(self) -> Account:
        return self.access.owner

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def set_user_pointer(self, caller: Account, pointer: Multihash) -> None:
        """Store ``pointer`` in the caller's own user slot."""
        caller = normalize_account(caller)
        pointer = _as_pointer(pointer)
        with self.context.transaction():
            self._store(self._user_pointers, caller, pointer)
            self._emit_set(USER_POINTER_SET, caller, pointer)
        logger.info("%s: user pointer set for %s", self.registry_name, caller)

    def set_service_pointer(self, caller: Account, pointer: Multihash) -> None:
        """Store ``pointer`` in the owner's service slot. Owner only."""
        caller = normalize_account(caller)
        pointer = _as_pointer(pointer)
        with self.context.transaction():
            self.access.require_owner(caller)
            self._store(self._service_pointers, caller, pointer)
            self._emit_set(SERVICE_POINTER_SET, caller, pointer)
        logger.info("%s: service pointer set by %s", self.registry_name, caller)

    def remove_pointer(self, caller: Account, is_service: bool) -> None:
        """Reset the caller's user slot, or the owner's service slot."""
        caller = normalize_account(caller)
        with self.context.transaction():
            if is_service:
                self.access.require_owner(caller)
                self._service_pointers.pop(caller, None)
            else:
                self._user_pointers.pop(caller, None)
            self.context.emit(
                POINTER_REMOVED, self.registry_name, account=caller, is_service=bool(is_service)
            )
        logger.info(
            "%s: %s pointer removed for %s",
            self.registry_name,
            "service" if is_service else "user",
            caller,
        )

    @staticmethod
    def _store(slots: dict[Account, Multihash], account: Account, pointer: Multihash) -> None:
        if pointer.is_empty:
            slots.pop(account, None)
        else:
            slots[account] = pointer

    def _emit_set(self, name: str, account: Account, pointer: Multihash) -> None:
        self.context.emit(
            name,
            self.registry_name,
            account=account,
            digest=pointer.digest,
            hash_function=pointer.hash_function,
            size=pointer.size,
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def user_pointer(self, account: Account) -> Multihash:
        return self._user_pointers.get(normalize_account(account), Multihash.EMPTY)

    def service_pointer(self, account: Account) -> Multihash:
        return self._service_pointers.get(normalize_account(account), Multihash.EMPTY)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def snapshot(self) -> dict:
        return {
            "registry": self.registry_name,
            "access": self.access.snapshot(),
            "user_pointers": {a: p.to_dict() for a, p in sorted(self._user_pointers.items())},
            "service_pointers": {
                a: p.to_dict() for a, p in sorted(self._service_pointers.items())
            },
        }

    @classmethod
    def restore(cls, data: dict, context: Optional[LedgerContext] = None):
        registry = cls(data["access"]["owner"], context)
        registry.access = AccessControl.restore(data["access"], registry.context, cls.registry_name)
        registry._user_pointers = {
            normalize_account(a): Multihash.from_dict(p)
            for a, p in data.get("user_pointers", {}).items()
        }
        registry._service_pointers = {
            normalize_account(a): Multihash.from_dict(p)
            for a, p in data.get("service_pointers", {}).items()
        }
        return registry


class SocialConnections(ContentPointerRegistry):
    """Pointers to each account's social connection graph."""

    registry_name = "social_connections"

    def set_user_connection(self, caller: Account, pointer: Multihash) -> None:
        self.set_user_pointer(caller, pointer)

    def set_service_connection(self, caller: Account, pointer: Multihash) -> None:
        self.set_service_pointer(caller, pointer)

    def remove_connection(self, caller: Account, is_service: bool) -> None:
        self.remove_pointer(caller, is_service)

    def user_connections(self, account: Account) -> Multihash:
        return self.user_pointer(account)

    def service_connections(self, account: Account) -> Multihash:
        return self.service_pointer(account)


class FilesystemChanges(ContentPointerRegistry):
    """Pointers to each account's latest filesystem change set."""

    registry_name = "filesystem_changes"

    def set_user_change(self, caller: Account, pointer: Multihash) -> None:
        self.set_user_pointer(caller, pointer)

    def set_service_change(self, caller: Account, pointer: Multihash) -> None:
        self.set_service_pointer(caller, pointer)

    def remove_change(self, caller: Account, is_service: bool) -> None:
        self.remove_pointer(caller, is_service)

    def user_changes(self, account: Account) -> Multihash:
        return self.user_pointer(account)

    def service_changes(self, account: Account) -> Multihash:
        return self.service_pointer(account)


REGISTRIES = {
    SocialConnections.registry_name: SocialConnections,
    FilesystemChanges.registry_name: FilesystemChanges,
}
