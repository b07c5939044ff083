"""Owner / manager access control shared by every registry.

Each registry instance owns its own ``AccessControl``; there is no global
owner state. Owner-only operations (ownership transfer, manager updates)
require ``caller == owner`` strictly. Elevated registry operations accept
the owner or any enabled manager.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from dappy.auth.models import Account, Role, is_zero_account, normalize_account
from dappy.auth.permissions import require_role
from dappy.errors import AuthorizationError, InvalidAccountError, NotPendingOwnerError
from dappy.ledger.context import LedgerContext

logger = logging.getLogger(__name__)


class AccessControl:
    """One owner, an optional pending owner, and a set of managers."""

    def __init__(self, owner: Account, context: LedgerContext, registry: str = "") -> None:
        if is_zero_account(owner):
            raise InvalidAccountError("Owner cannot be the zero account")
        self._owner = normalize_account(owner)
        self._pending_owner: Optional[Account] = None
        self._managers: set[Account] = set()
        self._context = context
        self._registry = registry

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def owner(self) -> Account:
        return self._owner

    @property
    def pending_owner(self) -> Optional[Account]:
        return self._pending_owner

    def is_manager(self, account: Account) -> bool:
        return normalize_account(account) in self._managers

    def managers(self) -> list[Account]:
        return sorted(self._managers)

    def role_of(self, account: Account) -> Role:
        account = normalize_account(account)
        if account == self._owner:
            return Role.owner
        if account in self._managers:
            return Role.manager
        return Role.public

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    def require_owner(self, caller: Account) -> None:
        self._require(caller, Role.owner)

    def require_owner_or_manager(self, caller: Account) -> None:
        self._require(caller, Role.manager)

    def _require(self, caller: Account, role: Role) -> None:
        try:
            require_role(self.role_of(caller), role)
        except AuthorizationError:
            logger.warning(
                "%s: rejected %s-only call from %s", self._registry, role.value, caller
            )
            raise

    # ------------------------------------------------------------------
    # Owner-only mutations
    # ------------------------------------------------------------------

    def transfer_ownership(self, caller: Account, new_owner: Account) -> None:
        """Hand ownership to ``new_owner`` in a single step."""
        with self._context.transaction():
            self.require_owner(caller)
            new_owner = self._valid_new_owner(new_owner)
            previous = self._owner
            self._owner = new_owner
            self._pending_owner = None
            self._context.emit(
                "OwnershipTransferred",
                self._registry,
                previous_owner=previous,
                new_owner=new_owner,
            )
        logger.info("%s: ownership transferred %s -> %s", self._registry, previous, new_owner)

    def begin_ownership_transfer(self, caller: Account, new_owner: Account) -> None:
        """Nominate ``new_owner``; the transfer completes on ``accept_ownership``."""
        with self._context.transaction():
            self.require_owner(caller)
            new_owner = self._valid_new_owner(new_owner)
            self._pending_owner = new_owner
            self._context.emit(
                "OwnershipTransferStarted",
                self._registry,
                previous_owner=self._owner,
                new_owner=new_owner,
            )

    def accept_ownership(self, caller: Account) -> None:
        with self._context.transaction():
            caller = normalize_account(caller)
            if self._pending_owner is None or caller != self._pending_owner:
                raise NotPendingOwnerError()
            previous = self._owner
            self._owner = caller
            self._pending_owner = None
            self._context.emit(
                "OwnershipTransferred",
                self._registry,
                previous_owner=previous,
                new_owner=caller,
            )
        logger.info("%s: ownership accepted by %s", self._registry, caller)

    def set_managers(self, caller: Account, accounts: Iterable[Account], enabled: bool) -> list[Account]:
        """Enable or disable every account in ``accounts``.

        Duplicates and accounts already in the requested state are no-ops.
        Returns the accounts whose status actually changed.
        """
        with self._context.transaction():
            self.require_owner(caller)
            requested = [normalize_account(a) for a in accounts]
            changed: list[Account] = []
            for account in requested:
                if enabled and account not in self._managers:
                    self._managers.add(account)
                    changed.append(account)
                elif not enabled and account in self._managers:
                    self._managers.discard(account)
                    changed.append(account)
            self._context.emit(
                "ManagersUpdated",
                self._registry,
                accounts=changed,
                enabled=bool(enabled),
            )
        logger.info(
            "%s: %s %d manager(s)",
            self._registry,
            "enabled" if enabled else "disabled",
            len(changed),
        )
        return changed

    @staticmethod
    def _valid_new_owner(new_owner: Account) -> Account:
        if is_zero_account(new_owner):
            raise InvalidAccountError("New owner cannot be the zero account")
        return normalize_account(new_owner)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def snapshot(self) -> dict:
        return {
            "owner": self._owner,
            "pending_owner": self._pending_owner,
            "managers": self.managers(),
        }

    @classmethod
    def restore(cls, data: dict, context: LedgerContext, registry: str = "") -> "AccessControl":
        access = cls(data["owner"], context, registry)
        pending = data.get("pending_owner")
        access._pending_owner = normalize_account(pending) if pending else None
        access._managers = {normalize_account(m) for m in data.get("managers", [])}
        return access
