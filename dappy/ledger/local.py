"""Local ledger: every registry bound to one context and one state store."""

from __future__ import annotations

import logging
from typing import Optional

from dappy.ledger.context import LedgerContext
from dappy.ledger.store import StateStore
from dappy.pointers.registry import REGISTRIES, ContentPointerRegistry
from dappy.verification.registry import UserVerification

logger = logging.getLogger(__name__)


class LocalLedger:
    """Loads registries from a ``StateStore`` into a shared ``LedgerContext``."""

    def __init__(self, store: StateStore, context: Optional[LedgerContext] = None) -> None:
        self.store = store
        self.context = context or LedgerContext()
        self._verification: Optional[UserVerification] = None
        self._pointers: dict[str, ContentPointerRegistry] = {}

    @property
    def verification(self) -> UserVerification:
        """The verification registry; uninitialized if never saved."""
        if self._verification is None:
            data = self.store.load(UserVerification.registry_name)
            if data is None:
                self._verification = UserVerification(self.context)
            else:
                self._verification = UserVerification.restore(data, self.context)
        return self._verification

    def pointers(self, name: str) -> Optional[ContentPointerRegistry]:
        """Return the named pointer registry, or None if it was never created."""
        if name not in REGISTRIES:
            raise ValueError(f"Unknown pointer registry: {name}")
        if name not in self._pointers:
            data = self.store.load(name)
            if data is None:
                return None
            self._pointers[name] = REGISTRIES[name].restore(data, self.context)
        return self._pointers[name]

    def create_pointers(self, name: str, owner: str) -> ContentPointerRegistry:
        if name not in REGISTRIES:
            raise ValueError(f"Unknown pointer registry: {name}")
        if name in self._pointers or self.store.exists(name):
            raise FileExistsError(f"Registry '{name}' already exists in {self.store.base_dir}")
        registry = REGISTRIES[name](owner, self.context)
        self._pointers[name] = registry
        logger.info("created %s registry owned by %s", name, registry.owner)
        return registry

    def save(self) -> None:
        """Write every loaded registry back to the store."""
        if self._verification is not None and self._verification.initialized:
            self.store.save(UserVerification.registry_name, self._verification.snapshot())
        for name, registry in self._pointers.items():
            self.store.save(name, registry.snapshot())
