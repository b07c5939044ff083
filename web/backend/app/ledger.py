"""Shared ledger instance and registry-error translation for the API."""

from __future__ import annotations

from typing import Optional

from fastapi import status

from dappy.config import load_settings
from dappy.errors import (
    AuthorizationError,
    InitializationError,
    NonTransferableError,
    NoTokenError,
    PreconditionError,
    RegistryError,
    TokenNotFoundError,
)
from dappy.ledger.local import LocalLedger
from dappy.ledger.store import StateStore
from dappy.security.audit_log import AuditLogger

_ledger: Optional[LocalLedger] = None


def get_ledger() -> LocalLedger:
    """Return the singleton LocalLedger for the configured state directory."""
    global _ledger
    if _ledger is None:
        settings = load_settings()
        _ledger = LocalLedger(StateStore(settings.state_path))
        AuditLogger(settings.state_path.parent / "audit_logs").attach(_ledger.context.events)
    return _ledger


def status_for(exc: RegistryError) -> int:
    """Map a registry error family to an HTTP status code."""
    if isinstance(exc, AuthorizationError):
        return status.HTTP_403_FORBIDDEN
    if isinstance(exc, (TokenNotFoundError, NoTokenError)):
        return status.HTTP_404_NOT_FOUND
    if isinstance(exc, (PreconditionError, InitializationError)):
        return status.HTTP_409_CONFLICT
    if isinstance(exc, NonTransferableError):
        return status.HTTP_405_METHOD_NOT_ALLOWED
    return status.HTTP_400_BAD_REQUEST
