"""Registry error taxonomy.

Every error carries a stable ``message`` string. Consumers (CLI, REST API,
indexers) are allowed to match on it, so the texts below must not change.

Families:
- ``AuthorizationError`` -- caller lacks owner/manager privilege
- ``PreconditionError`` -- entity already exists / does not exist
- ``NonTransferableError`` -- a transfer-style entry point was invoked
- ``InitializationError`` -- re-initialization or invalid configuration
"""

from __future__ import annotations


class RegistryError(Exception):
    """Base class for every error raised by a registry operation."""

    message = "Registry error"

    def __init__(self, message: str | None = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)


# ── Authorization ────────────────────────────────────────────────────


class AuthorizationError(RegistryError):
    message = "Caller is not authorized"


class NotOwnerError(AuthorizationError):
    message = "Ownable: caller is not the owner"


class NotManagerError(AuthorizationError):
    message = "Caller is not the owner or a manager"


class NotPendingOwnerError(AuthorizationError):
    message = "Ownable2Step: caller is not the new owner"


# ── Preconditions ────────────────────────────────────────────────────


class PreconditionError(RegistryError):
    message = "Precondition failed"


class AlreadyVerifiedError(PreconditionError):
    message = "User already has a token"


class TokenExistsError(PreconditionError):
    message = "Token already exists"


class TokenNotFoundError(PreconditionError):
    message = "Token does not exist"


class NoTokenError(PreconditionError):
    message = "User does not have a token"


# ── Capability removed ───────────────────────────────────────────────


class NonTransferableError(RegistryError):
    message = "Token is non-transferable"


# ── Initialization / configuration ───────────────────────────────────


class InitializationError(RegistryError):
    message = "Initialization failed"


class AlreadyInitializedError(InitializationError):
    message = "Initializable: contract is already initialized"


class NotInitializedError(InitializationError):
    message = "Registry is not initialized"


class ConfigError(InitializationError):
    message = "Invalid configuration"


# ── Malformed input ──────────────────────────────────────────────────


class InvalidAccountError(ValueError):
    """Raised when a value cannot be parsed as an account address."""


class InvalidPointerError(ValueError):
    """Raised when a content pointer has out-of-range fields."""
