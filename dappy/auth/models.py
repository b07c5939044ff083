"""Account identities and registry roles."""

from __future__ import annotations

import re
from enum import Enum

from dappy.errors import InvalidAccountError

Account = str

ZERO_ACCOUNT: Account = "0x" + "0" * 40

_ACCOUNT_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


def normalize_account(value: str) -> Account:
    """Return the canonical (lower-case) form of an account address.

    Raises ``InvalidAccountError`` if ``value`` is not a 0x-prefixed
    20-byte hex string.
    """
    if not isinstance(value, str) or not _ACCOUNT_RE.match(value.strip()):
        raise InvalidAccountError(f"Invalid account address: {value!r}")
    return value.strip().lower()


def is_zero_account(value: str) -> bool:
    return normalize_account(value) == ZERO_ACCOUNT


class Role(str, Enum):
    """Role hierarchy: owner > manager > public."""

    owner = "owner"
    manager = "manager"
    public = "public"

    @property
    def level(self) -> int:
        """Return numeric level for comparison (higher = more privileges)."""
        return {
            Role.owner: 30,
            Role.manager: 20,
            Role.public: 10,
        }[self]
