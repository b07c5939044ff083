"""Verification token data models."""

from __future__ import annotations

from dataclasses import dataclass

from dappy.auth.models import Account


@dataclass(frozen=True)
class TokenRecord:
    """Read-side view of one issued verification token."""

    token_id: int
    holder: Account
    issued_at: int
    expires_at: int

    def is_expired(self, now: int) -> bool:
        return now >= self.expires_at

    def time_left(self, now: int) -> int:
        return max(0, self.expires_at - now)


@dataclass(frozen=True)
class TokenMetadata:
    """Values fixed once by ``UserVerification.initialize``."""

    name: str
    symbol: str
    expiration_time: int
