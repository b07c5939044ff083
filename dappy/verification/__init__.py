"""Soulbound, expiring user verification tokens."""

from dappy.verification.models import TokenMetadata, TokenRecord
from dappy.verification.registry import NonTransferable, UserVerification

__all__ = ["NonTransferable", "TokenMetadata", "TokenRecord", "UserVerification"]
