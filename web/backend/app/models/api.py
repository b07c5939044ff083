"""Pydantic models for API request/response serialization.

These models mirror the dappy dataclasses and provide proper JSON
serialization for the FastAPI endpoints.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Verification models
# ---------------------------------------------------------------------------


class InitializeRequest(BaseModel):
    """Arguments for the one-time verification registry initializer."""

    owner: str
    name: str = Field(min_length=1)
    symbol: str = Field(min_length=1)
    expiration_time: int = Field(gt=0, description="Token validity in seconds")


class RegistryInfoResponse(BaseModel):
    """Mirrors the read-only configuration of dappy.verification.UserVerification."""

    initialized: bool
    name: str = ""
    symbol: str = ""
    expiration_time: int = 0
    owner: str = ""
    managers: list[str] = Field(default_factory=list)
    total_supply: int = 0


class IssueRequest(BaseModel):
    account: str
    token_id: Optional[int] = Field(default=None, ge=0)


class ReissueRequest(BaseModel):
    from_account: str
    to_account: str


class ReissueResponse(BaseModel):
    reissued: bool
    token_id: Optional[int] = None


class TokenResponse(BaseModel):
    """Mirrors dappy.verification.models.TokenRecord plus validity."""

    token_id: int
    holder: str
    issued_at: int
    expires_at: int
    expired: bool
    time_before_expiration: int


class AccountStatusResponse(BaseModel):
    account: str
    has_token: bool
    token_id: Optional[int] = None
    expired: Optional[bool] = None


class ManagersRequest(BaseModel):
    accounts: list[str] = Field(min_length=1)
    enabled: bool = True


class ManagersResponse(BaseModel):
    changed: list[str] = Field(default_factory=list)
    managers: list[str] = Field(default_factory=list)


class TransferRequest(BaseModel):
    from_account: str
    to_account: str


# ---------------------------------------------------------------------------
# Pointer models
# ---------------------------------------------------------------------------


class MultihashModel(BaseModel):
    """Mirrors dappy.pointers.models.Multihash."""

    digest: str = Field(pattern=r"^0x[0-9a-fA-F]{64}$")
    hash_function: int = Field(ge=0, le=255)
    size: int = Field(ge=0, le=255)


class PointerSlotsResponse(BaseModel):
    account: str
    user: MultihashModel
    service: MultihashModel
