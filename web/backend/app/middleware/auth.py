"""Caller identity -- FastAPI dependencies for extracting the calling account.

Every mutating request is attributed to the account named in the
``X-Account: 0x...`` header. Read-only endpoints do not need it.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Header, HTTPException, status

from dappy.auth.models import Account, normalize_account
from dappy.errors import InvalidAccountError


async def get_current_account(
    x_account: Optional[str] = Header(None, alias="X-Account"),
) -> Account:
    """FastAPI dependency that extracts and validates the calling account.

    Raises ``401 Unauthorized`` if the header is missing and
    ``422`` if it is not a valid address.
    """
    if not x_account:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-Account header",
        )
    try:
        return normalize_account(x_account)
    except InvalidAccountError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(exc),
        ) from exc
