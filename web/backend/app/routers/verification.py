"""Verification router -- token lifecycle and queries."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from dappy.auth.models import Account
from dappy.ledger.local import LocalLedger
from dappy.verification.registry import UserVerification
from web.backend.app.ledger import get_ledger
from web.backend.app.middleware.auth import get_current_account
from web.backend.app.models.api import (
    AccountStatusResponse,
    InitializeRequest,
    IssueRequest,
    ManagersRequest,
    ManagersResponse,
    RegistryInfoResponse,
    ReissueRequest,
    ReissueResponse,
    TokenResponse,
    TransferRequest,
)

router = APIRouter(prefix="/api/verification", tags=["verification"])


def _token_response(registry: UserVerification, token_id: int) -> TokenResponse:
    record = registry.token_record(token_id)
    now = registry.context.now()
    return TokenResponse(
        token_id=record.token_id,
        holder=record.holder,
        issued_at=record.issued_at,
        expires_at=record.expires_at,
        expired=record.is_expired(now),
        time_before_expiration=record.time_left(now),
    )


@router.get("", response_model=RegistryInfoResponse, summary="Registry configuration")
async def registry_info(ledger: LocalLedger = Depends(get_ledger)):
    registry = ledger.verification
    if not registry.initialized:
        return RegistryInfoResponse(initialized=False)
    return RegistryInfoResponse(
        initialized=True,
        name=registry.name,
        symbol=registry.symbol,
        expiration_time=registry.expiration_time,
        owner=registry.owner,
        managers=registry.managers(),
        total_supply=registry.total_supply(),
    )


@router.post("/initialize", response_model=RegistryInfoResponse, summary="Initialize the registry")
async def initialize(body: InitializeRequest, ledger: LocalLedger = Depends(get_ledger)):
    """One-time initialization. A second call fails with 409."""
    ledger.verification.initialize(body.owner, body.name, body.symbol, body.expiration_time)
    ledger.save()
    return await registry_info(ledger)


@router.put("/managers", response_model=ManagersResponse, summary="Enable or disable managers")
async def set_managers(
    body: ManagersRequest,
    caller: Account = Depends(get_current_account),
    ledger: LocalLedger = Depends(get_ledger),
):
    registry = ledger.verification
    changed = registry.set_managers(caller, body.accounts, body.enabled)
    ledger.save()
    return ManagersResponse(changed=changed, managers=registry.managers())


@router.get("/tokens", response_model=list[TokenResponse], summary="List tokens")
async def list_tokens(ledger: LocalLedger = Depends(get_ledger)):
    registry = ledger.verification
    if not registry.initialized:
        return []
    return [_token_response(registry, r.token_id) for r in registry.tokens()]


@router.post("/tokens", response_model=TokenResponse, status_code=201, summary="Issue a token")
async def issue_token(
    body: IssueRequest,
    caller: Account = Depends(get_current_account),
    ledger: LocalLedger = Depends(get_ledger),
):
    registry = ledger.verification
    token_id = registry.issue_token(caller, body.account, body.token_id)
    ledger.save()
    return _token_response(registry, token_id)


@router.get("/tokens/{token_id}", response_model=TokenResponse, summary="Get a token")
async def get_token(token_id: int, ledger: LocalLedger = Depends(get_ledger)):
    return _token_response(ledger.verification, token_id)


@router.delete("/tokens/{token_id}", status_code=204, summary="Revoke a token")
async def revoke_token(
    token_id: int,
    caller: Account = Depends(get_current_account),
    ledger: LocalLedger = Depends(get_ledger),
):
    ledger.verification.revoke_token(caller, token_id)
    ledger.save()


@router.post("/tokens/{token_id}/extend", response_model=TokenResponse, summary="Extend a token")
async def extend_token(
    token_id: int,
    caller: Account = Depends(get_current_account),
    ledger: LocalLedger = Depends(get_ledger),
):
    registry = ledger.verification
    registry.extend_token_expiry(caller, token_id)
    ledger.save()
    return _token_response(registry, token_id)


@router.post("/tokens/{token_id}/transfer", summary="Always rejected: tokens are soulbound")
async def transfer_token(
    token_id: int,
    body: TransferRequest,
    caller: Account = Depends(get_current_account),
    ledger: LocalLedger = Depends(get_ledger),
):
    ledger.verification.transfer_from(caller, body.from_account, body.to_account, token_id)


@router.post("/reissue", response_model=ReissueResponse, summary="Move a token to another account")
async def reissue_token(
    body: ReissueRequest,
    caller: Account = Depends(get_current_account),
    ledger: LocalLedger = Depends(get_ledger),
):
    """Skipped (``reissued: false``) when the destination already holds a token."""
    registry = ledger.verification
    reissued = registry.reissue_token(caller, body.from_account, body.to_account)
    ledger.save()
    token_id = registry.get_token_id(body.to_account) if reissued else None
    return ReissueResponse(reissued=reissued, token_id=token_id)


@router.get("/accounts/{account}", response_model=AccountStatusResponse, summary="Account status")
async def account_status(account: str, ledger: LocalLedger = Depends(get_ledger)):
    registry = ledger.verification
    if not registry.has_token(account):
        return AccountStatusResponse(account=account.lower(), has_token=False)
    token_id = registry.get_token_id(account)
    return AccountStatusResponse(
        account=account.lower(),
        has_token=True,
        token_id=token_id,
        expired=registry.is_token_expired(token_id),
    )
