"""Pointers router -- social connection and filesystem change pointers."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from dappy.auth.models import Account
from dappy.ledger.local import LocalLedger
from dappy.pointers.models import Multihash
from dappy.pointers.registry import ContentPointerRegistry
from web.backend.app.ledger import get_ledger
from web.backend.app.middleware.auth import get_current_account
from web.backend.app.models.api import MultihashModel, PointerSlotsResponse

router = APIRouter(prefix="/api/pointers", tags=["pointers"])


def _registry(ledger: LocalLedger, registry_name: str) -> ContentPointerRegistry:
    try:
        registry = ledger.pointers(registry_name)
    except ValueError:
        registry = None
    if registry is None:
        raise HTTPException(status_code=404, detail=f"Registry '{registry_name}' not found")
    return registry


def _model(pointer: Multihash) -> MultihashModel:
    return MultihashModel(**pointer.to_dict())


@router.get(
    "/{registry_name}/{account}",
    response_model=PointerSlotsResponse,
    summary="Read an account's pointers",
)
async def get_pointers(registry_name: str, account: str, ledger: LocalLedger = Depends(get_ledger)):
    registry = _registry(ledger, registry_name)
    return PointerSlotsResponse(
        account=account.lower(),
        user=_model(registry.user_pointer(account)),
        service=_model(registry.service_pointer(account)),
    )


@router.put("/{registry_name}/user", response_model=MultihashModel, summary="Set the caller's pointer")
async def set_user_pointer(
    registry_name: str,
    body: MultihashModel,
    caller: Account = Depends(get_current_account),
    ledger: LocalLedger = Depends(get_ledger),
):
    registry = _registry(ledger, registry_name)
    pointer = Multihash(body.digest, body.hash_function, body.size)
    registry.set_user_pointer(caller, pointer)
    ledger.save()
    return _model(registry.user_pointer(caller))


@router.put("/{registry_name}/service", response_model=MultihashModel, summary="Set the service pointer")
async def set_service_pointer(
    registry_name: str,
    body: MultihashModel,
    caller: Account = Depends(get_current_account),
    ledger: LocalLedger = Depends(get_ledger),
):
    """Owner only."""
    registry = _registry(ledger, registry_name)
    pointer = Multihash(body.digest, body.hash_function, body.size)
    registry.set_service_pointer(caller, pointer)
    ledger.save()
    return _model(registry.service_pointer(caller))


@router.delete("/{registry_name}/{slot}", status_code=204, summary="Clear a pointer slot")
async def remove_pointer(
    registry_name: str,
    slot: str,
    caller: Account = Depends(get_current_account),
    ledger: LocalLedger = Depends(get_ledger),
):
    if slot not in ("user", "service"):
        raise HTTPException(status_code=404, detail=f"Unknown slot '{slot}'")
    registry = _registry(ledger, registry_name)
    registry.remove_pointer(caller, slot == "service")
    ledger.save()
