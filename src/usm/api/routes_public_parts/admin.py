from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Request

from usm.api.routes_public_parts.common import _executor, _ok
from usm.api.schemas import CallerRequest, MintRequest, SendRequest, TransferOwnershipRequest

router = APIRouter()

Json = Dict[str, Any]


@router.post("/admin/mint")
def admin_mint(body: MintRequest, request: Request) -> Json:
    """Mint into the treasury. Owner only, at most once per 30 days."""
    ex = _executor(request)
    return _ok(ex.call("mint", caller=body.caller, amount=body.amount))


@router.post("/admin/send")
def admin_send(body: SendRequest, request: Request) -> Json:
    """Send from the treasury. No burn is applied."""
    ex = _executor(request)
    return _ok(ex.call("send_from_treasury", caller=body.caller, to=body.to, amount=body.amount))


@router.post("/admin/pause")
def admin_pause(body: CallerRequest, request: Request) -> Json:
    ex = _executor(request)
    return _ok(ex.call("pause", caller=body.caller))


@router.post("/admin/unpause")
def admin_unpause(body: CallerRequest, request: Request) -> Json:
    ex = _executor(request)
    return _ok(ex.call("unpause", caller=body.caller))


@router.post("/admin/transfer-ownership")
def admin_transfer_ownership(body: TransferOwnershipRequest, request: Request) -> Json:
    ex = _executor(request)
    return _ok(ex.call("transfer_ownership", caller=body.caller, new_owner=body.new_owner))
