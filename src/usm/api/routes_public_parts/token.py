from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Request

from usm.api.routes_public_parts.common import _executor, _ok
from usm.api.schemas import ApproveRequest, TransferFromRequest, TransferRequest

router = APIRouter()

Json = Dict[str, Any]


@router.get("/token/info")
def token_info(request: Request) -> Json:
    ex = _executor(request)
    return _ok(ex.query("get_token_info").to_json())


@router.get("/token/balance/{address}")
def token_balance(address: str, request: Request) -> Json:
    ex = _executor(request)
    return _ok({"address": address, "balance": ex.query("balance_of", address=address)})


@router.get("/token/allowance/{owner}/{spender}")
def token_allowance(owner: str, spender: str, request: Request) -> Json:
    ex = _executor(request)
    return _ok({"owner": owner, "spender": spender, "allowance": ex.query("allowance", owner=owner, spender=spender)})


@router.get("/token/owner/{caller}")
def token_is_owner(caller: str, request: Request) -> Json:
    ex = _executor(request)
    return _ok({"caller": caller, "is_owner": ex.query("is_owner", caller=caller), "owner": ex.query("owner")})


@router.post("/token/transfer")
def token_transfer(body: TransferRequest, request: Request) -> Json:
    ex = _executor(request)
    return _ok(ex.call("transfer", caller=body.caller, to=body.to, amount=body.amount))


@router.post("/token/transfer-from")
def token_transfer_from(body: TransferFromRequest, request: Request) -> Json:
    ex = _executor(request)
    return _ok(
        ex.call("transfer_from", caller=body.caller, frm=body.from_address, to=body.to, amount=body.amount)
    )


@router.post("/token/approve")
def token_approve(body: ApproveRequest, request: Request) -> Json:
    ex = _executor(request)
    return _ok(ex.call("approve", caller=body.caller, spender=body.spender, amount=body.amount))
