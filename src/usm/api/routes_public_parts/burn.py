from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Request

from usm.api.errors import ApiError
from usm.api.routes_public_parts.common import _executor, _int_param, _ok
from usm.api.schemas import CallerRequest, ExecuteBurnRateRequest, ProposeBurnRateRequest, ToggleBurnRequest

router = APIRouter()

Json = Dict[str, Any]


@router.get("/burn/calculate")
def burn_calculate(request: Request, amount: Optional[str] = None) -> Json:
    """Preview the burn/deliver split for a transfer of `amount` base units.

    Uses the committed rate only; a pending proposal never affects the result.
    """
    if amount is None:
        raise ApiError.bad_request("invalid_payload", "missing amount", {})
    ex = _executor(request)
    sp = ex.query("calculate_burn_for_amount", amount=_int_param(amount, 0))
    return _ok({"amount": sp.burn + sp.deliver, **sp.to_json()})


@router.get("/burn/time-until-update")
def burn_time_until_update(request: Request) -> Json:
    ex = _executor(request)
    return _ok({"seconds": ex.query("get_time_until_burn_rate_update")})


_POLICY_FIELDS = (
    "burn_rate",
    "is_transfer_with_burn_enabled",
    "has_pending_burn_rate_update",
    "pending_burn_rate",
    "burn_rate_update_time",
)


@router.get("/burn/policy")
def burn_policy(request: Request) -> Json:
    info = _executor(request).query("get_token_info").to_json()
    return _ok({k: info[k] for k in _POLICY_FIELDS})


@router.post("/burn/propose")
def burn_propose(body: ProposeBurnRateRequest, request: Request) -> Json:
    ex = _executor(request)
    return _ok(ex.call("propose_burn_rate", caller=body.caller, rate=body.rate))


@router.post("/burn/execute")
def burn_execute(body: ExecuteBurnRateRequest, request: Request) -> Json:
    ex = _executor(request)
    return _ok(ex.call("execute_burn_rate_update", caller=body.caller))


@router.post("/burn/cancel")
def burn_cancel(body: CallerRequest, request: Request) -> Json:
    ex = _executor(request)
    return _ok(ex.call("cancel_burn_rate_update", caller=body.caller))


@router.post("/burn/toggle")
def burn_toggle(body: ToggleBurnRequest, request: Request) -> Json:
    ex = _executor(request)
    return _ok(ex.call("set_transfer_with_burn", caller=body.caller, enabled=body.enabled))
