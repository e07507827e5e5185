from __future__ import annotations

import time
from typing import Any, Optional

from fastapi import APIRouter, Request

from usm.ledger.constants import TOKEN_SYMBOL

router = APIRouter()


def _now_ms() -> int:
    return int(time.time() * 1000)


def _try_token_info(ex: Any) -> Optional[dict[str, Any]]:
    if ex is None:
        return None
    query = getattr(ex, "query", None)
    if not callable(query):
        return None
    return query("get_token_info").to_json()


def _health_payload(request: Request) -> dict[str, object]:
    ex = getattr(request.app.state, "executor", None)
    info = _try_token_info(ex)

    return {
        "ok": True,
        "service": "usm-ledger",
        "version": "v1",
        "ts_ms": _now_ms(),
        "ready": info is not None,
        "symbol": TOKEN_SYMBOL,
        "total_supply": None if info is None else info["total_supply"],
        "burn_rate": None if info is None else info["burn_rate"],
        "paused": None if info is None else info["paused"],
    }


@router.get("/v1/health")
def v1_health(request: Request) -> dict[str, object]:
    return _health_payload(request)


@router.get("/healthz")
def healthz(request: Request) -> dict[str, object]:
    # Kubernetes-style alias
    return _health_payload(request)
