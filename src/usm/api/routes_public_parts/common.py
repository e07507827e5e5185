from __future__ import annotations

from typing import Any, Dict

from fastapi import Request

from usm.api.errors import ApiError

Json = Dict[str, Any]


def _executor(request: Request):
    ex = getattr(request.app.state, "executor", None)
    if ex is None:
        raise ApiError.internal("not_ready", "executor not attached to app.state", {})
    return ex


def _int_param(v: Any, default: int) -> int:
    """Parse an int-ish query param safely."""
    if v is None:
        return int(default)
    s = str(v).strip()
    if s == "":
        return int(default)
    try:
        return int(s)
    except ValueError:
        raise ApiError.bad_request("invalid_payload", "expected an integer", {"value": s})


def _ok(result: Json) -> Json:
    return {"ok": True, **result}
