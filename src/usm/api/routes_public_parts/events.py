from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Request

from usm.api.routes_public_parts.common import _executor, _int_param, _ok

router = APIRouter()

Json = Dict[str, Any]

_MAX_LIMIT = 500


@router.get("/events")
def recent_events(request: Request, limit: Optional[str] = None, name: str = "") -> Json:
    """Newest-first ledger events, optionally filtered by event name."""
    ex = _executor(request)
    lim = max(1, min(_MAX_LIMIT, _int_param(limit, 50)))
    items = ex.recent_events(lim, name=str(name or "").strip())
    return _ok({"limit": lim, "items": items})
