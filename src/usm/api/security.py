from __future__ import annotations

import os
from typing import Optional, Tuple

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

_BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})
_DEFAULT_MAX_BYTES = 64_000


def _limit_from_env() -> Optional[int]:
    """Body cap in bytes from USM_MAX_REQUEST_BYTES, or None when disabled."""
    if (os.environ.get("USM_SIZE_LIMIT_DISABLE") or "").strip().lower() in {"1", "true", "yes", "y", "on"}:
        return None
    raw = (os.environ.get("USM_MAX_REQUEST_BYTES") or "").strip()
    if not raw:
        return _DEFAULT_MAX_BYTES
    try:
        return max(0, int(raw))
    except ValueError:
        return _DEFAULT_MAX_BYTES


def _declared_length(request: Request) -> Optional[int]:
    raw = request.headers.get("content-length")
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """Reject oversized request bodies with 413 before routing.

    Checks the declared Content-Length first, then the buffered body for
    chunked uploads. Ledger calls take a handful of short fields, so the
    default cap is small.
    """

    def __init__(
        self,
        app,
        *,
        max_bytes: Optional[int] = None,
        exempt_prefixes: Tuple[str, ...] = ("/docs", "/openapi.json", "/healthz"),
    ):
        super().__init__(app)
        self._limit = int(max_bytes) if max_bytes is not None else _limit_from_env()
        self._exempt_prefixes = exempt_prefixes

    def _rejected(self, size: int) -> JSONResponse:
        return JSONResponse(
            status_code=413,
            content={
                "ok": False,
                "error": {
                    "code": "request_too_large",
                    "message": "Request body too large",
                    "details": {"bytes": int(size), "max_bytes": int(self._limit or 0)},
                },
            },
        )

    async def dispatch(self, request: Request, call_next):
        limit = self._limit
        if limit is None or (request.url.path or "").startswith(self._exempt_prefixes):
            return await call_next(request)

        declared = _declared_length(request)
        if declared is not None and declared > limit:
            return self._rejected(declared)

        if (request.method or "").upper() in _BODY_METHODS:
            body = await request.body()
            if len(body) > limit:
                return self._rejected(len(body))

        return await call_next(request)
