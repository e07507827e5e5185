# src/usm/api/structured_logging.py
from __future__ import annotations

import logging
import os
import time
import uuid
from typing import Any, Dict

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from usm.logging_utils import log_event

Json = Dict[str, Any]

_FALSY = {"0", "false", "no", "n", "off"}
_LOGGED_HEADERS = ("user-agent", "content-type", "content-length")


class RequestLogMiddleware(BaseHTTPMiddleware):
    """One JSONL `http_request` line per request on the `usm.http` logger.

    Every response carries `x-request-id` (echoed from the request or minted).
    USM_LOG_REQUESTS=0 turns the log line off; USM_LOG_REQUEST_HEADERS=1 adds
    a few request headers.
    """

    def __init__(self, app) -> None:
        super().__init__(app)
        self._enabled = (os.environ.get("USM_LOG_REQUESTS") or "1").strip().lower() not in _FALSY
        self._with_headers = (os.environ.get("USM_LOG_REQUEST_HEADERS") or "").strip().lower() in {"1", "true", "yes", "y", "on"}
        self._logger = logging.getLogger("usm.http")

    def _fields(self, request: Request) -> Json:
        out: Json = {"method": request.method, "path": str(request.url.path or "")}
        if self._with_headers:
            out["headers"] = {k: request.headers[k] for k in _LOGGED_HEADERS if k in request.headers}
        return out

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
        request.state.request_id = request_id
        t0 = time.monotonic()

        try:
            response = await call_next(request)
        except Exception as e:
            if self._enabled:
                log_event(
                    self._logger,
                    "http_request",
                    level=logging.ERROR,
                    request_id=request_id,
                    status=500,
                    duration_ms=int((time.monotonic() - t0) * 1000),
                    error=str(e),
                    **self._fields(request),
                )
            raise

        response.headers.setdefault("x-request-id", request_id)
        if self._enabled:
            log_event(
                self._logger,
                "http_request",
                level=logging.WARNING if response.status_code >= 500 else logging.INFO,
                request_id=request_id,
                status=int(response.status_code),
                duration_ms=int((time.monotonic() - t0) * 1000),
                **self._fields(request),
            )
        return response
