from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from usm.api.errors import ApiError, apply_error_json, apply_error_status
from usm.api.routes_public import public_router
from usm.api.security import RequestSizeLimitMiddleware
from usm.api.structured_logging import RequestLogMiddleware
from usm.logging_utils import configure_structured_logging, log_event
from usm.runtime.errors import ApplyError
from usm.runtime.executor import build_executor as _build_executor
from usm.runtime.token_config import TokenConfig, load_token_config

log = logging.getLogger("usm.http")


def build_executor(cfg: Optional[TokenConfig] = None):
    """Build a TokenExecutor for API runtime.

    This wrapper exists so tests can monkeypatch `usm.api.app.build_executor`
    without reaching into runtime modules.
    """
    return _build_executor(cfg)


def _install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ApiError)
    async def _api_error(_request: Request, e: ApiError) -> JSONResponse:
        return JSONResponse(status_code=e.status_code, content=e.to_json())

    @app.exception_handler(ApplyError)
    async def _apply_error(_request: Request, e: ApplyError) -> JSONResponse:
        return JSONResponse(status_code=apply_error_status(e), content=apply_error_json(e))

    @app.exception_handler(RequestValidationError)
    async def _validation_error(_request: Request, e: RequestValidationError) -> JSONResponse:
        fields = [".".join(str(p) for p in err.get("loc", ())) for err in e.errors()]
        return JSONResponse(
            status_code=400,
            content={
                "ok": False,
                "error": {"code": "invalid_payload", "message": "request validation failed", "details": {"fields": fields}},
            },
        )


def create_app(*, boot_runtime: bool = True, cfg: Optional[TokenConfig] = None) -> FastAPI:
    """Create the FastAPI application.

    cfg defaults to load_token_config(); its mode and log_level apply here.

    boot_runtime:
      - True (default): attach an executor built from cfg
      - False: keep lightweight for unit tests / import-time validation
    """
    cfg = cfg or load_token_config()
    configure_structured_logging(cfg.log_level)
    mode = cfg.mode

    # Disable docs in production.
    if mode == "prod":
        app = FastAPI(title="USM Ledger API", docs_url=None, redoc_url=None, openapi_url=None)
    else:
        app = FastAPI(title="USM Ledger API")

    if boot_runtime:
        app.state.executor = build_executor(cfg)
        log_event(log, "api_boot", mode=mode)
    else:
        app.state.executor = None

    _install_error_handlers(app)

    # Size limiter is added last so it runs first.
    app.add_middleware(RequestLogMiddleware)
    app.add_middleware(RequestSizeLimitMiddleware)

    app.include_router(public_router)

    return app
