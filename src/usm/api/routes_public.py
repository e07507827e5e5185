# src/usm/api/routes_public.py
from __future__ import annotations

from fastapi import APIRouter

from usm.api.routes_public_parts.admin import router as admin_router
from usm.api.routes_public_parts.burn import router as burn_router
from usm.api.routes_public_parts.events import router as events_router
from usm.api.routes_public_parts.health import router as health_router
from usm.api.routes_public_parts.metrics import router as metrics_router
from usm.api.routes_public_parts.token import router as token_router

public_router = APIRouter()

# Health routes carry their own paths (/v1/health, /healthz).
public_router.include_router(health_router, prefix="", tags=["health"])

public_router.include_router(token_router, prefix="/v1", tags=["token"])
public_router.include_router(burn_router, prefix="/v1", tags=["burn"])
public_router.include_router(admin_router, prefix="/v1", tags=["admin"])
public_router.include_router(events_router, prefix="/v1", tags=["events"])

# Ops
public_router.include_router(metrics_router, prefix="/v1", tags=["metrics"])
