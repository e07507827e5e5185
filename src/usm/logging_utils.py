# src/usm/logging_utils.py
from __future__ import annotations

import json
import logging
import os
import time
from typing import Any, Dict, Optional

Json = Dict[str, Any]

_CONFIGURED_FLAG = "_usm_configured"


def configure_structured_logging(level_name: Optional[str] = None) -> None:
    """Send stdlib logging to stderr as bare JSONL lines.

    The level is level_name, else USM_LOG_LEVEL (default INFO). Calling again only
    re-applies the level, so app factories and tests may call it freely.
    """
    level = getattr(logging, (level_name or os.environ.get("USM_LOG_LEVEL") or "INFO").strip().upper(), logging.INFO)
    root = logging.getLogger()
    root.setLevel(level)
    if getattr(root, _CONFIGURED_FLAG, False):
        return

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(message)s"))
    root.handlers = [handler]
    setattr(root, _CONFIGURED_FLAG, True)


def log_event(logger: logging.Logger, event: str, *, level: int = logging.INFO, **fields: Any) -> None:
    """Emit `{"ts_ms", "event", **fields}` as one sorted-key JSON line."""
    if not logger.isEnabledFor(level):
        return
    payload: Json = {"ts_ms": int(time.time() * 1000), "event": str(event), **fields}
    try:
        line = json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    except (TypeError, ValueError):
        # Non-JSON field values; fall back to key=repr pairs.
        line = " ".join([f"event={event}"] + [f"{k}={fields[k]!r}" for k in sorted(fields)])
    logger.log(level, line)
