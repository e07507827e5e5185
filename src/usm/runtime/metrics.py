# src/usm/runtime/metrics.py
from __future__ import annotations

import os
import threading
import time
from typing import Dict

# Process-local; one ledger executor per process.
_lock = threading.Lock()
_counters: Dict[str, int] = {}
_gauges: Dict[str, int] = {}
_started_ms = int(time.time() * 1000)


def metrics_enabled() -> bool:
    """GET /v1/metrics is served only when USM_METRICS_ENABLED is truthy."""
    return (os.environ.get("USM_METRICS_ENABLED") or "").strip().lower() in {"1", "true", "yes", "y", "on"}


def inc_counter(name: str, value: int = 1) -> None:
    key = str(name or "").strip()
    if key:
        with _lock:
            _counters[key] = _counters.get(key, 0) + int(value)


def set_gauge(name: str, value: int) -> None:
    key = str(name or "").strip()
    if key:
        with _lock:
            _gauges[key] = int(value)


def record_call(op: str, *, reason: str = "") -> None:
    """Count one ledger call; a non-empty reason marks it rejected."""
    with _lock:
        if reason:
            for key in ("calls_rejected", f"rejected_{reason}"):
                _counters[key] = _counters.get(key, 0) + 1
        else:
            for key in ("calls_ok", f"op_{op}"):
                _counters[key] = _counters.get(key, 0) + 1


def reset() -> None:
    with _lock:
        _counters.clear()
        _gauges.clear()


def snapshot() -> dict:
    now_ms = int(time.time() * 1000)
    with _lock:
        return {
            "ts_ms": now_ms,
            "started_ms": _started_ms,
            "uptime_ms": now_ms - _started_ms,
            "counters": dict(_counters),
            "gauges": dict(_gauges),
        }


def format_prometheus(prefix: str = "usm_") -> str:
    """Prometheus text exposition; every series is an untyped integer."""
    pre = str(prefix or "").strip() or "usm_"
    snap = snapshot()
    series = [("uptime_ms", snap["uptime_ms"])]
    series += sorted(snap["counters"].items())
    series += sorted(snap["gauges"].items())
    return "".join(f"{pre}{name} {int(v)}\n" for name, v in series)
