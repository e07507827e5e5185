# src/usm/runtime/token_config.py
from __future__ import annotations

import json
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from usm.ledger.constants import TREASURY_ACCOUNT_ID, ZERO_ADDRESS

Json = Dict[str, Any]


def _as_int(v: Any, default: int) -> int:
    try:
        return int(v)
    except Exception:
        return int(default)


def _as_str(v: Any, default: str) -> str:
    if v is None:
        return str(default)
    s = str(v)
    return s if s.strip() else str(default)


@dataclass(frozen=True)
class TokenConfig:
    mode: str  # "dev" | "testnet" | "prod"

    # Administrator of the ledger at genesis.
    owner: str
    treasury_id: str

    db_path: str

    # 0 => wall clock at first boot
    genesis_time: int

    api_host: str
    api_port: int

    log_level: str


_ALLOWED_MODES = {"dev", "testnet", "prod"}


def validate_token_config(cfg: TokenConfig) -> None:
    """Fail-fast validation for operator config."""

    mode = str(cfg.mode or "").strip().lower()
    if mode not in _ALLOWED_MODES:
        raise ValueError(f"mode must be one of {_ALLOWED_MODES}; got: {cfg.mode!r}")

    if not isinstance(cfg.owner, str) or not cfg.owner.strip():
        raise ValueError("owner must be a non-empty string")
    if cfg.owner.strip().lower() == ZERO_ADDRESS:
        raise ValueError("owner must not be the zero address")

    if not isinstance(cfg.treasury_id, str) or not cfg.treasury_id.strip():
        raise ValueError("treasury_id must be a non-empty string")
    if cfg.treasury_id.strip() == cfg.owner.strip():
        raise ValueError("treasury_id must differ from owner")

    if not isinstance(cfg.db_path, str) or not cfg.db_path.strip():
        raise ValueError("db_path must be a non-empty string")

    if int(cfg.genesis_time) < 0:
        raise ValueError(f"genesis_time must be >= 0; got: {cfg.genesis_time}")

    if int(cfg.api_port) <= 0 or int(cfg.api_port) > 65535:
        raise ValueError(f"api_port must be 1..65535; got: {cfg.api_port}")


def default_token_config() -> TokenConfig:
    return TokenConfig(
        mode="prod",
        owner="owner",
        treasury_id=TREASURY_ACCOUNT_ID,
        db_path="./data/usm.db",
        genesis_time=0,
        api_host="127.0.0.1",
        api_port=8080,
        log_level="INFO",
    )


def _read_raw(path: str) -> Json:
    p = Path(path)
    text = p.read_text(encoding="utf-8")
    if p.suffix.lower() in {".yaml", ".yml"}:
        raw = yaml.safe_load(text)
    else:
        raw = json.loads(text)
    if not isinstance(raw, dict):
        raise ValueError("token config must be a mapping")
    return raw


def read_token_config_file(path: str) -> TokenConfig:
    raw = _read_raw(path)
    d = default_token_config()

    return TokenConfig(
        mode=_as_str(raw.get("mode"), d.mode).strip().lower(),
        owner=_as_str(raw.get("owner"), d.owner).strip(),
        treasury_id=_as_str(raw.get("treasury_id"), d.treasury_id).strip(),
        db_path=_as_str(raw.get("db_path"), d.db_path),
        genesis_time=_as_int(raw.get("genesis_time"), d.genesis_time),
        api_host=_as_str(raw.get("api_host"), d.api_host),
        api_port=_as_int(raw.get("api_port"), d.api_port),
        log_level=_as_str(raw.get("log_level"), d.log_level),
    )


def _apply_env_overrides(cfg: TokenConfig) -> TokenConfig:
    env_map = {
        "USM_MODE": "mode",
        "USM_OWNER": "owner",
        "USM_DB_PATH": "db_path",
        "USM_LOG_LEVEL": "log_level",
        "USM_API_HOST": "api_host",
    }
    changes: Dict[str, Any] = {}
    for env_name, field_name in env_map.items():
        v = os.environ.get(env_name)
        if v is not None and v.strip():
            changes[field_name] = v.strip().lower() if field_name == "mode" else v.strip()

    port = os.environ.get("USM_API_PORT")
    if port is not None and port.strip():
        changes["api_port"] = _as_int(port, cfg.api_port)

    return replace(cfg, **changes) if changes else cfg


def load_token_config(*, config_path: Optional[str] = None) -> TokenConfig:
    p = config_path or os.environ.get("USM_CONFIG_PATH")
    cfg = read_token_config_file(p) if p else default_token_config()
    cfg = _apply_env_overrides(cfg)
    validate_token_config(cfg)
    return cfg
