from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Ensure local "src/" takes precedence over any globally-installed "usm" package.
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

src_str = str(SRC)
if src_str not in sys.path:
    sys.path.insert(0, src_str)


GENESIS_TS = 1_700_000_000


class FakeClock:
    """Injectable ledger clock; tests move time explicitly."""

    def __init__(self, t: int = GENESIS_TS) -> None:
        self.t = int(t)

    def __call__(self) -> int:
        return self.t

    def advance(self, seconds: int) -> int:
        self.t += int(seconds)
        return self.t


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def ledger(clock: FakeClock):
    from usm.ledger.constants import INITIAL_SUPPLY, TREASURY_ACCOUNT_ID
    from usm.ledger.state import genesis_state
    from usm.runtime.token_ledger import TokenLedger

    st = genesis_state(owner="owner", treasury=TREASURY_ACCOUNT_ID, genesis_time=clock.t, initial_supply=INITIAL_SUPPLY)
    return TokenLedger(st, clock=clock)


@pytest.fixture(autouse=True)
def _clean_usm_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "USM_CONFIG_PATH",
        "USM_MODE",
        "USM_OWNER",
        "USM_DB_PATH",
        "USM_LOG_LEVEL",
        "USM_API_HOST",
        "USM_API_PORT",
        "USM_METRICS_ENABLED",
        "USM_MAX_REQUEST_BYTES",
        "USM_SIZE_LIMIT_DISABLE",
    ):
        monkeypatch.delenv(name, raising=False)
    # Dev sync mode keeps SQLite tests fast.
    monkeypatch.setenv("USM_MODE", "dev")
