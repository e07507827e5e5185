from __future__ import annotations

import logging
import threading
from typing import Any, Dict, List, Optional

from usm.ledger.constants import INITIAL_SUPPLY, TOKEN_SYMBOL, ZERO_ADDRESS
from usm.ledger.state import LedgerState, genesis_state
from usm.logging_utils import log_event
from usm.runtime.errors import ApplyError
from usm.runtime.events import Transfer
from usm.runtime.metrics import inc_counter, record_call, set_gauge
from usm.runtime.sqlite_db import SqliteDB, SqliteLedgerStore
from usm.runtime.token_config import TokenConfig, load_token_config
from usm.runtime.token_ledger import Clock, TokenLedger, system_clock

Json = Dict[str, Any]

log = logging.getLogger("usm.executor")


# Ledger methods that mutate state and must be persisted.
STATE_OPS = frozenset(
    {
        "propose_burn_rate",
        "execute_burn_rate_update",
        "cancel_burn_rate_update",
        "set_transfer_with_burn",
        "transfer",
        "transfer_from",
        "approve",
        "mint",
        "send_from_treasury",
        "pause",
        "unpause",
        "transfer_ownership",
    }
)

READ_OPS = frozenset(
    {
        "get_token_info",
        "calculate_burn_for_amount",
        "get_time_until_burn_rate_update",
        "balance_of",
        "allowance",
        "total_supply",
        "contract_balance",
        "owner",
        "is_owner",
        "paused",
        "burn_rate",
        "is_transfer_with_burn_enabled",
        "has_pending_burn_rate_update",
        "pending_burn_rate",
        "burn_rate_update_time",
    }
)


class ExecutorError(RuntimeError):
    pass


class TokenExecutor:
    """Runs ledger calls one at a time and persists each success to SQLite."""

    def __init__(
        self,
        *,
        db_path: str,
        owner: str,
        treasury_id: str,
        genesis_time: int = 0,
        clock: Clock = system_clock,
        mode: Optional[str] = None,
    ) -> None:
        self.db_path = str(db_path)

        self._lock = threading.Lock()
        self._db = SqliteDB(path=self.db_path, mode=mode)
        self._store = SqliteLedgerStore(db=self._db)

        if self._store.exists():
            state = LedgerState.from_json(self._store.read())
            if state.symbol != TOKEN_SYMBOL:
                raise ExecutorError(
                    f"token symbol mismatch: db={state.symbol!r} expected={TOKEN_SYMBOL!r}. Refuse to start."
                )
            self.ledger = TokenLedger(state, clock=clock)
            log_event(log, "ledger_loaded", db_path=self.db_path, owner=state.owner)
        else:
            gt = int(genesis_time) or int(clock())
            state = genesis_state(owner=owner, treasury=treasury_id, genesis_time=gt, initial_supply=INITIAL_SUPPLY)
            self.ledger = TokenLedger(state, clock=clock)
            genesis_ev = Transfer(from_address=ZERO_ADDRESS, to_address=state.treasury, amount=INITIAL_SUPPLY)
            self._store.commit(state.to_json(), [genesis_ev.to_json()], op="genesis", ts_s=gt)
            log_event(log, "ledger_genesis", db_path=self.db_path, owner=state.owner, genesis_time=gt)

        self._update_gauges()

    def _update_gauges(self) -> None:
        set_gauge("total_supply", self.ledger.total_supply())
        set_gauge("burn_rate", self.ledger.burn_rate())

    def call(self, op: str, **kwargs: Any) -> Json:
        """Apply one state-changing ledger call and persist it."""
        if op not in STATE_OPS:
            raise ExecutorError(f"unknown state op: {op!r}")

        with self._lock:
            try:
                result = getattr(self.ledger, op)(**kwargs)
            except ApplyError as e:
                record_call(op, reason=e.reason)
                log_event(
                    log,
                    "call_rejected",
                    level=logging.WARNING,
                    op=op,
                    code=e.code,
                    reason=e.reason,
                    details=e.details,
                )
                raise

            events = [ev.to_json() for ev in self.ledger.drain_events()]
            try:
                self._store.commit(self.ledger.state.to_json(), events, op=op, ts_s=self.ledger.last_call_ts)
            except Exception:
                self.ledger.rollback_last()
                log_event(log, "commit_failed", level=logging.ERROR, op=op)
                raise

            record_call(op)
            for ev in events:
                if ev.get("event") == "Burn":
                    inc_counter("burned_units", int(ev.get("amount") or 0))
            self._update_gauges()
            log_event(log, "call_applied", op=op, events=events)
            return result

    def query(self, op: str, **kwargs: Any) -> Any:
        if op not in READ_OPS:
            raise ExecutorError(f"unknown read op: {op!r}")
        with self._lock:
            return getattr(self.ledger, op)(**kwargs)

    def read_state(self) -> Json:
        with self._lock:
            return self.ledger.state.to_json()

    def recent_events(self, limit: int = 50, *, name: str = "") -> List[Json]:
        return self._store.recent_events(limit, name=name)

    @classmethod
    def from_config(cls, cfg: TokenConfig, *, clock: Clock = system_clock) -> "TokenExecutor":
        return cls(
            db_path=cfg.db_path,
            owner=cfg.owner,
            treasury_id=cfg.treasury_id,
            genesis_time=cfg.genesis_time,
            clock=clock,
            mode=cfg.mode,
        )


def build_executor(cfg: Optional[TokenConfig] = None) -> TokenExecutor:
    """Build a TokenExecutor from an explicit config or, if omitted, from
    USM_CONFIG_PATH / environment."""
    return TokenExecutor.from_config(cfg or load_token_config())
