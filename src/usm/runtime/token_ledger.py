# src/usm/runtime/token_ledger.py

"""USM token ledger entry points.

Each public state-changing method is one call: it runs under a re-entry
guard and against a snapshot of the ledger record. If anything raises, the
snapshot is restored and buffered events are dropped, so a rejected call
leaves state exactly as it was.

Subscribers are notified after the mutation completes but while the guard
is still held; a subscriber calling back into the ledger is rejected with
reentrant_call. Delivery is part of the call: if a subscriber raises, the
call rolls back, and subscribers that ran before it have already seen
events that never took effect. Consumers that need committed events only
should read drain_events() or the executor event log instead.

The treasury is the ledger's own account and never acts as a caller; it
only pays out through send_from_treasury.

Transfers always consult the *committed* burn rate, never a pending one.
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Optional

from usm.ledger.constants import (
    MAX_SUPPLY,
    TOKEN_DECIMALS,
    TOKEN_NAME,
    TOKEN_SYMBOL,
    ZERO_ADDRESS,
)
from usm.ledger.state import LedgerState
from usm.runtime import burn_policy
from usm.runtime.burn_policy import AdminCapability, OwnerCapability, require_admin
from usm.runtime.burn_split import BurnSplit, split_transfer
from usm.runtime.errors import (
    ALREADY_PAUSED,
    INSUFFICIENT_ALLOWANCE,
    INSUFFICIENT_BALANCE,
    INVALID_AMOUNT,
    INVALID_RECIPIENT,
    NOT_PAUSED,
    REENTRANT_CALL,
    SYSTEM_PAUSED,
    UNAUTHORIZED,
    ZERO_AMOUNT,
    ApplyError,
)
from usm.runtime.events import Approval, Burn, OwnershipTransferred, Paused, Transfer, Unpaused
from usm.runtime.mint_throttle import check_mint, record_mint

Json = Dict[str, Any]
Clock = Callable[[], int]
Subscriber = Callable[[Any], None]


@dataclass
class LedgerApplyError(ApplyError):
    code: str
    reason: str
    details: Optional[Json] = None


@dataclass(frozen=True, slots=True)
class TokenInfo:
    name: str
    symbol: str
    decimals: int
    total_supply: int
    max_supply: int
    treasury_balance: int
    is_transfer_with_burn_enabled: bool
    burn_rate: int
    pending_burn_rate: int
    burn_rate_update_time: int
    has_pending_burn_rate_update: bool
    paused: bool
    owner: str
    last_mint_at: int
    next_mint_at: int

    def to_json(self) -> Json:
        return {
            "name": self.name,
            "symbol": self.symbol,
            "decimals": int(self.decimals),
            "total_supply": int(self.total_supply),
            "max_supply": int(self.max_supply),
            "treasury_balance": int(self.treasury_balance),
            "is_transfer_with_burn_enabled": bool(self.is_transfer_with_burn_enabled),
            "burn_rate": int(self.burn_rate),
            "pending_burn_rate": int(self.pending_burn_rate),
            "burn_rate_update_time": int(self.burn_rate_update_time),
            "has_pending_burn_rate_update": bool(self.has_pending_burn_rate_update),
            "paused": bool(self.paused),
            "owner": self.owner,
            "last_mint_at": int(self.last_mint_at),
            "next_mint_at": int(self.next_mint_at),
        }


def system_clock() -> int:
    return int(time.time())


def _as_address(v: Any) -> str:
    return str(v).strip() if isinstance(v, (str, int)) else ""


def _require_recipient(to: Any) -> str:
    addr = _as_address(to)
    if not addr or addr.lower() == ZERO_ADDRESS:
        raise LedgerApplyError("invalid_payload", INVALID_RECIPIENT, {"to": addr})
    return addr


def _require_positive(amount: Any) -> int:
    try:
        amt = int(amount)
    except (TypeError, ValueError):
        raise LedgerApplyError("invalid_payload", INVALID_AMOUNT, {"amount": amount})
    if amt < 0:
        raise LedgerApplyError("invalid_payload", INVALID_AMOUNT, {"amount": amt})
    if amt == 0:
        raise LedgerApplyError("invalid_payload", ZERO_AMOUNT, {"amount": 0})
    return amt


class TokenLedger:
    """Fungible token ledger with timelocked burn-rate governance."""

    def __init__(
        self,
        state: LedgerState,
        *,
        clock: Clock = system_clock,
        admin: Optional[AdminCapability] = None,
    ) -> None:
        self.state = state
        self._clock = clock
        # None => the current owner, re-read on every check so ownership
        # transfers take effect immediately.
        self._admin = admin
        self._entered = False
        self._call_ts = 0
        self._undo: Optional[LedgerState] = None
        # Clock value the last successful call ran at.
        self.last_call_ts = 0
        self._pending_events: List[Any] = []
        self._emitted: List[Any] = []
        self._subscribers: List[Subscriber] = []

    # ----------------------------
    # Call plumbing
    # ----------------------------

    def now(self) -> int:
        """Current time; fixed for the duration of a call."""
        if self._entered:
            return self._call_ts
        return int(self._clock())

    def admin(self) -> AdminCapability:
        if self._admin is not None:
            return self._admin
        return OwnerCapability(self.state.owner)

    def subscribe(self, fn: Subscriber) -> None:
        self._subscribers.append(fn)

    def drain_events(self) -> List[Any]:
        out = list(self._emitted)
        self._emitted.clear()
        return out

    def _emit(self, ev: Any) -> None:
        self._pending_events.append(ev)

    @contextmanager
    def _call(self, op: str) -> Iterator[None]:
        if self._entered:
            raise LedgerApplyError("forbidden", REENTRANT_CALL, {"op": op})

        saved = self.state.snapshot()
        self._call_ts = int(self._clock())
        self._entered = True
        self._pending_events = []
        try:
            yield
            for ev in self._pending_events:
                for fn in list(self._subscribers):
                    fn(ev)
        except Exception:
            self.state = saved
            self._pending_events = []
            raise
        finally:
            self._entered = False

        self._undo = saved
        self.last_call_ts = self._call_ts
        self._emitted.extend(self._pending_events)
        self._pending_events = []

    def rollback_last(self) -> None:
        """Restore the state from before the last successful call.

        Used by the executor when persisting that call fails.
        """
        if self._undo is None:
            raise RuntimeError("no call to roll back")
        self.state = self._undo
        self._undo = None

    def _require_not_paused(self) -> None:
        if self.state.paused:
            raise LedgerApplyError("forbidden", SYSTEM_PAUSED, {})

    def _require_not_treasury(self, field: str, addr: str) -> None:
        if addr == self.state.treasury:
            raise LedgerApplyError("forbidden", UNAUTHORIZED, {field: addr, "treasury": self.state.treasury})

    def _split(self, amount: int) -> BurnSplit:
        p = self.state.policy
        return split_transfer(amount, feature_enabled=p.feature_enabled, committed_rate=p.committed_rate)

    def _move_with_burn(self, frm: str, to: str, amount: int) -> BurnSplit:
        bal = self.state.balance_of(frm)
        if bal < amount:
            raise LedgerApplyError("forbidden", INSUFFICIENT_BALANCE, {"address": frm, "balance": bal, "amount": amount})

        sp = self._split(amount)
        if sp.burn > 0:
            self.state.raw_burn(frm, sp.burn)
            self._emit(Burn(from_address=frm, amount=sp.burn))
        self.state.raw_transfer(frm, to, sp.deliver)
        self._emit(Transfer(from_address=frm, to_address=to, amount=sp.deliver))
        return sp

    # ----------------------------
    # Burn-rate governance
    # ----------------------------

    def propose_burn_rate(self, caller: str, rate: int) -> Json:
        with self._call("propose_burn_rate"):
            policy, ev = burn_policy.propose(
                self.state.policy, rate, caller=caller, admin=self.admin(), now_s=self.now()
            )
            self.state.policy = policy
            self._emit(ev)
        return {"applied": "PROPOSE_BURN_RATE", "rate": ev.rate, "effective_at": ev.effective_at}

    def execute_burn_rate_update(self, caller: str = "") -> Json:
        with self._call("execute_burn_rate_update"):
            policy, ev = burn_policy.execute(self.state.policy, now_s=self.now())
            self.state.policy = policy
            self._emit(ev)
        return {"applied": "EXECUTE_BURN_RATE_UPDATE", "rate": ev.rate, "by": _as_address(caller)}

    def cancel_burn_rate_update(self, caller: str) -> Json:
        with self._call("cancel_burn_rate_update"):
            policy, ev = burn_policy.cancel(self.state.policy, caller=caller, admin=self.admin())
            self.state.policy = policy
            self._emit(ev)
        return {"applied": "CANCEL_BURN_RATE_UPDATE", "rate": ev.rate, "cancelled_rate": ev.cancelled_rate}

    def set_transfer_with_burn(self, caller: str, enabled: bool) -> Json:
        with self._call("set_transfer_with_burn"):
            policy, ev = burn_policy.set_feature_enabled(
                self.state.policy, enabled, caller=caller, admin=self.admin()
            )
            self.state.policy = policy
            self._emit(ev)
        return {"applied": "SET_TRANSFER_WITH_BURN", "enabled": ev.enabled}

    def get_time_until_burn_rate_update(self) -> int:
        return burn_policy.time_until_executable(self.state.policy, now_s=self.now())

    def calculate_burn_for_amount(self, amount: int) -> BurnSplit:
        return self._split(_require_positive(amount))

    # ----------------------------
    # Token movement
    # ----------------------------

    def transfer(self, caller: str, to: str, amount: int) -> Json:
        with self._call("transfer"):
            self._require_not_paused()
            frm = _as_address(caller)
            self._require_not_treasury("caller", frm)
            dst = _require_recipient(to)
            amt = _require_positive(amount)
            sp = self._move_with_burn(frm, dst, amt)
        return {"applied": "TRANSFER", "from": frm, "to": dst, "amount": amt, **sp.to_json()}

    def transfer_from(self, caller: str, frm: str, to: str, amount: int) -> Json:
        with self._call("transfer_from"):
            self._require_not_paused()
            spender = _as_address(caller)
            src = _as_address(frm)
            self._require_not_treasury("from", src)
            dst = _require_recipient(to)
            amt = _require_positive(amount)

            allowed = self.state.allowance(src, spender)
            if allowed < amt:
                raise LedgerApplyError(
                    "forbidden",
                    INSUFFICIENT_ALLOWANCE,
                    {"owner": src, "spender": spender, "allowance": allowed, "amount": amt},
                )

            sp = self._move_with_burn(src, dst, amt)
            self.state.raw_approve(src, spender, allowed - amt)
        return {"applied": "TRANSFER_FROM", "from": src, "to": dst, "spender": spender, "amount": amt, **sp.to_json()}

    def approve(self, caller: str, spender: str, amount: int) -> Json:
        with self._call("approve"):
            owner = _as_address(caller)
            self._require_not_treasury("caller", owner)
            sp = _require_recipient(spender)
            try:
                amt = int(amount)
            except (TypeError, ValueError):
                raise LedgerApplyError("invalid_payload", INVALID_AMOUNT, {"amount": amount})
            if amt < 0:
                raise LedgerApplyError("invalid_payload", INVALID_AMOUNT, {"amount": amt})
            self.state.raw_approve(owner, sp, amt)
            self._emit(Approval(owner=owner, spender=sp, amount=amt))
        return {"applied": "APPROVE", "owner": owner, "spender": sp, "amount": amt}

    # ----------------------------
    # Administration
    # ----------------------------

    def mint(self, caller: str, amount: int) -> Json:
        with self._call("mint"):
            require_admin(self.admin(), caller)
            self._require_not_paused()
            now = self.now()
            check_mint(self.state.throttle, amount, total_supply=self.state.total_supply, now_s=now)

            amt = int(amount)
            self.state.raw_mint(self.state.treasury, amt)
            self.state.throttle = record_mint(self.state.throttle, now_s=now)
            self._emit(Transfer(from_address=ZERO_ADDRESS, to_address=self.state.treasury, amount=amt))
        return {"applied": "MINT", "to": self.state.treasury, "amount": amt, "total_supply": self.state.total_supply}

    def send_from_treasury(self, caller: str, to: str, amount: int) -> Json:
        with self._call("send_from_treasury"):
            require_admin(self.admin(), caller)
            self._require_not_paused()
            dst = _require_recipient(to)
            amt = _require_positive(amount)
            self.state.raw_transfer(self.state.treasury, dst, amt)
            self._emit(Transfer(from_address=self.state.treasury, to_address=dst, amount=amt))
        return {"applied": "SEND_FROM_TREASURY", "to": dst, "amount": amt}

    def pause(self, caller: str) -> Json:
        with self._call("pause"):
            require_admin(self.admin(), caller)
            if self.state.paused:
                raise LedgerApplyError("invalid_state", ALREADY_PAUSED, {})
            self.state.paused = True
            self._emit(Paused(by=_as_address(caller)))
        return {"applied": "PAUSE"}

    def unpause(self, caller: str) -> Json:
        with self._call("unpause"):
            require_admin(self.admin(), caller)
            if not self.state.paused:
                raise LedgerApplyError("invalid_state", NOT_PAUSED, {})
            self.state.paused = False
            self._emit(Unpaused(by=_as_address(caller)))
        return {"applied": "UNPAUSE"}

    def transfer_ownership(self, caller: str, new_owner: str) -> Json:
        with self._call("transfer_ownership"):
            require_admin(self.admin(), caller)
            nxt = _require_recipient(new_owner)
            prev = self.state.owner
            self.state.owner = nxt
            self._emit(OwnershipTransferred(previous_owner=prev, new_owner=nxt))
        return {"applied": "TRANSFER_OWNERSHIP", "previous_owner": prev, "new_owner": nxt}

    # ----------------------------
    # Reads
    # ----------------------------

    def balance_of(self, address: str) -> int:
        return self.state.balance_of(_as_address(address))

    def allowance(self, owner: str, spender: str) -> int:
        return self.state.allowance(_as_address(owner), _as_address(spender))

    def total_supply(self) -> int:
        return int(self.state.total_supply)

    def contract_balance(self) -> int:
        return self.state.balance_of(self.state.treasury)

    def owner(self) -> str:
        return self.state.owner

    def is_owner(self, caller: str) -> bool:
        return bool(self.admin()(_as_address(caller)))

    def paused(self) -> bool:
        return bool(self.state.paused)

    def burn_rate(self) -> int:
        return int(self.state.policy.committed_rate)

    def is_transfer_with_burn_enabled(self) -> bool:
        return bool(self.state.policy.feature_enabled)

    def has_pending_burn_rate_update(self) -> bool:
        return self.state.policy.pending is not None

    def pending_burn_rate(self) -> int:
        p = self.state.policy.pending
        return 0 if p is None else int(p.proposed_rate)

    def burn_rate_update_time(self) -> int:
        p = self.state.policy.pending
        return 0 if p is None else int(p.effective_at)

    def get_token_info(self) -> TokenInfo:
        st = self.state
        return TokenInfo(
            name=TOKEN_NAME,
            symbol=TOKEN_SYMBOL,
            decimals=TOKEN_DECIMALS,
            total_supply=int(st.total_supply),
            max_supply=MAX_SUPPLY,
            treasury_balance=self.contract_balance(),
            is_transfer_with_burn_enabled=self.is_transfer_with_burn_enabled(),
            burn_rate=self.burn_rate(),
            pending_burn_rate=self.pending_burn_rate(),
            burn_rate_update_time=self.burn_rate_update_time(),
            has_pending_burn_rate_update=self.has_pending_burn_rate_update(),
            paused=self.paused(),
            owner=st.owner,
            last_mint_at=int(st.throttle.last_mint_at),
            next_mint_at=int(st.throttle.next_mint_at),
        )


__all__ = ["LedgerApplyError", "TokenInfo", "TokenLedger", "system_clock"]
