from __future__ import annotations

from dataclasses import dataclass, field
import copy
from typing import Any, Dict

from usm.ledger.constants import TOKEN_SYMBOL
from usm.runtime.burn_policy import BurnPolicy
from usm.runtime.errors import INSUFFICIENT_BALANCE, ApplyError
from usm.runtime.mint_throttle import MintThrottle


Json = Dict[str, Any]


def _as_int(v: Any, default: int = 0) -> int:
    try:
        return int(v)
    except Exception:
        return int(default)


@dataclass
class LedgerState:
    """
    Mutable token ledger record.

    The raw_* primitives move units unconditionally (no pause, burn or
    allowance policy). Policy lives in usm.runtime.token_ledger.
    """

    owner: str
    treasury: str
    genesis_time: int
    policy: BurnPolicy
    throttle: MintThrottle
    symbol: str = TOKEN_SYMBOL
    balances: Dict[str, int] = field(default_factory=dict)
    allowances: Dict[str, Dict[str, int]] = field(default_factory=dict)
    total_supply: int = 0
    paused: bool = False

    # ---- reads ----

    def balance_of(self, address: str) -> int:
        return int(self.balances.get(address, 0))

    def allowance(self, owner: str, spender: str) -> int:
        return int(self.allowances.get(owner, {}).get(spender, 0))

    # ---- raw primitives ----

    def raw_transfer(self, frm: str, to: str, amount: int) -> None:
        amt = int(amount)
        fb = self.balance_of(frm)
        if fb < amt:
            raise ApplyError("forbidden", INSUFFICIENT_BALANCE, {"address": frm, "balance": fb, "amount": amt})
        self.balances[frm] = fb - amt
        self.balances[to] = self.balance_of(to) + amt

    def raw_burn(self, frm: str, amount: int) -> None:
        amt = int(amount)
        fb = self.balance_of(frm)
        if fb < amt:
            raise ApplyError("forbidden", INSUFFICIENT_BALANCE, {"address": frm, "balance": fb, "amount": amt})
        self.balances[frm] = fb - amt
        self.total_supply = int(self.total_supply) - amt

    def raw_mint(self, to: str, amount: int) -> None:
        amt = int(amount)
        self.balances[to] = self.balance_of(to) + amt
        self.total_supply = int(self.total_supply) + amt

    def raw_approve(self, owner: str, spender: str, amount: int) -> None:
        per_owner = self.allowances.setdefault(owner, {})
        per_owner[spender] = int(amount)

    # ---- persistence ----

    def to_json(self) -> Json:
        return {
            "symbol": self.symbol,
            "owner": self.owner,
            "treasury": self.treasury,
            "genesis_time": int(self.genesis_time),
            "total_supply": int(self.total_supply),
            "paused": bool(self.paused),
            # zero balances are dropped to keep the snapshot small
            "balances": {k: int(v) for k, v in sorted(self.balances.items()) if int(v) != 0},
            "allowances": {
                o: {s: int(a) for s, a in sorted(per.items()) if int(a) != 0}
                for o, per in sorted(self.allowances.items())
                if any(int(a) != 0 for a in per.values())
            },
            "burn_policy": self.policy.to_json(),
            "mint_throttle": self.throttle.to_json(),
        }

    @classmethod
    def from_json(cls, j: Any) -> "LedgerState":
        if not isinstance(j, dict):
            raise ValueError("ledger state must be a JSON object")

        owner = str(j.get("owner") or "").strip()
        treasury = str(j.get("treasury") or "").strip()
        if not owner or not treasury:
            raise ValueError("ledger state requires owner and treasury")

        balances_raw = j.get("balances")
        if not isinstance(balances_raw, dict):
            raise ValueError("state['balances'] must be dict")
        balances = {str(k): _as_int(v) for k, v in balances_raw.items()}
        if any(v < 0 for v in balances.values()):
            raise ValueError("negative balance in ledger state")

        allowances_raw = j.get("allowances") or {}
        if not isinstance(allowances_raw, dict):
            raise ValueError("state['allowances'] must be dict")
        allowances: Dict[str, Dict[str, int]] = {}
        for o, per in allowances_raw.items():
            if not isinstance(per, dict):
                raise ValueError(f"allowances for {o!r} must be dict")
            allowances[str(o)] = {str(s): _as_int(a) for s, a in per.items()}

        total_supply = _as_int(j.get("total_supply"), 0)
        if total_supply != sum(balances.values()):
            raise ValueError("total_supply does not match the sum of balances")

        return cls(
            owner=owner,
            treasury=treasury,
            genesis_time=_as_int(j.get("genesis_time"), 0),
            policy=BurnPolicy.from_json(j.get("burn_policy") or {}),
            throttle=MintThrottle.from_json(j.get("mint_throttle") or {}),
            symbol=str(j.get("symbol") or TOKEN_SYMBOL),
            balances=balances,
            allowances=allowances,
            total_supply=total_supply,
            paused=bool(j.get("paused", False)),
        )

    def snapshot(self) -> "LedgerState":
        return copy.deepcopy(self)


def genesis_state(*, owner: str, treasury: str, genesis_time: int, initial_supply: int) -> LedgerState:
    """Initial ledger: burn off, rate 0, no proposal, supply held by the treasury."""
    st = LedgerState(
        owner=str(owner).strip(),
        treasury=str(treasury).strip(),
        genesis_time=int(genesis_time),
        policy=BurnPolicy(),
        throttle=MintThrottle(last_mint_at=int(genesis_time)),
    )
    if int(initial_supply) > 0:
        st.raw_mint(st.treasury, int(initial_supply))
    return st
