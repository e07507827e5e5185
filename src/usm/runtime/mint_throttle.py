# src/usm/runtime/mint_throttle.py
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict, Optional

from usm.ledger.constants import MAX_SUPPLY, MINT_COOLDOWN_SECONDS
from usm.runtime.errors import COOLDOWN_ACTIVE, SUPPLY_CEILING_EXCEEDED, ZERO_AMOUNT, ApplyError

Json = Dict[str, Any]


@dataclass
class MintApplyError(ApplyError):
    code: str
    reason: str
    details: Optional[Json] = None


@dataclass(frozen=True, slots=True)
class MintThrottle:
    """Cooldown between mints. last_mint_at starts at genesis time."""

    last_mint_at: int

    @property
    def next_mint_at(self) -> int:
        return int(self.last_mint_at) + MINT_COOLDOWN_SECONDS

    def to_json(self) -> Json:
        return {"last_mint_at": int(self.last_mint_at)}

    @classmethod
    def from_json(cls, j: Any) -> "MintThrottle":
        if not isinstance(j, dict):
            raise ValueError("mint throttle must be a JSON object")
        return cls(last_mint_at=int(j.get("last_mint_at", 0)))


def check_mint(throttle: MintThrottle, amount: int, *, total_supply: int, now_s: int) -> None:
    amt = int(amount)
    if amt <= 0:
        raise MintApplyError("invalid_payload", ZERO_AMOUNT, {"amount": amt})

    if int(now_s) < throttle.next_mint_at:
        raise MintApplyError(
            "invalid_state",
            COOLDOWN_ACTIVE,
            {"next_mint_at": throttle.next_mint_at, "now": int(now_s)},
        )

    if int(total_supply) + amt > MAX_SUPPLY:
        raise MintApplyError(
            "invalid_state",
            SUPPLY_CEILING_EXCEEDED,
            {"total_supply": int(total_supply), "amount": amt, "max_supply": MAX_SUPPLY},
        )


def record_mint(throttle: MintThrottle, *, now_s: int) -> MintThrottle:
    return replace(throttle, last_mint_at=int(now_s))


__all__ = ["MintApplyError", "MintThrottle", "check_mint", "record_mint"]
