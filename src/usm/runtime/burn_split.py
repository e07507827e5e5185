# src/usm/runtime/burn_split.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from usm.ledger.constants import BURN_RATE_DENOMINATOR, MIN_BURN_AMOUNT
from usm.runtime.errors import AMOUNT_TOO_SMALL_FOR_BURN, INVALID_AMOUNT, ApplyError

Json = Dict[str, Any]


@dataclass
class BurnSplitError(ApplyError):
    code: str
    reason: str
    details: Optional[Json] = None


@dataclass(frozen=True, slots=True)
class BurnSplit:
    burn: int
    deliver: int

    def to_json(self) -> Json:
        return {"burn": int(self.burn), "deliver": int(self.deliver)}


def split_transfer(amount: int, *, feature_enabled: bool, committed_rate: int) -> BurnSplit:
    """Split a transfer amount into (burn, deliver).

    The minimum-burn clamp is applied before the rejection check, so a
    1 unit transfer under an active burn is rejected rather than delivered
    untaxed.
    """
    amt = int(amount)
    if amt < 0:
        raise BurnSplitError("invalid_payload", INVALID_AMOUNT, {"amount": amt})

    rate = int(committed_rate)
    if not feature_enabled or rate == 0:
        return BurnSplit(burn=0, deliver=amt)

    burn = (amt * rate) // BURN_RATE_DENOMINATOR
    if burn == 0 and amt > 0:
        burn = MIN_BURN_AMOUNT

    if burn >= amt:
        raise BurnSplitError(
            "invalid_payload",
            AMOUNT_TOO_SMALL_FOR_BURN,
            {"amount": amt, "burn": burn, "rate": rate},
        )

    return BurnSplit(burn=burn, deliver=amt - burn)


__all__ = ["BurnSplit", "BurnSplitError", "split_transfer"]
