from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass
class ApplyError(Exception):
    """Canonical error type for rejected ledger calls.

    `code` is the coarse category (forbidden, invalid_payload, invalid_state,
    not_found). `reason` names the exact rejection, e.g. timelock_not_elapsed.
    """

    code: str
    reason: str
    details: Any | None = None

    def __str__(self) -> str:  # pragma: no cover
        if self.details is None:
            return f"{self.code}:{self.reason}"
        return f"{self.code}:{self.reason}:{self.details}"


# Rejection reasons shared by the ledger domains.
UNAUTHORIZED = "unauthorized"
INVALID_RATE_VALUE = "invalid_rate_value"
NO_PROPOSAL_PENDING = "no_proposal_pending"
TIMELOCK_NOT_ELAPSED = "timelock_not_elapsed"
FEATURE_ENABLE_REJECTED = "feature_enable_rejected"
ZERO_AMOUNT = "zero_amount"
INVALID_AMOUNT = "invalid_amount"
INVALID_RECIPIENT = "invalid_recipient"
INSUFFICIENT_BALANCE = "insufficient_balance"
INSUFFICIENT_ALLOWANCE = "insufficient_allowance"
AMOUNT_TOO_SMALL_FOR_BURN = "amount_too_small_for_burn"
COOLDOWN_ACTIVE = "cooldown_active"
SUPPLY_CEILING_EXCEEDED = "supply_ceiling_exceeded"
SYSTEM_PAUSED = "system_paused"
ALREADY_PAUSED = "already_paused"
NOT_PAUSED = "not_paused"
REENTRANT_CALL = "reentrant_call"
