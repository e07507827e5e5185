# src/usm/runtime/burn_policy.py
from __future__ import annotations

"""Burn-rate governance.

The committed burn rate can only change through a two step protocol:

  propose(rate)  -> pending = {rate, effective_at = now + TIMELOCK_DURATION}
  execute()      -> committed_rate = pending.rate   (anyone, once now >= effective_at)
  cancel()       -> pending discarded                (admin only)

States are NoProposal (pending is None) and Proposed. Re-proposing while a
proposal is pending overwrites it and restarts the timelock.

Every transition is a pure function of (policy, input, now) and returns the
new policy together with the event to emit. Callers own the storage.

Admin checks are injected as an AdminCapability so the owner check can be
swapped for a multisig or role scheme without touching this module.
"""

from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, Optional, Tuple

from usm.ledger.constants import (
    MAX_COMMITTED_BURN_RATE,
    MAX_ENABLE_BURN_RATE,
    MAX_PROPOSED_BURN_RATE,
    TIMELOCK_DURATION_SECONDS,
)
from usm.runtime.errors import (
    FEATURE_ENABLE_REJECTED,
    INVALID_RATE_VALUE,
    NO_PROPOSAL_PENDING,
    TIMELOCK_NOT_ELAPSED,
    UNAUTHORIZED,
    ApplyError,
)
from usm.runtime.events import (
    BurnRateProposed,
    BurnRateUpdateCancelled,
    BurnRateUpdated,
    TransferWithBurnToggled,
)

Json = Dict[str, Any]

AdminCapability = Callable[[str], bool]


@dataclass
class GovernanceApplyError(ApplyError):
    code: str
    reason: str
    details: Optional[Json] = None


@dataclass(frozen=True, slots=True)
class OwnerCapability:
    """Single-owner admin check."""

    owner: str

    def __call__(self, caller: str) -> bool:
        return bool(self.owner) and str(caller or "").strip() == self.owner


def require_admin(admin: AdminCapability, caller: str) -> None:
    if not admin(caller):
        raise GovernanceApplyError("forbidden", UNAUTHORIZED, {"caller": caller})


@dataclass(frozen=True, slots=True)
class PendingProposal:
    proposed_rate: int
    effective_at: int


@dataclass(frozen=True, slots=True)
class BurnPolicy:
    committed_rate: int = 0
    feature_enabled: bool = False
    pending: Optional[PendingProposal] = None

    @property
    def has_pending(self) -> bool:
        return self.pending is not None

    def to_json(self) -> Json:
        pending: Optional[Json] = None
        if self.pending is not None:
            pending = {
                "proposed_rate": int(self.pending.proposed_rate),
                "effective_at": int(self.pending.effective_at),
            }
        return {
            "committed_rate": int(self.committed_rate),
            "feature_enabled": bool(self.feature_enabled),
            "pending": pending,
        }

    @classmethod
    def from_json(cls, j: Any) -> "BurnPolicy":
        if not isinstance(j, dict):
            raise ValueError("burn policy must be a JSON object")

        committed = int(j.get("committed_rate", 0))
        if committed < 0 or committed > MAX_COMMITTED_BURN_RATE:
            raise ValueError(f"committed_rate out of range: {committed}")

        pending = None
        pj = j.get("pending")
        if isinstance(pj, dict):
            rate = int(pj.get("proposed_rate", 0))
            if rate < 0 or rate > MAX_PROPOSED_BURN_RATE:
                raise ValueError(f"pending proposed_rate out of range: {rate}")
            pending = PendingProposal(proposed_rate=rate, effective_at=int(pj.get("effective_at", 0)))
        elif pj is not None:
            raise ValueError("pending must be an object or null")

        return cls(
            committed_rate=committed,
            feature_enabled=bool(j.get("feature_enabled", False)),
            pending=pending,
        )


def propose(
    policy: BurnPolicy,
    new_rate: int,
    *,
    caller: str,
    admin: AdminCapability,
    now_s: int,
) -> Tuple[BurnPolicy, BurnRateProposed]:
    require_admin(admin, caller)

    rate = int(new_rate)
    if rate < 0 or rate > MAX_PROPOSED_BURN_RATE:
        raise GovernanceApplyError(
            "invalid_payload",
            INVALID_RATE_VALUE,
            {"rate": rate, "max": MAX_PROPOSED_BURN_RATE},
        )
    if rate == int(policy.committed_rate):
        raise GovernanceApplyError(
            "invalid_payload",
            INVALID_RATE_VALUE,
            {"rate": rate, "committed_rate": int(policy.committed_rate)},
        )

    effective_at = int(now_s) + TIMELOCK_DURATION_SECONDS
    pending = PendingProposal(proposed_rate=rate, effective_at=effective_at)
    return replace(policy, pending=pending), BurnRateProposed(rate=rate, effective_at=effective_at)


def execute(policy: BurnPolicy, *, now_s: int) -> Tuple[BurnPolicy, BurnRateUpdated]:
    """Commit the pending proposal. Permissionless: the timelock is the guard."""
    pending = policy.pending
    if pending is None:
        raise GovernanceApplyError("invalid_state", NO_PROPOSAL_PENDING, {})

    if int(now_s) < int(pending.effective_at):
        raise GovernanceApplyError(
            "invalid_state",
            TIMELOCK_NOT_ELAPSED,
            {"effective_at": int(pending.effective_at), "now": int(now_s)},
        )

    rate = int(pending.proposed_rate)
    return replace(policy, committed_rate=rate, pending=None), BurnRateUpdated(rate=rate)


def cancel(
    policy: BurnPolicy,
    *,
    caller: str,
    admin: AdminCapability,
) -> Tuple[BurnPolicy, BurnRateUpdateCancelled]:
    require_admin(admin, caller)

    pending = policy.pending
    if pending is None:
        raise GovernanceApplyError("invalid_state", NO_PROPOSAL_PENDING, {})

    ev = BurnRateUpdateCancelled(rate=int(policy.committed_rate), cancelled_rate=int(pending.proposed_rate))
    return replace(policy, pending=None), ev


def time_until_executable(policy: BurnPolicy, *, now_s: int) -> int:
    pending = policy.pending
    if pending is None:
        return 0
    return max(0, int(pending.effective_at) - int(now_s))


def set_feature_enabled(
    policy: BurnPolicy,
    enabled: bool,
    *,
    caller: str,
    admin: AdminCapability,
) -> Tuple[BurnPolicy, TransferWithBurnToggled]:
    """Toggle burn-on-transfer.

    Enabling is refused while the committed rate, or a rate about to land,
    is above MAX_ENABLE_BURN_RATE. Disabling is unconditional.
    """
    require_admin(admin, caller)

    want = bool(enabled)
    if want:
        committed = int(policy.committed_rate)
        pending_rate = None if policy.pending is None else int(policy.pending.proposed_rate)
        if committed > MAX_ENABLE_BURN_RATE or (pending_rate is not None and pending_rate > MAX_ENABLE_BURN_RATE):
            raise GovernanceApplyError(
                "invalid_state",
                FEATURE_ENABLE_REJECTED,
                {"committed_rate": committed, "pending_rate": pending_rate, "max": MAX_ENABLE_BURN_RATE},
            )

    return replace(policy, feature_enabled=want), TransferWithBurnToggled(enabled=want)


__all__ = [
    "AdminCapability",
    "BurnPolicy",
    "GovernanceApplyError",
    "OwnerCapability",
    "PendingProposal",
    "cancel",
    "execute",
    "propose",
    "require_admin",
    "set_feature_enabled",
    "time_until_executable",
]
