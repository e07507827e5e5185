from __future__ import annotations

import pytest

from usm.ledger.constants import TIMELOCK_DURATION_SECONDS
from usm.runtime import burn_policy
from usm.runtime.burn_policy import BurnPolicy, GovernanceApplyError, OwnerCapability, PendingProposal
from usm.runtime.events import BurnRateProposed, BurnRateUpdateCancelled, BurnRateUpdated

ADMIN = OwnerCapability("owner")
T0 = 1_000_000


def test_propose_sets_pending_with_timelock() -> None:
    p, ev = burn_policy.propose(BurnPolicy(), 50, caller="owner", admin=ADMIN, now_s=T0)
    assert p.pending == PendingProposal(proposed_rate=50, effective_at=T0 + TIMELOCK_DURATION_SECONDS)
    assert p.committed_rate == 0
    assert ev == BurnRateProposed(rate=50, effective_at=T0 + TIMELOCK_DURATION_SECONDS)


def test_propose_requires_admin() -> None:
    with pytest.raises(GovernanceApplyError) as e:
        burn_policy.propose(BurnPolicy(), 50, caller="mallory", admin=ADMIN, now_s=T0)
    assert e.value.code == "forbidden"
    assert e.value.reason == "unauthorized"


@pytest.mark.parametrize("rate", [-1, 101, 1000])
def test_propose_rejects_out_of_range(rate: int) -> None:
    with pytest.raises(GovernanceApplyError) as e:
        burn_policy.propose(BurnPolicy(), rate, caller="owner", admin=ADMIN, now_s=T0)
    assert e.value.reason == "invalid_rate_value"


def test_propose_rejects_current_committed_rate() -> None:
    with pytest.raises(GovernanceApplyError) as e:
        burn_policy.propose(BurnPolicy(committed_rate=20), 20, caller="owner", admin=ADMIN, now_s=T0)
    assert e.value.reason == "invalid_rate_value"


def test_propose_boundary_100_is_allowed() -> None:
    p, _ = burn_policy.propose(BurnPolicy(), 100, caller="owner", admin=ADMIN, now_s=T0)
    assert p.pending is not None and p.pending.proposed_rate == 100


def test_execute_before_timelock_rejected_and_at_boundary_succeeds() -> None:
    p, _ = burn_policy.propose(BurnPolicy(), 50, caller="owner", admin=ADMIN, now_s=T0)
    eff = T0 + TIMELOCK_DURATION_SECONDS

    with pytest.raises(GovernanceApplyError) as e:
        burn_policy.execute(p, now_s=eff - 1)
    assert e.value.code == "invalid_state"
    assert e.value.reason == "timelock_not_elapsed"

    p2, ev = burn_policy.execute(p, now_s=eff)
    assert p2.committed_rate == 50
    assert p2.pending is None
    assert ev == BurnRateUpdated(rate=50)


def test_execute_without_proposal_rejected() -> None:
    with pytest.raises(GovernanceApplyError) as e:
        burn_policy.execute(BurnPolicy(), now_s=T0)
    assert e.value.reason == "no_proposal_pending"


def test_cancel_discards_pending_and_keeps_committed_rate() -> None:
    p, _ = burn_policy.propose(BurnPolicy(committed_rate=10), 40, caller="owner", admin=ADMIN, now_s=T0)
    p2, ev = burn_policy.cancel(p, caller="owner", admin=ADMIN)
    assert p2.pending is None
    assert p2.committed_rate == 10
    assert ev == BurnRateUpdateCancelled(rate=10, cancelled_rate=40)


def test_cancel_requires_admin_and_pending() -> None:
    p, _ = burn_policy.propose(BurnPolicy(), 40, caller="owner", admin=ADMIN, now_s=T0)
    with pytest.raises(GovernanceApplyError) as e:
        burn_policy.cancel(p, caller="mallory", admin=ADMIN)
    assert e.value.reason == "unauthorized"

    with pytest.raises(GovernanceApplyError) as e2:
        burn_policy.cancel(BurnPolicy(), caller="owner", admin=ADMIN)
    assert e2.value.reason == "no_proposal_pending"


def test_reproposal_overwrites_and_restarts_timelock() -> None:
    p, _ = burn_policy.propose(BurnPolicy(), 30, caller="owner", admin=ADMIN, now_s=T0)
    p2, _ = burn_policy.propose(p, 60, caller="owner", admin=ADMIN, now_s=T0 + 1_000)
    assert p2.pending == PendingProposal(proposed_rate=60, effective_at=T0 + 1_000 + TIMELOCK_DURATION_SECONDS)

    with pytest.raises(GovernanceApplyError):
        burn_policy.execute(p2, now_s=T0 + TIMELOCK_DURATION_SECONDS)


def test_time_until_executable() -> None:
    assert burn_policy.time_until_executable(BurnPolicy(), now_s=T0) == 0

    p, _ = burn_policy.propose(BurnPolicy(), 50, caller="owner", admin=ADMIN, now_s=T0)
    assert burn_policy.time_until_executable(p, now_s=T0) == TIMELOCK_DURATION_SECONDS
    assert burn_policy.time_until_executable(p, now_s=T0 + 100) == TIMELOCK_DURATION_SECONDS - 100
    assert burn_policy.time_until_executable(p, now_s=T0 + 10 * TIMELOCK_DURATION_SECONDS) == 0


def test_enable_rejected_when_committed_rate_above_ceiling() -> None:
    with pytest.raises(GovernanceApplyError) as e:
        burn_policy.set_feature_enabled(BurnPolicy(committed_rate=150), True, caller="owner", admin=ADMIN)
    assert e.value.code == "invalid_state"
    assert e.value.reason == "feature_enable_rejected"

    # Disabling is always allowed.
    p, ev = burn_policy.set_feature_enabled(
        BurnPolicy(committed_rate=150, feature_enabled=True), False, caller="owner", admin=ADMIN
    )
    assert p.feature_enabled is False
    assert ev.enabled is False


def test_enable_allowed_at_ceiling() -> None:
    p, _ = burn_policy.set_feature_enabled(BurnPolicy(committed_rate=100), True, caller="owner", admin=ADMIN)
    assert p.feature_enabled is True


def test_custom_admin_capability() -> None:
    council = {"alice", "bob"}

    def admin(caller: str) -> bool:
        return caller in council

    p, _ = burn_policy.propose(BurnPolicy(), 20, caller="bob", admin=admin, now_s=T0)
    assert p.pending is not None
    with pytest.raises(GovernanceApplyError):
        burn_policy.propose(BurnPolicy(), 20, caller="owner", admin=admin, now_s=T0)


def test_policy_json_roundtrip_and_validation() -> None:
    p = BurnPolicy(committed_rate=5, feature_enabled=True, pending=PendingProposal(proposed_rate=7, effective_at=99))
    assert BurnPolicy.from_json(p.to_json()) == p

    with pytest.raises(ValueError):
        BurnPolicy.from_json({"committed_rate": 1001})
    with pytest.raises(ValueError):
        BurnPolicy.from_json({"committed_rate": 0, "pending": {"proposed_rate": 101, "effective_at": 1}})


def test_second_execute_finds_no_proposal() -> None:
    p, _ = burn_policy.propose(BurnPolicy(), 50, caller="owner", admin=ADMIN, now_s=T0)
    p2, _ = burn_policy.execute(p, now_s=T0 + TIMELOCK_DURATION_SECONDS)

    with pytest.raises(GovernanceApplyError) as e:
        burn_policy.execute(p2, now_s=T0 + 2 * TIMELOCK_DURATION_SECONDS)
    assert e.value.code == "invalid_state"
    assert e.value.reason == "no_proposal_pending"
    assert p2.committed_rate == 50


def test_execute_after_cancel_finds_no_proposal() -> None:
    p, _ = burn_policy.propose(BurnPolicy(committed_rate=10), 40, caller="owner", admin=ADMIN, now_s=T0)
    p2, _ = burn_policy.cancel(p, caller="owner", admin=ADMIN)

    with pytest.raises(GovernanceApplyError) as e:
        burn_policy.execute(p2, now_s=T0 + TIMELOCK_DURATION_SECONDS)
    assert e.value.reason == "no_proposal_pending"
    assert p2.committed_rate == 10
