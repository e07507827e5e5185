from __future__ import annotations

import pytest

from usm.ledger.constants import (
    INITIAL_SUPPLY,
    MAX_SUPPLY,
    MINT_COOLDOWN_SECONDS,
    TIMELOCK_DURATION_SECONDS,
    TREASURY_ACCOUNT_ID,
    UNIT,
    ZERO_ADDRESS,
)
from usm.ledger.state import genesis_state
from usm.runtime.errors import ApplyError
from usm.runtime.events import BurnRateUpdateCancelled, OwnershipTransferred, Paused, Transfer
from usm.runtime.token_ledger import TokenLedger


def test_mint_waits_for_cooldown_from_genesis(ledger, clock) -> None:
    with pytest.raises(ApplyError) as e:
        ledger.mint("owner", UNIT)
    assert e.value.reason == "cooldown_active"

    clock.advance(MINT_COOLDOWN_SECONDS)
    out = ledger.mint("owner", 1_000 * UNIT)
    assert out["total_supply"] == INITIAL_SUPPLY + 1_000 * UNIT
    assert ledger.contract_balance() == INITIAL_SUPPLY + 1_000 * UNIT
    assert ledger.drain_events() == [Transfer(from_address=ZERO_ADDRESS, to_address=TREASURY_ACCOUNT_ID, amount=1_000 * UNIT)]

    info = ledger.get_token_info()
    assert info.last_mint_at == clock.t
    assert info.next_mint_at == clock.t + MINT_COOLDOWN_SECONDS

    clock.advance(MINT_COOLDOWN_SECONDS - 1)
    with pytest.raises(ApplyError) as e2:
        ledger.mint("owner", UNIT)
    assert e2.value.reason == "cooldown_active"


def test_mint_requires_owner(ledger, clock) -> None:
    clock.advance(MINT_COOLDOWN_SECONDS)
    with pytest.raises(ApplyError) as e:
        ledger.mint("alice", UNIT)
    assert e.value.code == "forbidden"
    assert e.value.reason == "unauthorized"


def test_mint_respects_supply_ceiling(ledger, clock) -> None:
    clock.advance(MINT_COOLDOWN_SECONDS)
    with pytest.raises(ApplyError) as e:
        ledger.mint("owner", MAX_SUPPLY - INITIAL_SUPPLY + 1)
    assert e.value.reason == "supply_ceiling_exceeded"

    ledger.mint("owner", MAX_SUPPLY - INITIAL_SUPPLY)
    assert ledger.total_supply() == MAX_SUPPLY


def test_pause_blocks_movement_but_not_approve(ledger, clock) -> None:
    ledger.send_from_treasury("owner", "alice", 10 * UNIT)
    ledger.pause("owner")
    assert ledger.paused() is True

    with pytest.raises(ApplyError) as e:
        ledger.transfer("alice", "bob", UNIT)
    assert e.value.reason == "system_paused"

    with pytest.raises(ApplyError):
        ledger.send_from_treasury("owner", "bob", UNIT)

    clock.advance(MINT_COOLDOWN_SECONDS)
    with pytest.raises(ApplyError) as e2:
        ledger.mint("owner", UNIT)
    assert e2.value.reason == "system_paused"

    ledger.approve("alice", "bob", UNIT)
    assert ledger.allowance("alice", "bob") == UNIT

    with pytest.raises(ApplyError) as e3:
        ledger.pause("owner")
    assert e3.value.reason == "already_paused"

    ledger.unpause("owner")
    ledger.transfer("alice", "bob", UNIT)
    assert ledger.balance_of("bob") == UNIT

    with pytest.raises(ApplyError) as e4:
        ledger.unpause("owner")
    assert e4.value.reason == "not_paused"


def test_pause_requires_owner(ledger) -> None:
    with pytest.raises(ApplyError) as e:
        ledger.pause("alice")
    assert e.value.reason == "unauthorized"
    assert ledger.paused() is False


def test_transfer_ownership_moves_authority(ledger) -> None:
    ledger.transfer_ownership("owner", "alice")
    assert ledger.drain_events() == [OwnershipTransferred(previous_owner="owner", new_owner="alice")]
    assert ledger.owner() == "alice"

    with pytest.raises(ApplyError):
        ledger.pause("owner")
    ledger.pause("alice")
    assert ledger.drain_events() == [Paused(by="alice")]

    with pytest.raises(ApplyError) as e:
        ledger.transfer_ownership("alice", ZERO_ADDRESS)
    assert e.value.reason == "invalid_recipient"


def test_governance_through_the_ledger(ledger, clock) -> None:
    ledger.propose_burn_rate("owner", 50)
    assert ledger.has_pending_burn_rate_update() is True
    assert ledger.pending_burn_rate() == 50
    assert ledger.burn_rate_update_time() == clock.t + TIMELOCK_DURATION_SECONDS
    assert ledger.get_time_until_burn_rate_update() == TIMELOCK_DURATION_SECONDS

    clock.advance(TIMELOCK_DURATION_SECONDS // 2)
    with pytest.raises(ApplyError) as e:
        ledger.execute_burn_rate_update("anyone")
    assert e.value.reason == "timelock_not_elapsed"
    assert ledger.burn_rate() == 0

    clock.advance(TIMELOCK_DURATION_SECONDS)
    ledger.execute_burn_rate_update("anyone")
    assert ledger.burn_rate() == 50
    assert ledger.has_pending_burn_rate_update() is False
    assert ledger.pending_burn_rate() == 0
    assert ledger.burn_rate_update_time() == 0


def test_cancel_through_the_ledger(ledger) -> None:
    ledger.propose_burn_rate("owner", 80)
    ledger.drain_events()

    with pytest.raises(ApplyError):
        ledger.cancel_burn_rate_update("alice")

    ledger.cancel_burn_rate_update("owner")
    assert ledger.drain_events() == [BurnRateUpdateCancelled(rate=0, cancelled_rate=80)]
    assert ledger.has_pending_burn_rate_update() is False


def test_subscriber_reentry_is_rejected_and_rolled_back(ledger) -> None:
    ledger.send_from_treasury("owner", "alice", 10 * UNIT)
    ledger.drain_events()
    before = ledger.state.to_json()

    def _reenter(ev) -> None:
        ledger.transfer("alice", "mallory", UNIT)

    ledger.subscribe(_reenter)

    with pytest.raises(ApplyError) as e:
        ledger.transfer("alice", "bob", UNIT)
    assert e.value.reason == "reentrant_call"
    assert ledger.state.to_json() == before
    assert ledger.drain_events() == []


def test_subscriber_sees_events_in_order(ledger) -> None:
    seen = []
    ledger.subscribe(seen.append)

    ledger.send_from_treasury("owner", "alice", UNIT)
    ledger.approve("alice", "bob", 7)

    assert [ev.name for ev in seen] == ["Transfer", "Approval"]


def test_injected_admin_capability(clock) -> None:
    st = genesis_state(owner="owner", treasury=TREASURY_ACCOUNT_ID, genesis_time=clock.t, initial_supply=INITIAL_SUPPLY)
    council = {"alice", "bob"}
    led = TokenLedger(st, clock=clock, admin=lambda caller: caller in council)

    led.propose_burn_rate("alice", 10)
    led.cancel_burn_rate_update("bob")
    with pytest.raises(ApplyError):
        led.pause("owner")


def test_execute_twice_and_execute_after_cancel(ledger, clock) -> None:
    ledger.propose_burn_rate("owner", 50)
    clock.advance(TIMELOCK_DURATION_SECONDS)
    ledger.execute_burn_rate_update()

    with pytest.raises(ApplyError) as e:
        ledger.execute_burn_rate_update()
    assert e.value.reason == "no_proposal_pending"
    assert ledger.burn_rate() == 50

    ledger.propose_burn_rate("owner", 20)
    ledger.cancel_burn_rate_update("owner")
    clock.advance(TIMELOCK_DURATION_SECONDS)
    with pytest.raises(ApplyError) as e:
        ledger.execute_burn_rate_update()
    assert e.value.reason == "no_proposal_pending"
    assert ledger.burn_rate() == 50


def test_failing_subscriber_rolls_back_after_earlier_ones_ran(ledger) -> None:
    seen = []
    ledger.subscribe(seen.append)

    def _fail(ev) -> None:
        raise RuntimeError("subscriber down")

    ledger.subscribe(_fail)
    before = ledger.state.to_json()

    with pytest.raises(RuntimeError):
        ledger.send_from_treasury("owner", "alice", UNIT)

    # Delivery is part of the call: the first subscriber saw an event that
    # never took effect, and nothing reached the committed event buffer.
    assert [ev.name for ev in seen] == ["Transfer"]
    assert ledger.state.to_json() == before
    assert ledger.drain_events() == []


def test_time_is_fixed_within_a_call(ledger, clock) -> None:
    reads = []
    ledger.subscribe(lambda ev: reads.append(ledger.now()))

    ledger.propose_burn_rate("owner", 30)
    clock.advance(5)
    assert reads == [ledger.last_call_ts]
    assert ledger.burn_rate_update_time() == ledger.last_call_ts + TIMELOCK_DURATION_SECONDS
    assert ledger.now() == ledger.last_call_ts + 5
