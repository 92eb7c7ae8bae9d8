"""
Unit Tests for the Monetary Policy Engine

Reliability Level: SOVEREIGN TIER

Tests:
- Rebase window and cooldown gating (POL-001, POL-002)
- Two-factor supply delta, dead zone, lag dampening
- MAX_SUPPLY ceiling clamp
- Orchestrator-only rebase (AUTH-003)
- Owner-only, versioned parameter changes (AUTH-001, POL-003)
- State left untouched by failed rebases
"""

import os
import sys
from typing import List

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from elastic.errors import (
    ArithmeticOverflow,
    ArithmeticUnderflow,
    NotOwner,
    OracleDataInvalid,
    OutsideRebaseWindow,
    PolicyConfigurationError,
    RebaseTooSoon,
    UnauthorizedCaller,
)
from elastic.ledger.supply_ledger import InMemorySupplyLedger, SupplyLedger
from elastic.logic.authorization import CallContext
from elastic.logic.events import RebaseCompleted
from elastic.logic.policy_engine import (
    UINT64_MAX,
    MonetaryPolicy,
    PolicyParameters,
    clamp_to_supply_ceiling,
    compute_combined_rate,
    compute_supply_delta,
    compute_target_rate,
)
from elastic.numeric.fixed_point import MAX_SUPPLY, ONE
from elastic.oracle.adapter import OracleAdapter
from elastic.oracle.feeds import StaticPriceFeed


DAY = 86400
# Start of the rebase window ten days after the epoch
WINDOW_NOW = 10 * DAY + 72000
INITIAL_SUPPLY = 1_000_000 * ONE
ORCHESTRATOR = CallContext("orchestrator", top_level=False)


class FakeClock:

    def __init__(self, now: int) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now


class FailingLedger(SupplyLedger):

    def __init__(self, total: int) -> None:
        self._total = total

    def total_supply(self) -> int:
        return self._total

    def rebase(self, epoch: int, delta: int) -> int:
        raise ArithmeticUnderflow("ledger refused")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(WINDOW_NOW)


@pytest.fixture
def feeds():
    return {
        "reference_index": StaticPriceFeed.from_decimal("100"),
        "exchange_rate": StaticPriceFeed.from_decimal("1.1"),
        "aux_rate": StaticPriceFeed.from_decimal("1"),
    }


def make_policy(clock, feeds, supply: int = INITIAL_SUPPLY, parameters=None, ledger=None):
    return MonetaryPolicy(
        owner="owner",
        ledger=ledger or InMemorySupplyLedger(supply),
        base_reference_index=100 * ONE,
        parameters=parameters,
        oracles=OracleAdapter(
            feeds["reference_index"], feeds["exchange_rate"], feeds["aux_rate"]
        ),
        orchestrator="orchestrator",
        clock=clock,
    )


@pytest.fixture
def policy(clock, feeds) -> MonetaryPolicy:
    return make_policy(clock, feeds)


# =============================================================================
# Pure computation
# =============================================================================

class TestComputation:

    def test_target_rate(self) -> None:
        assert compute_target_rate(100 * ONE, 100 * ONE) == ONE
        assert compute_target_rate(110 * ONE, 100 * ONE) == 11 * 10 ** 17

    def test_combined_rate_primary_only(self) -> None:
        assert compute_combined_rate(11 * 10 ** 17, ONE, ONE, 0) == 10 ** 17

    def test_combined_rate_aux_only(self) -> None:
        # exchange == target, aux +20% at half weight
        combined = compute_combined_rate(ONE, ONE, 12 * 10 ** 17, ONE // 2)
        assert combined == 10 ** 17

    def test_combined_rate_weights_both_factors(self) -> None:
        combined = compute_combined_rate(11 * 10 ** 17, ONE, 12 * 10 ** 17, ONE // 2)
        assert combined == 5 * 10 ** 16 + 10 ** 17

    def test_dead_zone_yields_zero(self) -> None:
        delta, combined = compute_supply_delta(
            INITIAL_SUPPLY, 104 * 10 ** 16, ONE, ONE, PolicyParameters()
        )
        assert delta == 0
        assert combined == 4 * 10 ** 16

    def test_threshold_itself_is_outside_dead_zone(self) -> None:
        delta, _ = compute_supply_delta(
            INITIAL_SUPPLY, 105 * 10 ** 16, ONE, ONE, PolicyParameters()
        )
        assert delta == (50_000 * ONE) // 30

    def test_expansion_dampened_by_lag(self) -> None:
        delta, _ = compute_supply_delta(
            INITIAL_SUPPLY, 11 * 10 ** 17, ONE, ONE, PolicyParameters()
        )
        assert delta == (100_000 * ONE) // 30

    def test_contraction_truncates_toward_zero(self) -> None:
        delta, _ = compute_supply_delta(
            INITIAL_SUPPLY, 9 * 10 ** 17, ONE, ONE, PolicyParameters()
        )
        assert delta == -((100_000 * ONE) // 30)

    def test_ceiling_clamp(self) -> None:
        assert clamp_to_supply_ceiling(100, MAX_SUPPLY - 10) == 10
        assert clamp_to_supply_ceiling(5, MAX_SUPPLY - 10) == 5
        assert clamp_to_supply_ceiling(-100, MAX_SUPPLY) == -100


# =============================================================================
# Window
# =============================================================================

class TestRebaseWindow:

    @pytest.mark.parametrize("now,expected", [
        (72000, True),
        (71999, False),
        (72899, True),
        (72900, False),
        (DAY + 72000, True),
        (0, False),
    ])
    def test_in_rebase_window(self, policy, now, expected) -> None:
        assert policy.in_rebase_window(now) is expected

    def test_window_uses_clock_by_default(self, policy, clock) -> None:
        assert policy.in_rebase_window() is True
        clock.now = WINDOW_NOW - 1
        assert policy.in_rebase_window() is False

    def test_zero_length_window_never_opens(self, policy) -> None:
        policy.set_rebase_timing_parameters("owner", DAY, 72000, 0)
        assert policy.in_rebase_window(72000) is False


# =============================================================================
# Rebase
# =============================================================================

class TestRebase:

    def test_epoch_counter_exhausted(self, policy, caplog) -> None:
        _, last, parameters, orchestrator = policy.snapshot()
        policy.restore((UINT64_MAX, last, parameters, orchestrator))
        with caplog.at_level("ERROR"):
            with pytest.raises(ArithmeticOverflow):
                policy.rebase(ORCHESTRATOR)
        assert "[FXP-001]" in caplog.text
        assert policy.epoch == UINT64_MAX
        assert policy.ledger.total_supply() == INITIAL_SUPPLY

    def test_expansion(self, policy) -> None:
        outcome = policy.rebase(ORCHESTRATOR)
        expected = (100_000 * ONE) // 30
        assert outcome.epoch == 1
        assert outcome.supply_delta == expected
        assert outcome.total_supply_after == INITIAL_SUPPLY + expected
        assert policy.ledger.total_supply() == INITIAL_SUPPLY + expected
        assert policy.epoch_and_supply() == (1, INITIAL_SUPPLY + expected)

    def test_emits_rebase_completed(self, policy) -> None:
        received: List[RebaseCompleted] = []
        policy.events.subscribe(received.append)
        policy.rebase(ORCHESTRATOR)
        assert received == [RebaseCompleted(
            epoch=1,
            exchange_rate=11 * 10 ** 17,
            reference_index=100 * ONE,
            aux_rate=ONE,
            supply_delta=(100_000 * ONE) // 30,
            timestamp=WINDOW_NOW,
        )]

    def test_dead_zone_still_advances_epoch(self, policy, feeds) -> None:
        feeds["exchange_rate"].set_reading(102 * 10 ** 16)
        outcome = policy.rebase(ORCHESTRATOR)
        assert outcome.supply_delta == 0
        assert policy.epoch == 1
        assert policy.last_rebase_timestamp == WINDOW_NOW
        assert policy.ledger.total_supply() == INITIAL_SUPPLY

    def test_timestamp_snaps_to_window_start(self, policy, clock) -> None:
        clock.now = WINDOW_NOW + 120
        policy.rebase(ORCHESTRATOR)
        assert policy.last_rebase_timestamp == WINDOW_NOW

    def test_second_rebase_in_same_window_is_too_soon(self, policy, clock) -> None:
        policy.rebase(ORCHESTRATOR)
        clock.now = WINDOW_NOW + 60
        with pytest.raises(RebaseTooSoon) as exc_info:
            policy.rebase(ORCHESTRATOR)
        assert exc_info.value.error_code == "POL-002"
        assert policy.epoch == 1

    def test_next_window_rebase_succeeds(self, policy, clock) -> None:
        policy.rebase(ORCHESTRATOR)
        clock.now = WINDOW_NOW + DAY + 1
        outcome = policy.rebase(ORCHESTRATOR)
        assert outcome.epoch == 2
        assert policy.last_rebase_timestamp == WINDOW_NOW + DAY

    def test_outside_window_rejected(self, policy, clock) -> None:
        clock.now = WINDOW_NOW - 1
        with pytest.raises(OutsideRebaseWindow) as exc_info:
            policy.rebase(ORCHESTRATOR)
        assert exc_info.value.error_code == "POL-001"
        assert policy.epoch == 0

    def test_only_orchestrator_may_rebase(self, policy) -> None:
        with pytest.raises(UnauthorizedCaller):
            policy.rebase(CallContext("keeper"))
        assert policy.epoch == 0

    def test_invalid_oracle_leaves_state_untouched(self, policy, feeds) -> None:
        feeds["reference_index"].invalidate()
        with pytest.raises(OracleDataInvalid):
            policy.rebase(ORCHESTRATOR)
        assert policy.epoch == 0
        assert policy.last_rebase_timestamp == 0
        assert policy.events.history == []

    def test_ledger_failure_restores_epoch(self, clock, feeds) -> None:
        policy = make_policy(clock, feeds, ledger=FailingLedger(INITIAL_SUPPLY))
        with pytest.raises(ArithmeticUnderflow):
            policy.rebase(ORCHESTRATOR)
        assert policy.epoch == 0
        assert policy.last_rebase_timestamp == 0

    def test_ceiling_clamp_applied(self, clock, feeds) -> None:
        feeds["exchange_rate"].set_reading(2 * ONE)
        policy = make_policy(clock, feeds, supply=MAX_SUPPLY - 10)
        outcome = policy.rebase(ORCHESTRATOR)
        assert outcome.supply_delta == 10
        assert outcome.ceiling_clamped
        assert policy.ledger.total_supply() == MAX_SUPPLY

    def test_aux_factor_drives_delta(self, clock, feeds) -> None:
        feeds["exchange_rate"].set_reading(ONE)
        feeds["aux_rate"].set_reading(12 * 10 ** 17)
        policy = make_policy(
            clock, feeds, parameters=PolicyParameters(aux_weight=ONE // 2)
        )
        outcome = policy.rebase(ORCHESTRATOR)
        assert outcome.combined_rate == 10 ** 17
        assert outcome.supply_delta == (100_000 * ONE) // 30


# =============================================================================
# Owner-only configuration
# =============================================================================

class TestParameters:

    def test_defaults(self) -> None:
        params = PolicyParameters()
        assert params.deviation_threshold == 5 * 10 ** 16
        assert params.rebase_lag == 30
        assert params.min_rebase_interval == DAY
        assert params.rebase_window_offset == 72000
        assert params.rebase_window_length == 900
        assert params.aux_weight == 0

    def test_setter_bumps_version(self, policy) -> None:
        updated = policy.set_rebase_lag("owner", 10)
        assert updated.rebase_lag == 10
        assert updated.version == 2
        assert policy.parameters is updated

    def test_setter_requires_owner(self, policy) -> None:
        with pytest.raises(NotOwner):
            policy.set_deviation_threshold("mallory", 0)
        assert policy.parameters.version == 1

    @pytest.mark.parametrize("setter,args", [
        ("set_rebase_lag", (0,)),
        ("set_aux_weight", (ONE + 1,)),
        ("set_deviation_threshold", (-1,)),
        ("set_rebase_timing_parameters", (0, 0, 0)),
        ("set_rebase_timing_parameters", (DAY, DAY, 900)),
    ])
    def test_invalid_values_rejected(self, policy, setter, args) -> None:
        with pytest.raises(PolicyConfigurationError) as exc_info:
            getattr(policy, setter)("owner", *args)
        assert exc_info.value.error_code == "POL-003"
        assert policy.parameters.version == 1

    def test_set_orchestrator(self, policy) -> None:
        policy.set_orchestrator("owner", "new-orchestrator")
        with pytest.raises(UnauthorizedCaller):
            policy.rebase(ORCHESTRATOR)
        assert policy.orchestrator == "new-orchestrator"

    def test_replace_oracle(self, policy, feeds) -> None:
        replacement = StaticPriceFeed.from_decimal("1")
        policy.set_market_oracle("owner", replacement)
        outcome = policy.rebase(ORCHESTRATOR)
        assert outcome.supply_delta == 0
        assert replacement.reads == 1
        assert feeds["exchange_rate"].reads == 0

    def test_base_reference_index_must_be_positive(self, feeds) -> None:
        with pytest.raises(PolicyConfigurationError):
            MonetaryPolicy(owner="owner", ledger=InMemorySupplyLedger(0), base_reference_index=0)

    def test_state_view(self, policy) -> None:
        policy.rebase(ORCHESTRATOR)
        state = policy.state
        assert state.epoch == 1
        assert state.last_rebase_timestamp == WINDOW_NOW
        assert state.base_reference_index == 100 * ONE
        assert state.orchestrator == "orchestrator"
