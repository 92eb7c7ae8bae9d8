"""
============================================================================
Elastic Supply v1.0.0
Policy Engine - Gated, Dampened Supply Rebase
============================================================================

Reliability Level: SOVEREIGN TIER (Mission-Critical)
Input Constraints: Fixed-point ints only; explicit CallContext
Side Effects: Advances epoch, calls ledger.rebase, emits RebaseCompleted

REBASE PROCEDURE
----------------
    1. Caller must be the configured orchestrator           (AUTH-003)
    2. Window:   offset <= now % interval < offset + length  (POL-001)
    3. Cooldown: last_rebase_timestamp + interval < now      (POL-002)
    4. Read oracles; target_rate = reference_index * ONE / base_reference_index
    5. Two-factor delta rate:
           aux_deviation = aux_rate - ONE
           primary = (ONE - aux_weight) * (rate - target) / target
           aux     = aux_weight * aux_deviation / ONE
           combined = primary + aux
    6. Dead zone: |combined| < deviation_threshold -> delta = 0
       Else delta = (total_supply * combined / ONE) / rebase_lag
    7. Ceiling: delta > 0 and total + delta > MAX_SUPPLY
       -> delta = MAX_SUPPLY - total. There is no matching floor clamp on
       the negative side.
    8. Snap last_rebase_timestamp to window start, epoch += 1
    9. new_total = ledger.rebase(epoch, delta); new_total <= MAX_SUPPLY

Steps 1-7 do not mutate state. If step 9 fails, epoch and timestamp are
put back before the error propagates.

A dead-zone cycle still advances epoch and timestamp: the cycle ran, it
just requested no change.

The cooldown check also limits the policy to one successful rebase per
interval. The timestamp is updated together with the decision, so no
separate reentrancy lock exists.

============================================================================
"""

from dataclasses import dataclass, replace, asdict
from typing import Any, Callable, Dict, Optional, Tuple
import logging
import time

from elastic.errors import (
    ArithmeticOverflow,
    OutsideRebaseWindow,
    RebaseTooSoon,
    PolicyConfigurationError,
    SupplyCeilingViolated,
)
from elastic.ledger.supply_ledger import SupplyLedger
from elastic.logic.authorization import CallContext, Ownable, require_caller
from elastic.logic.events import EventLog, RebaseCompleted
from elastic.numeric.fixed_point import (
    ONE,
    MAX_SUPPLY,
    u_mul,
    u_div,
    s_add,
    s_sub,
    s_mul,
    s_div,
    s_abs,
    to_signed,
    assert_ceiling_invariant,
)
from elastic.oracle.adapter import OracleAdapter, OracleSnapshot, PriceFeed
from elastic.unit_of_work import Transactional

logger = logging.getLogger(__name__)


# =============================================================================
# Defaults
# =============================================================================

DEFAULT_DEVIATION_THRESHOLD = 5 * 10 ** 16      # 0.05
DEFAULT_REBASE_LAG = 30
DEFAULT_MIN_REBASE_INTERVAL = 24 * 60 * 60      # 1 day
DEFAULT_REBASE_WINDOW_OFFSET = 72000            # 20:00 UTC
DEFAULT_REBASE_WINDOW_LENGTH = 15 * 60          # 15 minutes
DEFAULT_AUX_WEIGHT = 0

UINT64_MAX = 2 ** 64 - 1


# =============================================================================
# Configuration and state
# =============================================================================

@dataclass(frozen=True)
class PolicyParameters:
    """
    Versioned, owner-settable policy configuration.

    Every accepted change produces a new instance with version + 1.

    Attributes:
        deviation_threshold: Dead-zone half width (fixed point, 0.05 == 5%)
        rebase_lag: Divisor dampening each supply change (> 0)
        min_rebase_interval: Seconds between rebases (> 0)
        rebase_window_offset: Window start within each interval (< interval)
        rebase_window_length: Window length in seconds
        aux_weight: Weight of the auxiliary factor, in [0, ONE]
        version: Configuration version
    """
    deviation_threshold: int = DEFAULT_DEVIATION_THRESHOLD
    rebase_lag: int = DEFAULT_REBASE_LAG
    min_rebase_interval: int = DEFAULT_MIN_REBASE_INTERVAL
    rebase_window_offset: int = DEFAULT_REBASE_WINDOW_OFFSET
    rebase_window_length: int = DEFAULT_REBASE_WINDOW_LENGTH
    aux_weight: int = DEFAULT_AUX_WEIGHT
    version: int = 1

    def validate(self) -> None:
        """
        Raises:
            PolicyConfigurationError: If any bound is violated (POL-003)
        """
        errors = []
        if self.rebase_lag <= 0:
            errors.append(f"rebase_lag must be positive, got {self.rebase_lag}")
        if self.min_rebase_interval <= 0:
            errors.append(
                f"min_rebase_interval must be positive, got {self.min_rebase_interval}"
            )
        if not 0 <= self.rebase_window_offset < self.min_rebase_interval:
            errors.append(
                f"rebase_window_offset must be in [0, min_rebase_interval), "
                f"got {self.rebase_window_offset} for interval {self.min_rebase_interval}"
            )
        if self.rebase_window_length < 0:
            errors.append(
                f"rebase_window_length must be non-negative, got {self.rebase_window_length}"
            )
        if not 0 <= self.aux_weight <= ONE:
            errors.append(f"aux_weight must be in [0, ONE], got {self.aux_weight}")
        if self.deviation_threshold < 0:
            errors.append(
                f"deviation_threshold must be non-negative, got {self.deviation_threshold}"
            )
        if errors:
            message = "; ".join(errors)
            logger.error(f"[POL-003] Invalid policy parameters | {message}")
            raise PolicyConfigurationError(message)

    def in_window(self, now: int) -> bool:
        position = now % self.min_rebase_interval
        start = self.rebase_window_offset
        return start <= position < start + self.rebase_window_length

    def window_start(self, now: int) -> int:
        """Timestamp of the current interval's window start."""
        return now - (now % self.min_rebase_interval) + self.rebase_window_offset

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class PolicyState:
    """Read-only view of the policy's persistent state."""
    epoch: int
    last_rebase_timestamp: int
    base_reference_index: int
    parameters: PolicyParameters
    orchestrator: Optional[str]


@dataclass(frozen=True)
class RebaseOutcome:
    """
    Result of one successful policy rebase.

    Attributes:
        requested_delta: Delta after dampening, before the ceiling clamp
        supply_delta: Delta handed to the ledger
    """
    epoch: int
    timestamp: int
    target_rate: int
    combined_rate: int
    requested_delta: int
    supply_delta: int
    total_supply_before: int
    total_supply_after: int
    oracle: OracleSnapshot

    @property
    def ceiling_clamped(self) -> bool:
        return self.supply_delta != self.requested_delta

    def to_dict(self) -> Dict[str, Any]:
        return {
            "epoch": self.epoch,
            "timestamp": self.timestamp,
            "target_rate": str(self.target_rate),
            "combined_rate": str(self.combined_rate),
            "requested_delta": str(self.requested_delta),
            "supply_delta": str(self.supply_delta),
            "total_supply_before": str(self.total_supply_before),
            "total_supply_after": str(self.total_supply_after),
            "exchange_rate": str(self.oracle.exchange_rate),
            "reference_index": str(self.oracle.reference_index),
            "aux_rate": str(self.oracle.aux_rate),
        }


# =============================================================================
# Pure computation
# =============================================================================

def compute_target_rate(reference_index: int, base_reference_index: int) -> int:
    """target_rate = reference_index * ONE / base_reference_index"""
    return u_div(u_mul(reference_index, ONE), base_reference_index)


def compute_combined_rate(
    exchange_rate: int,
    target_rate: int,
    aux_rate: int,
    aux_weight: int
) -> int:
    """
    Weighted two-factor supply-delta rate (signed fixed point).

    primary = (ONE - aux_weight) * (exchange_rate - target_rate) / target_rate
    aux     = aux_weight * (aux_rate - ONE) / ONE
    """
    rate = to_signed(exchange_rate)
    target = to_signed(target_rate)
    aux_deviation = s_sub(to_signed(aux_rate), ONE)

    primary_weight = s_sub(ONE, aux_weight)
    primary_factor = s_div(s_mul(primary_weight, s_sub(rate, target)), target)
    aux_factor = s_div(s_mul(aux_weight, aux_deviation), ONE)
    return s_add(primary_factor, aux_factor)


def compute_supply_delta(
    total_supply: int,
    exchange_rate: int,
    target_rate: int,
    aux_rate: int,
    parameters: PolicyParameters
) -> Tuple[int, int]:
    """
    Requested supply delta for one cycle, before the ceiling clamp.

    Returns:
        (delta, combined_rate); delta is exactly 0 inside the dead zone
    """
    combined = compute_combined_rate(
        exchange_rate, target_rate, aux_rate, parameters.aux_weight
    )
    if s_abs(combined) < parameters.deviation_threshold:
        return 0, combined

    raw_delta = s_div(s_mul(to_signed(total_supply), combined), ONE)
    return s_div(raw_delta, parameters.rebase_lag), combined


def clamp_to_supply_ceiling(delta: int, total_supply: int) -> int:
    """Cap positive deltas so total_supply + delta <= MAX_SUPPLY."""
    if delta > 0 and total_supply + delta > MAX_SUPPLY:
        return MAX_SUPPLY - total_supply
    return delta


# =============================================================================
# Monetary policy
# =============================================================================

class MonetaryPolicy(Ownable, Transactional):
    """
    Decides whether and by how much supply changes, then applies it.

    Reliability Level: SOVEREIGN TIER
    Input Constraints: base_reference_index > 0
    Side Effects: ledger.rebase, RebaseCompleted events, logging

    Example Usage:
        policy = MonetaryPolicy(
            owner="owner",
            ledger=ledger,
            base_reference_index=to_fixed("100"),
            oracles=OracleAdapter(cpi_feed, market_feed, aux_feed),
        )
        policy.set_orchestrator("owner", "orchestrator")
        outcome = policy.rebase(CallContext("orchestrator", top_level=False))
    """

    def __init__(
        self,
        owner: str,
        ledger: SupplyLedger,
        base_reference_index: int,
        parameters: Optional[PolicyParameters] = None,
        oracles: Optional[OracleAdapter] = None,
        orchestrator: Optional[str] = None,
        clock: Optional[Callable[[], int]] = None,
        events: Optional[EventLog] = None,
    ) -> None:
        super().__init__(owner)
        assert_ceiling_invariant()

        if base_reference_index <= 0:
            raise PolicyConfigurationError(
                f"base_reference_index must be positive, got {base_reference_index}"
            )

        self._parameters = parameters or PolicyParameters()
        self._parameters.validate()

        self._ledger = ledger
        self._base_reference_index = base_reference_index
        self._oracles = oracles or OracleAdapter()
        self._orchestrator = orchestrator
        self._clock = clock or (lambda: int(time.time()))
        self._events = events or EventLog()

        self._epoch = 0
        self._last_rebase_timestamp = 0

        logger.info(
            f"[POLICY-INIT] owner={self.owner} | "
            f"base_reference_index={base_reference_index} | "
            f"parameters={self._parameters.to_dict()}"
        )

    # -------------------------------------------------------------------------
    # Read-only views
    # -------------------------------------------------------------------------

    @property
    def ledger(self) -> SupplyLedger:
        return self._ledger

    @property
    def events(self) -> EventLog:
        return self._events

    @property
    def oracles(self) -> OracleAdapter:
        return self._oracles

    @property
    def parameters(self) -> PolicyParameters:
        return self._parameters

    @property
    def epoch(self) -> int:
        return self._epoch

    @property
    def last_rebase_timestamp(self) -> int:
        return self._last_rebase_timestamp

    @property
    def orchestrator(self) -> Optional[str]:
        return self._orchestrator

    @property
    def state(self) -> PolicyState:
        return PolicyState(
            epoch=self._epoch,
            last_rebase_timestamp=self._last_rebase_timestamp,
            base_reference_index=self._base_reference_index,
            parameters=self._parameters,
            orchestrator=self._orchestrator,
        )

    def epoch_and_supply(self) -> Tuple[int, int]:
        return self._epoch, self._ledger.total_supply()

    def in_rebase_window(self, now: Optional[int] = None) -> bool:
        """Pure function of `now` and the timing parameters."""
        if now is None:
            now = self._clock()
        return self._parameters.in_window(now)

    # -------------------------------------------------------------------------
    # Rebase
    # -------------------------------------------------------------------------

    def rebase(self, context: CallContext, correlation_id: Optional[str] = None) -> RebaseOutcome:
        """
        Run one policy cycle.

        Raises:
            UnauthorizedCaller: Caller is not the orchestrator
            OutsideRebaseWindow: now is outside the rebase window
            RebaseTooSoon: Interval since the last rebase has not elapsed
            OracleDataInvalid: A feed is missing or invalid
            FixedPointError: Arithmetic overflow / underflow
            SupplyCeilingViolated: Ledger returned a total above MAX_SUPPLY
        """
        require_caller(context, self._orchestrator, "rebase")

        now = self._clock()
        params = self._parameters

        if not params.in_window(now):
            logger.warning(
                f"[POL-001] Outside rebase window | now={now} | "
                f"position={now % params.min_rebase_interval} | "
                f"window=[{params.rebase_window_offset}, "
                f"{params.rebase_window_offset + params.rebase_window_length}) | "
                f"correlation_id={correlation_id}"
            )
            raise OutsideRebaseWindow(f"Timestamp {now} is outside the rebase window")

        if not self._last_rebase_timestamp + params.min_rebase_interval < now:
            logger.warning(
                f"[POL-002] Rebase too soon | now={now} | "
                f"last_rebase_timestamp={self._last_rebase_timestamp} | "
                f"min_rebase_interval={params.min_rebase_interval} | "
                f"correlation_id={correlation_id}"
            )
            raise RebaseTooSoon(
                f"Last rebase at {self._last_rebase_timestamp}, interval "
                f"{params.min_rebase_interval}s has not elapsed at {now}"
            )

        if self._epoch >= UINT64_MAX:
            logger.error(
                f"[FXP-001] Epoch counter exhausted | epoch={self._epoch} | "
                f"correlation_id={correlation_id}"
            )
            raise ArithmeticOverflow("epoch counter exhausted")

        snapshot = self._oracles.read_all(correlation_id)
        target_rate = compute_target_rate(snapshot.reference_index, self._base_reference_index)

        total_supply = self._ledger.total_supply()
        requested_delta, combined_rate = compute_supply_delta(
            total_supply,
            snapshot.exchange_rate,
            target_rate,
            snapshot.aux_rate,
            params,
        )
        supply_delta = clamp_to_supply_ceiling(requested_delta, total_supply)
        if supply_delta != requested_delta:
            logger.warning(
                f"[POLICY-CEILING] Supply delta clamped | requested={requested_delta} | "
                f"applied={supply_delta} | total_supply={total_supply} | "
                f"correlation_id={correlation_id}"
            )

        previous = (self._epoch, self._last_rebase_timestamp)
        # Always a window start, never the raw call time
        self._last_rebase_timestamp = params.window_start(now)
        self._epoch += 1
        try:
            total_after = self._ledger.rebase(self._epoch, supply_delta)
            if total_after > MAX_SUPPLY:
                logger.error(
                    f"[POL-004] Ledger exceeded supply ceiling | total_supply={total_after} | "
                    f"max_supply={MAX_SUPPLY} | correlation_id={correlation_id}"
                )
                raise SupplyCeilingViolated(
                    f"Ledger returned total supply {total_after} above MAX_SUPPLY"
                )
        except Exception:
            self._epoch, self._last_rebase_timestamp = previous
            raise

        self._events.emit(RebaseCompleted(
            epoch=self._epoch,
            exchange_rate=snapshot.exchange_rate,
            reference_index=snapshot.reference_index,
            aux_rate=snapshot.aux_rate,
            supply_delta=supply_delta,
            timestamp=now,
        ))

        logger.info(
            f"[POLICY-REBASE] epoch={self._epoch} | exchange_rate={snapshot.exchange_rate} | "
            f"target_rate={target_rate} | aux_rate={snapshot.aux_rate} | "
            f"combined_rate={combined_rate} | supply_delta={supply_delta} | "
            f"total_supply={total_after} | correlation_id={correlation_id}"
        )

        return RebaseOutcome(
            epoch=self._epoch,
            timestamp=now,
            target_rate=target_rate,
            combined_rate=combined_rate,
            requested_delta=requested_delta,
            supply_delta=supply_delta,
            total_supply_before=total_supply,
            total_supply_after=total_after,
            oracle=snapshot,
        )

    # -------------------------------------------------------------------------
    # Owner-only setters
    # -------------------------------------------------------------------------

    def _update_parameters(self, caller: str, operation: str, **changes: int) -> PolicyParameters:
        self.require_owner(caller, operation)
        updated = replace(self._parameters, version=self._parameters.version + 1, **changes)
        updated.validate()
        self._parameters = updated
        logger.info(
            f"[POLICY-PARAM] {operation} | version={updated.version} | "
            + " | ".join(f"{k}={v}" for k, v in changes.items())
        )
        return updated

    def set_deviation_threshold(self, caller: str, deviation_threshold: int) -> PolicyParameters:
        return self._update_parameters(
            caller, "set_deviation_threshold", deviation_threshold=deviation_threshold
        )

    def set_rebase_lag(self, caller: str, rebase_lag: int) -> PolicyParameters:
        return self._update_parameters(caller, "set_rebase_lag", rebase_lag=rebase_lag)

    def set_aux_weight(self, caller: str, aux_weight: int) -> PolicyParameters:
        return self._update_parameters(caller, "set_aux_weight", aux_weight=aux_weight)

    def set_rebase_timing_parameters(
        self,
        caller: str,
        min_rebase_interval: int,
        rebase_window_offset: int,
        rebase_window_length: int
    ) -> PolicyParameters:
        return self._update_parameters(
            caller,
            "set_rebase_timing_parameters",
            min_rebase_interval=min_rebase_interval,
            rebase_window_offset=rebase_window_offset,
            rebase_window_length=rebase_window_length,
        )

    def set_orchestrator(self, caller: str, orchestrator: str) -> None:
        self.require_owner(caller, "set_orchestrator")
        self._orchestrator = orchestrator
        logger.info(f"[POLICY-PARAM] set_orchestrator | orchestrator={orchestrator}")

    def set_reference_index_oracle(self, caller: str, feed: Optional[PriceFeed]) -> None:
        self.require_owner(caller, "set_reference_index_oracle")
        self._oracles.reference_index_feed = feed
        logger.info(f"[POLICY-PARAM] set_reference_index_oracle | feed={type(feed).__name__}")

    def set_market_oracle(self, caller: str, feed: Optional[PriceFeed]) -> None:
        self.require_owner(caller, "set_market_oracle")
        self._oracles.market_feed = feed
        logger.info(f"[POLICY-PARAM] set_market_oracle | feed={type(feed).__name__}")

    def set_aux_oracle(self, caller: str, feed: Optional[PriceFeed]) -> None:
        self.require_owner(caller, "set_aux_oracle")
        self._oracles.aux_feed = feed
        logger.info(f"[POLICY-PARAM] set_aux_oracle | feed={type(feed).__name__}")

    # -------------------------------------------------------------------------
    # Transactional
    # -------------------------------------------------------------------------

    def snapshot(self) -> Tuple[int, int, PolicyParameters, Optional[str]]:
        return (
            self._epoch,
            self._last_rebase_timestamp,
            self._parameters,
            self._orchestrator,
        )

    def restore(self, snapshot: Tuple[int, int, PolicyParameters, Optional[str]]) -> None:
        (
            self._epoch,
            self._last_rebase_timestamp,
            self._parameters,
            self._orchestrator,
        ) = snapshot
