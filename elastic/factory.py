"""
============================================================================
Elastic Supply v1.0.0
System Factory - Wiring Ledger, Policy, Dispatcher and Orchestrator
============================================================================

Reliability Level: L6 Critical
Input Constraints: Validated PolicyConfig
Side Effects: Subscribes metrics (and optionally the journal) to the event log

create_elastic_supply_system() builds a ready-to-run system:

    ledger  <- policy (owner, orchestrator identity set)
    policy  <- orchestrator (owner, dispatcher, unit of work)
    events  -> metrics.observe_event, journal.record

build_scenario_system() additionally registers scenario targets and
loads the notification list.

============================================================================
"""

from dataclasses import dataclass
from typing import Callable, Optional
import logging

from elastic.database.event_journal import EventJournal
from elastic.ledger.supply_ledger import InMemorySupplyLedger
from elastic.logic.downstream import (
    CallDispatcher,
    CallResult,
    DownstreamRevert,
    DownstreamTarget,
    RecordingTarget,
)
from elastic.logic.events import EventLog
from elastic.logic.failure_codes import failure_code
from elastic.logic.orchestrator import Orchestrator
from elastic.logic.policy_engine import MonetaryPolicy
from elastic.numeric.fixed_point import to_fixed
from elastic.observability import metrics
from elastic.oracle.adapter import OracleAdapter, PriceFeed
from elastic.oracle.feeds import StaticPriceFeed
from elastic.schemas.scenario import ScenarioIn, TargetBehaviour, TargetIn
from elastic.services.policy_config import PolicyConfig

logger = logging.getLogger(__name__)

# Four bytes: too short to carry a structured reason
SILENT_FAILURE_PAYLOAD = bytes.fromhex("deadbeef")


@dataclass
class ElasticSupplySystem:
    config: PolicyConfig
    ledger: InMemorySupplyLedger
    events: EventLog
    policy: MonetaryPolicy
    dispatcher: CallDispatcher
    orchestrator: Orchestrator


def create_elastic_supply_system(
    config: PolicyConfig,
    initial_supply: int,
    reference_index_feed: Optional[PriceFeed] = None,
    market_feed: Optional[PriceFeed] = None,
    aux_feed: Optional[PriceFeed] = None,
    clock: Optional[Callable[[], int]] = None,
    dispatcher: Optional[CallDispatcher] = None,
    journal: Optional[EventJournal] = None,
) -> ElasticSupplySystem:
    """
    Build a wired system from configuration.

    Args:
        config: Validated policy configuration
        initial_supply: Starting total supply (fixed point)
        reference_index_feed / market_feed / aux_feed: Oracle feeds
        clock: Returns the current unix time (default: wall clock)
        dispatcher: Downstream dispatcher (default: empty)
        journal: Optional event journal subscribed to committed events

    Returns:
        ElasticSupplySystem
    """
    events = EventLog()
    events.subscribe(metrics.observe_event)
    if journal is not None:
        events.subscribe(journal.record)

    ledger = InMemorySupplyLedger(initial_supply)
    policy = MonetaryPolicy(
        owner=config.owner,
        ledger=ledger,
        base_reference_index=config.base_reference_index_fixed,
        parameters=config.to_parameters(),
        oracles=OracleAdapter(reference_index_feed, market_feed, aux_feed),
        orchestrator=config.orchestrator_id,
        clock=clock,
        events=events,
    )
    orchestrator = Orchestrator(
        owner=config.owner,
        policy=policy,
        dispatcher=dispatcher or CallDispatcher(),
        identity=config.orchestrator_id,
        default_budget=config.cycle_compute_budget,
    )

    logger.info(
        f"[FACTORY] System created | owner={config.owner} | "
        f"orchestrator={config.orchestrator_id} | initial_supply={initial_supply} | "
        f"journal={'on' if journal is not None else 'off'}"
    )
    return ElasticSupplySystem(
        config=config,
        ledger=ledger,
        events=events,
        policy=policy,
        dispatcher=orchestrator.dispatcher,
        orchestrator=orchestrator,
    )


# =============================================================================
# Scenario wiring
# =============================================================================

class ExhaustingTarget(DownstreamTarget):
    """Target that consumes its whole budget and fails without data."""

    def invoke(self, payload: bytes, budget: int) -> CallResult:
        return CallResult.failure(b"", budget_used=budget)


def create_scenario_target(name: str, target: TargetIn) -> DownstreamTarget:
    if target.behaviour is TargetBehaviour.EXHAUST:
        return ExhaustingTarget()

    if target.behaviour is TargetBehaviour.REVERT:
        message = target.message

        def handler(payload: bytes) -> bytes:
            raise DownstreamRevert(message)
    elif target.behaviour is TargetBehaviour.SILENT:
        def handler(payload: bytes) -> bytes:
            raise DownstreamRevert(raw=SILENT_FAILURE_PAYLOAD)
    else:
        def handler(payload: bytes) -> bytes:
            return b""

    return RecordingTarget(handler, cost=target.cost, name=name)


def build_scenario_system(
    scenario: ScenarioIn,
    config: PolicyConfig,
    journal: Optional[EventJournal] = None,
    now: Optional[int] = None,
) -> ElasticSupplySystem:
    """
    Build a system whose feeds, targets and notification list come from
    a validated scenario. `now` overrides scenario.now; if neither is set
    the wall clock is used.
    """
    oracles = scenario.oracles
    reference_index_feed = StaticPriceFeed.from_decimal(
        oracles.reference_index.value, oracles.reference_index.valid, name="reference_index"
    )
    market_feed = StaticPriceFeed.from_decimal(
        oracles.exchange_rate.value, oracles.exchange_rate.valid, name="exchange_rate"
    )
    aux_feed = StaticPriceFeed.from_decimal(
        oracles.aux_rate.value, oracles.aux_rate.valid, name="aux_rate"
    )

    dispatcher = CallDispatcher()
    for name, target in scenario.targets.items():
        dispatcher.register(name, create_scenario_target(name, target))

    fixed_now = now if now is not None else scenario.now
    clock = (lambda: fixed_now) if fixed_now is not None else None

    system = create_elastic_supply_system(
        config,
        initial_supply=to_fixed(scenario.initial_supply),
        reference_index_feed=reference_index_feed,
        market_feed=market_feed,
        aux_feed=aux_feed,
        clock=clock,
        dispatcher=dispatcher,
        journal=journal,
    )

    for tx in scenario.transactions:
        codes = set(tx.approved_failure_codes)
        codes.update(failure_code(message) for message in tx.approved_failure_messages)
        index = system.orchestrator.add_transaction(
            config.owner,
            tx.destination,
            tx.payload_bytes(),
            tx.compute_budget,
            approved_failure_codes=codes,
        )
        if not tx.enabled:
            system.orchestrator.set_transaction_enabled(config.owner, index, False)

    return system


__all__ = [
    "ElasticSupplySystem",
    "ExhaustingTarget",
    "SILENT_FAILURE_PAYLOAD",
    "create_elastic_supply_system",
    "create_scenario_target",
    "build_scenario_system",
]
