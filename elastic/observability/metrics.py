"""
============================================================================
Elastic Supply v1.0.0
Prometheus Metrics - Rebase Cycle Observability
============================================================================

Reliability Level: L6 Critical
Input Constraints: Fixed-point ints for supply values
Side Effects: Updates Prometheus metrics registry

METRICS EXPOSED
---------------
- elastic_rebase_cycles_total{outcome}: committed / rolled_back / rejected
- elastic_policy_epoch: Epoch of the last committed rebase
- elastic_total_supply: Total supply after the last committed rebase
- elastic_last_supply_delta: Supply delta of the last committed rebase
- elastic_tolerated_failures_total{destination}: Approved downstream failures

ZERO-FLOAT MANDATE
------------------
Supply values are converted from fixed point to float ONLY at the
Prometheus boundary. Internal calculations remain integer.

Metric helpers never raise: a metrics failure is logged (OBS-xxx) and
swallowed.

============================================================================
"""

import logging

from prometheus_client import Counter, Gauge

from elastic.logic.events import CycleEvent, RebaseCompleted, TransactionFailed
from elastic.numeric.fixed_point import from_fixed

logger = logging.getLogger(__name__)


# ============================================================================
# PROMETHEUS METRICS DEFINITIONS
# ============================================================================

REBASE_CYCLES_TOTAL = Counter(
    "elastic_rebase_cycles_total",
    "Rebase cycles by outcome",
    ["outcome"]
)

POLICY_EPOCH_GAUGE = Gauge(
    "elastic_policy_epoch",
    "Epoch of the last committed rebase"
)

TOTAL_SUPPLY_GAUGE = Gauge(
    "elastic_total_supply",
    "Total supply after the last committed rebase (whole units)"
)

SUPPLY_DELTA_GAUGE = Gauge(
    "elastic_last_supply_delta",
    "Supply delta applied by the last committed rebase (whole units)"
)

TOLERATED_FAILURES_TOTAL = Counter(
    "elastic_tolerated_failures_total",
    "Downstream failures tolerated because their code was approved",
    ["destination"]
)


# ============================================================================
# METRIC UPDATE FUNCTIONS
# ============================================================================

def record_cycle_outcome(outcome: str) -> None:
    try:
        REBASE_CYCLES_TOTAL.labels(outcome=outcome).inc()
    except Exception as e:
        logger.error(f"[OBS-001] Failed to record cycle outcome | outcome={outcome} | error={e}")


def update_total_supply(total_supply: int) -> None:
    try:
        TOTAL_SUPPLY_GAUGE.set(float(from_fixed(total_supply)))
    except Exception as e:
        logger.error(f"[OBS-002] Failed to update total supply gauge | error={e}")


def observe_event(event: CycleEvent) -> None:
    """
    EventLog subscriber: reflect committed events in metrics.
    """
    try:
        if isinstance(event, RebaseCompleted):
            POLICY_EPOCH_GAUGE.set(event.epoch)
            SUPPLY_DELTA_GAUGE.set(float(from_fixed(event.supply_delta)))
        elif isinstance(event, TransactionFailed):
            TOLERATED_FAILURES_TOTAL.labels(destination=event.destination).inc()
    except Exception as e:
        logger.error(
            f"[OBS-003] Failed to observe event | event={type(event).__name__} | error={e}"
        )
