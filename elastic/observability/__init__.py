"""
============================================================================
Elastic Supply v1.0.0
Observability Module - Prometheus Metrics
============================================================================
"""

from elastic.observability.metrics import (
    REBASE_CYCLES_TOTAL,
    POLICY_EPOCH_GAUGE,
    TOTAL_SUPPLY_GAUGE,
    SUPPLY_DELTA_GAUGE,
    TOLERATED_FAILURES_TOTAL,
    record_cycle_outcome,
    update_total_supply,
    observe_event,
)

__all__ = [
    "REBASE_CYCLES_TOTAL",
    "POLICY_EPOCH_GAUGE",
    "TOTAL_SUPPLY_GAUGE",
    "SUPPLY_DELTA_GAUGE",
    "TOLERATED_FAILURES_TOTAL",
    "record_cycle_outcome",
    "update_total_supply",
    "observe_event",
]
