"""
============================================================================
Elastic Supply v1.0.0
Logic Layer - Monetary Policy, Orchestration and Guards
============================================================================

Reliability Level: SOVEREIGN TIER (Mission-Critical)

This package contains the core logic for:
- Authorization: owner checks and top-level caller checks
- Events: commit-aware RebaseCompleted / TransactionFailed log
- MonetaryPolicy: gated, dampened supply rebase
- Failure classification: downstream failure codes
- Downstream calls: budgeted notification capability
- Orchestrator: rebase then notify, all or nothing

============================================================================
"""

from elastic.logic.authorization import (
    CallContext,
    Ownable,
    require_top_level,
    require_caller,
)

from elastic.logic.events import (
    RebaseCompleted,
    TransactionFailed,
    EventLog,
)

from elastic.logic.policy_engine import (
    PolicyParameters,
    PolicyState,
    RebaseOutcome,
    MonetaryPolicy,
    compute_target_rate,
    compute_combined_rate,
    compute_supply_delta,
    clamp_to_supply_ceiling,
)

from elastic.logic.failure_codes import (
    OUT_OF_BUDGET,
    SILENT_FAILURE,
    failure_code,
    encode_failure_reason,
    decode_failure_reason,
    classify_failure,
)

from elastic.logic.downstream import (
    CallStatus,
    CallResult,
    DownstreamRevert,
    DownstreamTarget,
    CallableTarget,
    RecordingTarget,
    CallDispatcher,
)

from elastic.logic.orchestrator import (
    TransactionRecord,
    NotificationStatus,
    NotificationOutcome,
    CycleResult,
    Orchestrator,
)

__all__ = [
    # Authorization
    "CallContext",
    "Ownable",
    "require_top_level",
    "require_caller",
    # Events
    "RebaseCompleted",
    "TransactionFailed",
    "EventLog",
    # Policy
    "PolicyParameters",
    "PolicyState",
    "RebaseOutcome",
    "MonetaryPolicy",
    "compute_target_rate",
    "compute_combined_rate",
    "compute_supply_delta",
    "clamp_to_supply_ceiling",
    # Failure codes
    "OUT_OF_BUDGET",
    "SILENT_FAILURE",
    "failure_code",
    "encode_failure_reason",
    "decode_failure_reason",
    "classify_failure",
    # Downstream
    "CallStatus",
    "CallResult",
    "DownstreamRevert",
    "DownstreamTarget",
    "CallableTarget",
    "RecordingTarget",
    "CallDispatcher",
    # Orchestrator
    "TransactionRecord",
    "NotificationStatus",
    "NotificationOutcome",
    "CycleResult",
    "Orchestrator",
]
