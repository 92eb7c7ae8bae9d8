"""
============================================================================
Elastic Supply v1.0.0
Batch Orchestrator - Rebase Then Notify, All or Nothing
============================================================================

Reliability Level: SOVEREIGN TIER (Mission-Critical)
Input Constraints: run_cycle requires a top-level CallContext
Side Effects: Policy rebase, downstream calls, TransactionFailed events

CYCLE
-----
    1. Reject indirect callers                                 (AUTH-002)
    2. Open one unit of work over policy, ledger, events, targets
    3. Policy rebase; any failure is fatal
    4. For each record, in index order:
         - disabled: skipped
         - remaining budget must exceed the record's budget    (ORCH-001)
         - dispatch; success keeps return data
         - failure code in approved set: TransactionFailed, continue
         - otherwise: UnapprovedTransactionFailure, roll back  (ORCH-002)

A rollback undoes everything the cycle did, the rebase included.

TRANSACTION LIST
----------------
Owner-only. remove_transaction() swaps the last record into the removed
slot and truncates, so an index is not a stable identity: re-resolve
before repeating an operation.

============================================================================
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Tuple
import logging
import uuid

from elastic.errors import (
    IndirectCallRejected,
    InsufficientBudget,
    TransactionIndexError,
    UnapprovedTransactionFailure,
)
from elastic.logic.authorization import CallContext, Ownable, require_top_level
from elastic.logic.downstream import CallDispatcher
from elastic.logic.events import EventLog, TransactionFailed
from elastic.logic.failure_codes import classify_failure
from elastic.logic.policy_engine import MonetaryPolicy, RebaseOutcome
from elastic.observability import metrics
from elastic.unit_of_work import Transactional, UnitOfWork

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

DEFAULT_ORCHESTRATOR_ID = "orchestrator"

# Compute budget available to one cycle when the caller does not pass one
DEFAULT_CYCLE_BUDGET = 10_000_000


# =============================================================================
# Data
# =============================================================================

@dataclass(frozen=True)
class TransactionRecord:
    """
    One downstream notification.

    approved_failure_codes belongs to the record itself, so it moves with
    the record when the list is reordered by a removal.
    """
    destination: str
    payload: bytes
    compute_budget: int
    approved_failure_codes: FrozenSet[str] = field(default_factory=frozenset)
    enabled: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "destination": self.destination,
            "payload": self.payload.hex(),
            "compute_budget": self.compute_budget,
            "approved_failure_codes": sorted(self.approved_failure_codes),
        }


class NotificationStatus(Enum):
    SUCCEEDED = "SUCCEEDED"
    TOLERATED = "TOLERATED"
    SKIPPED = "SKIPPED"


@dataclass(frozen=True)
class NotificationOutcome:
    index: int
    destination: str
    status: NotificationStatus
    return_data: bytes = b""
    failure_code: Optional[str] = None
    message: Optional[str] = None
    budget_used: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "destination": self.destination,
            "status": self.status.value,
            "return_data": self.return_data.hex(),
            "failure_code": self.failure_code,
            "message": self.message,
            "budget_used": self.budget_used,
        }


@dataclass(frozen=True)
class CycleResult:
    correlation_id: str
    rebase: RebaseOutcome
    notifications: Tuple[NotificationOutcome, ...]
    budget_remaining: int

    @property
    def tolerated_failures(self) -> int:
        return sum(1 for n in self.notifications if n.status is NotificationStatus.TOLERATED)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "correlation_id": self.correlation_id,
            "rebase": self.rebase.to_dict(),
            "notifications": [n.to_dict() for n in self.notifications],
            "budget_remaining": self.budget_remaining,
        }


class BudgetMeter:
    """Remaining compute budget for one cycle."""

    def __init__(self, budget: int) -> None:
        if budget < 0:
            raise ValueError(f"budget must be non-negative, got {budget}")
        self.remaining = budget

    def charge(self, amount: int) -> None:
        self.remaining = max(0, self.remaining - amount)


# =============================================================================
# Orchestrator
# =============================================================================

class Orchestrator(Ownable, Transactional):
    """
    Entry point for rebase cycles and owner of the notification list.

    Example Usage:
        orchestrator = Orchestrator(owner="owner", policy=policy, dispatcher=dispatcher)
        orchestrator.add_transaction("owner", "pool", b"sync()", 100_000)
        result = orchestrator.run_cycle(CallContext(caller="keeper"))
    """

    def __init__(
        self,
        owner: str,
        policy: MonetaryPolicy,
        dispatcher: Optional[CallDispatcher] = None,
        identity: str = DEFAULT_ORCHESTRATOR_ID,
        default_budget: int = DEFAULT_CYCLE_BUDGET,
        unit_of_work: Optional[UnitOfWork] = None,
    ) -> None:
        super().__init__(owner)
        self.identity = identity
        self.default_budget = default_budget
        self._policy = policy
        self._dispatcher = dispatcher or CallDispatcher()
        self._transactions: List[TransactionRecord] = []

        if unit_of_work is None:
            unit_of_work = UnitOfWork()
            unit_of_work.enlist(policy)
            if isinstance(policy.ledger, Transactional):
                unit_of_work.enlist(policy.ledger)
            unit_of_work.enlist(policy.events)
            unit_of_work.enlist(self)
        self._unit_of_work = unit_of_work

    @property
    def policy(self) -> MonetaryPolicy:
        return self._policy

    @property
    def dispatcher(self) -> CallDispatcher:
        return self._dispatcher

    @property
    def events(self) -> EventLog:
        return self._policy.events

    # -------------------------------------------------------------------------
    # Cycle
    # -------------------------------------------------------------------------

    def run_cycle(
        self,
        context: CallContext,
        budget: Optional[int] = None,
        correlation_id: Optional[str] = None
    ) -> CycleResult:
        """
        Rebase, then notify every enabled destination.

        Args:
            context: Caller identity and origin; must be top level
            budget: Compute budget for the cycle (default: default_budget)
            correlation_id: Audit trail identifier

        Returns:
            CycleResult for a committed cycle

        Raises:
            IndirectCallRejected: Caller is not a top-level initiator
            InsufficientBudget: Budget ran out before a notification
            UnapprovedTransactionFailure: A notification failed unapproved
            Any policy error (gating, oracle, arithmetic)
        """
        cid = correlation_id or str(uuid.uuid4())
        try:
            require_top_level(context, cid)
        except IndirectCallRejected:
            metrics.record_cycle_outcome("rejected")
            raise

        meter = BudgetMeter(self.default_budget if budget is None else budget)
        try:
            with self._unit_of_work.atomic(
                extra=self._dispatcher.transactional_targets(),
                correlation_id=cid,
            ):
                logger.info(
                    f"[CYCLE-START] caller={context.caller} | budget={meter.remaining} | "
                    f"transactions={len(self._transactions)} | correlation_id={cid}"
                )
                outcome = self._policy.rebase(context.nested(self.identity), cid)
                notifications = self._notify_all(meter, cid)
        except Exception as exc:
            metrics.record_cycle_outcome("rolled_back")
            logger.error(
                f"[CYCLE-ABORTED] error={exc} | correlation_id={cid}"
            )
            raise

        metrics.record_cycle_outcome("committed")
        metrics.update_total_supply(outcome.total_supply_after)
        result = CycleResult(
            correlation_id=cid,
            rebase=outcome,
            notifications=tuple(notifications),
            budget_remaining=meter.remaining,
        )
        logger.info(
            f"[CYCLE-COMMITTED] epoch={outcome.epoch} | supply_delta={outcome.supply_delta} | "
            f"notifications={len(notifications)} | tolerated={result.tolerated_failures} | "
            f"budget_remaining={meter.remaining} | correlation_id={cid}"
        )
        return result

    def _notify_all(self, meter: BudgetMeter, correlation_id: str) -> List[NotificationOutcome]:
        outcomes: List[NotificationOutcome] = []
        for index, record in enumerate(list(self._transactions)):
            if not record.enabled:
                outcomes.append(NotificationOutcome(
                    index=index,
                    destination=record.destination,
                    status=NotificationStatus.SKIPPED,
                ))
                continue

            if not meter.remaining > record.compute_budget:
                logger.error(
                    f"[ORCH-001] Insufficient budget | index={index} | "
                    f"destination={record.destination} | remaining={meter.remaining} | "
                    f"required={record.compute_budget} | correlation_id={correlation_id}"
                )
                raise InsufficientBudget(
                    f"Remaining budget {meter.remaining} does not exceed "
                    f"{record.compute_budget} for transaction {index}"
                )

            result = self._dispatcher.dispatch(
                record.destination, record.payload, record.compute_budget, correlation_id
            )
            meter.charge(result.budget_used)

            if result.ok:
                outcomes.append(NotificationOutcome(
                    index=index,
                    destination=record.destination,
                    status=NotificationStatus.SUCCEEDED,
                    return_data=result.data,
                    budget_used=result.budget_used,
                ))
                continue

            code, message = classify_failure(result.data)
            if code not in record.approved_failure_codes:
                logger.error(
                    f"[ORCH-002] Unapproved transaction failure | index={index} | "
                    f"destination={record.destination} | failure_code={code} | "
                    f"message={message} | correlation_id={correlation_id}"
                )
                raise UnapprovedTransactionFailure(record.destination, index, code, message)

            self.events.emit(TransactionFailed(
                destination=record.destination,
                index=index,
                payload=record.payload,
                message=message,
                failure_code=code,
            ))
            logger.warning(
                f"[TRANSACTION-FAILED] Tolerated failure | index={index} | "
                f"destination={record.destination} | message={message} | "
                f"correlation_id={correlation_id}"
            )
            outcomes.append(NotificationOutcome(
                index=index,
                destination=record.destination,
                status=NotificationStatus.TOLERATED,
                failure_code=code,
                message=message,
                budget_used=result.budget_used,
            ))
        return outcomes

    # -------------------------------------------------------------------------
    # Transaction list (owner only)
    # -------------------------------------------------------------------------

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self._transactions):
            logger.error(
                f"[ORCH-003] Transaction index out of range | index={index} | "
                f"size={len(self._transactions)}"
            )
            raise TransactionIndexError(
                f"Index {index} out of range for {len(self._transactions)} transactions"
            )

    def add_transaction(
        self,
        caller: str,
        destination: str,
        payload: bytes,
        compute_budget: int,
        approved_failure_codes: Iterable[str] = (),
    ) -> int:
        """
        Append a notification. Returns its current index.
        """
        self.require_owner(caller, "add_transaction")
        if compute_budget < 0:
            raise ValueError(f"compute_budget must be non-negative, got {compute_budget}")
        record = TransactionRecord(
            destination=destination,
            payload=bytes(payload),
            compute_budget=compute_budget,
            approved_failure_codes=frozenset(approved_failure_codes),
        )
        self._transactions.append(record)
        index = len(self._transactions) - 1
        logger.info(
            f"[ORCH-LIST] add_transaction | index={index} | destination={destination} | "
            f"compute_budget={compute_budget} | "
            f"approved_failure_codes={len(record.approved_failure_codes)}"
        )
        return index

    def remove_transaction(self, caller: str, index: int) -> TransactionRecord:
        """
        Remove by swapping the last record into `index` and truncating.
        """
        self.require_owner(caller, "remove_transaction")
        self._check_index(index)
        removed = self._transactions[index]
        last = self._transactions.pop()
        if index < len(self._transactions):
            self._transactions[index] = last
        logger.info(
            f"[ORCH-LIST] remove_transaction | index={index} | "
            f"destination={removed.destination} | size={len(self._transactions)}"
        )
        return removed

    def set_transaction_enabled(self, caller: str, index: int, enabled: bool) -> None:
        self.require_owner(caller, "set_transaction_enabled")
        self._check_index(index)
        self._transactions[index] = replace(self._transactions[index], enabled=enabled)
        logger.info(f"[ORCH-LIST] set_transaction_enabled | index={index} | enabled={enabled}")

    def transactions_size(self) -> int:
        return len(self._transactions)

    def transaction(self, index: int) -> TransactionRecord:
        self._check_index(index)
        return self._transactions[index]

    def transactions(self) -> Tuple[TransactionRecord, ...]:
        return tuple(self._transactions)

    # -------------------------------------------------------------------------
    # Transactional
    # -------------------------------------------------------------------------

    def snapshot(self) -> Tuple[TransactionRecord, ...]:
        return tuple(self._transactions)

    def restore(self, snapshot: Tuple[TransactionRecord, ...]) -> None:
        self._transactions = list(snapshot)
