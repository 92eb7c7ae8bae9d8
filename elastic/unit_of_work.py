"""
============================================================================
Elastic Supply v1.0.0
Unit of Work - All-or-Nothing Cycle Execution
============================================================================

Reliability Level: SOVEREIGN TIER (Mission-Critical)
Input Constraints: Participants must implement Transactional
Side Effects: Restores participant state on failure

A rebase cycle either commits every state change it made or none of them.
Each participant (policy state, ledger, event log, transactional downstream
targets) is snapshotted when the unit of work opens. If anything inside the
block raises, every participant is restored in reverse enlistment order and
the original exception propagates unchanged. On success each participant's
on_commit() hook runs in enlistment order.

Nested atomic() blocks behave like savepoints: an inner failure restores
only the inner snapshots; the outer block decides the final outcome.

============================================================================
"""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Iterable, Iterator, List, Optional, Tuple
import logging
import uuid

logger = logging.getLogger(__name__)


class Transactional(ABC):
    """
    State that can be snapshotted and restored by a UnitOfWork.
    """

    @abstractmethod
    def snapshot(self) -> Any:
        """Capture enough state to undo every later mutation."""
        pass

    @abstractmethod
    def restore(self, snapshot: Any) -> None:
        """Return to the state captured by snapshot()."""
        pass

    def on_commit(self) -> None:
        """Called once the enclosing unit of work commits."""
        return None


class UnitOfWork:
    """
    Atomic execution scope over a set of Transactional participants.

    Example Usage:
        uow = UnitOfWork([policy, ledger, events])
        with uow.atomic(correlation_id=cid):
            policy.rebase(ctx)
            ...  # any exception here rolls everything back
    """

    def __init__(self, participants: Optional[Iterable[Transactional]] = None) -> None:
        self._participants: List[Transactional] = []
        for participant in participants or ():
            self.enlist(participant)

    @property
    def participants(self) -> Tuple[Transactional, ...]:
        return tuple(self._participants)

    def enlist(self, participant: Transactional) -> None:
        if not isinstance(participant, Transactional):
            raise TypeError(
                f"{type(participant).__name__} does not implement Transactional"
            )
        if any(p is participant for p in self._participants):
            return
        self._participants.append(participant)

    @contextmanager
    def atomic(
        self,
        extra: Iterable[Transactional] = (),
        correlation_id: Optional[str] = None
    ) -> Iterator[str]:
        """
        Run the enclosed block atomically.

        Args:
            extra: Additional participants for this scope only
            correlation_id: Audit trail identifier (generated if omitted)

        Yields:
            The correlation_id in effect for the scope
        """
        if correlation_id is None:
            correlation_id = str(uuid.uuid4())

        scope: List[Transactional] = list(self._participants)
        for participant in extra:
            if not any(p is participant for p in scope):
                scope.append(participant)

        snapshots: List[Tuple[Transactional, Any]] = []
        try:
            for participant in scope:
                snapshots.append((participant, participant.snapshot()))
        except BaseException as exc:
            for participant, snap in reversed(snapshots):
                participant.restore(snap)
            logger.error(
                f"[UOW-SNAPSHOT-FAILED] taken={len(snapshots)} | "
                f"cause={type(exc).__name__} | correlation_id={correlation_id}"
            )
            raise

        try:
            yield correlation_id
        except BaseException as exc:
            for participant, snap in reversed(snapshots):
                participant.restore(snap)
            logger.warning(
                f"[UOW-ROLLBACK] participants={len(snapshots)} | "
                f"cause={type(exc).__name__} | correlation_id={correlation_id}"
            )
            raise

        for participant, _ in snapshots:
            participant.on_commit()
        logger.debug(
            f"[UOW-COMMIT] participants={len(snapshots)} | correlation_id={correlation_id}"
        )
