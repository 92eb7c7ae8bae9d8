"""
Cycle events and the commit-aware event log.

Events emitted inside an open unit of work are buffered and only delivered
to subscribers when the outermost unit of work commits. A rolled-back cycle
therefore never reaches the journal or the metrics.
"""

from dataclasses import dataclass, asdict
from typing import Any, Callable, Dict, List, Union
import logging

from elastic.unit_of_work import Transactional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RebaseCompleted:
    """Emitted once per successful policy rebase."""
    epoch: int
    exchange_rate: int
    reference_index: int
    aux_rate: int
    supply_delta: int
    timestamp: int

    def to_dict(self) -> Dict[str, Any]:
        # Fixed-point values exceed JSON-safe integers; serialize as strings
        return {k: str(v) for k, v in asdict(self).items()}


@dataclass(frozen=True)
class TransactionFailed:
    """Emitted for each tolerated (approved) downstream failure."""
    destination: str
    index: int
    payload: bytes
    message: str
    failure_code: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "destination": self.destination,
            "index": self.index,
            "payload": self.payload.hex(),
            "message": self.message,
            "failure_code": self.failure_code,
        }


CycleEvent = Union[RebaseCompleted, TransactionFailed]
Subscriber = Callable[[CycleEvent], None]


class EventLog(Transactional):
    """
    Ordered record of committed events with subscriber fan-out.
    """

    def __init__(self) -> None:
        self._history: List[CycleEvent] = []
        self._pending: List[CycleEvent] = []
        self._subscribers: List[Subscriber] = []
        self._depth = 0

    @property
    def history(self) -> List[CycleEvent]:
        return list(self._history)

    @property
    def pending(self) -> List[CycleEvent]:
        return list(self._pending)

    def subscribe(self, subscriber: Subscriber) -> None:
        self._subscribers.append(subscriber)

    def emit(self, event: CycleEvent) -> None:
        if self._depth > 0:
            self._pending.append(event)
            return
        self._deliver([event])

    def _deliver(self, events: List[CycleEvent]) -> None:
        for event in events:
            self._history.append(event)
            for subscriber in self._subscribers:
                try:
                    subscriber(event)
                except Exception as e:
                    # Delivery happens after commit; the cycle outcome is final
                    logger.error(
                        f"[EVT-001] Subscriber failed | event={type(event).__name__} | "
                        f"subscriber={getattr(subscriber, '__qualname__', repr(subscriber))} | "
                        f"error={e}"
                    )

    def snapshot(self) -> int:
        self._depth += 1
        return len(self._pending)

    def restore(self, snapshot: int) -> None:
        dropped = len(self._pending) - snapshot
        del self._pending[snapshot:]
        self._depth -= 1
        if dropped:
            logger.debug(f"[EVENTS-DISCARDED] count={dropped}")

    def on_commit(self) -> None:
        self._depth -= 1
        if self._depth == 0 and self._pending:
            events, self._pending = self._pending, []
            self._deliver(events)
