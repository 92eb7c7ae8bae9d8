"""
============================================================================
Elastic Supply v1.0.0
Downstream Calls - Budgeted Notification Capability
============================================================================

Reliability Level: L6 Critical
Input Constraints: Destinations resolved by identifier through CallDispatcher
Side Effects: Invokes registered targets

Every downstream notification goes through one capability:

    DownstreamTarget.invoke(payload, budget) -> CallResult

CallResult is a tagged outcome, SUCCESS(data) or FAILURE(raw). The raw
failure payload is classified separately (see failure_codes), which keeps
this module the only place that touches the targets themselves.

Budget rule: a target may not use more than the budget it was given. A
target that reports more is treated as having run out of budget, which is
an empty failure payload.

============================================================================
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple
import logging

from elastic.logic.failure_codes import encode_failure_reason
from elastic.unit_of_work import Transactional

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

# Budget consumed by a CallableTarget invocation unless configured otherwise
DEFAULT_CALL_COST = 21000

UNREGISTERED_DESTINATION_MESSAGE = "destination not registered"


# =============================================================================
# Results
# =============================================================================

class CallStatus(Enum):
    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"


@dataclass(frozen=True)
class CallResult:
    """
    Tagged outcome of one downstream call.

    Attributes:
        status: SUCCESS or FAILURE
        data: Return data (SUCCESS) or raw failure payload (FAILURE)
        budget_used: Compute budget consumed by the call
    """
    status: CallStatus
    data: bytes = b""
    budget_used: int = 0

    @property
    def ok(self) -> bool:
        return self.status is CallStatus.SUCCESS

    @classmethod
    def success(cls, data: bytes = b"", budget_used: int = 0) -> "CallResult":
        return cls(CallStatus.SUCCESS, data, budget_used)

    @classmethod
    def failure(cls, raw: bytes = b"", budget_used: int = 0) -> "CallResult":
        return cls(CallStatus.FAILURE, raw, budget_used)


class DownstreamRevert(Exception):
    """
    Raised by a target's handler to fail the call.

    By default the message is wrapped into a structured failure payload.
    Pass `raw` to fail with an exact payload instead (e.g. b"" or a bare
    4-byte selector).
    """

    def __init__(self, message: str = "", raw: Optional[bytes] = None) -> None:
        super().__init__(message)
        self.message = message
        self.raw = raw if raw is not None else encode_failure_reason(message)


# =============================================================================
# Targets
# =============================================================================

class DownstreamTarget(ABC):
    """A destination that can receive notification payloads."""

    @abstractmethod
    def invoke(self, payload: bytes, budget: int) -> CallResult:
        """Run the call within `budget` and report the outcome."""
        pass


class CallableTarget(DownstreamTarget):
    """
    Adapts a Python callable into a DownstreamTarget.

    The handler receives the payload and returns bytes (or None). Raising
    DownstreamRevert fails the call; any other exception propagates and
    aborts the cycle.
    """

    def __init__(
        self,
        handler: Callable[[bytes], Optional[bytes]],
        cost: int = DEFAULT_CALL_COST,
        name: Optional[str] = None
    ) -> None:
        self._handler = handler
        self.cost = cost
        self.name = name or getattr(handler, "__name__", "callable")

    def invoke(self, payload: bytes, budget: int) -> CallResult:
        if self.cost > budget:
            return CallResult.failure(b"", budget_used=budget)
        try:
            data = self._handler(payload)
        except DownstreamRevert as revert:
            return CallResult.failure(revert.raw, budget_used=self.cost)
        return CallResult.success(data or b"", budget_used=self.cost)


class RecordingTarget(CallableTarget, Transactional):
    """
    CallableTarget that keeps the payloads it accepted.

    Participates in the cycle's unit of work, so payloads accepted by a
    cycle that later rolls back are discarded as well.
    """

    def __init__(
        self,
        handler: Optional[Callable[[bytes], Optional[bytes]]] = None,
        cost: int = DEFAULT_CALL_COST,
        name: Optional[str] = None
    ) -> None:
        super().__init__(handler or (lambda payload: b""), cost=cost, name=name or "recorder")
        self.received: List[bytes] = []

    def invoke(self, payload: bytes, budget: int) -> CallResult:
        result = super().invoke(payload, budget)
        if result.ok:
            self.received.append(payload)
        return result

    def snapshot(self) -> int:
        return len(self.received)

    def restore(self, snapshot: int) -> None:
        del self.received[snapshot:]


# =============================================================================
# Dispatcher
# =============================================================================

class CallDispatcher:
    """
    Resolves destination identifiers to targets and performs budgeted calls.
    """

    def __init__(self, targets: Optional[Dict[str, DownstreamTarget]] = None) -> None:
        self._targets: Dict[str, DownstreamTarget] = dict(targets or {})

    def register(self, destination: str, target: DownstreamTarget) -> None:
        self._targets[destination] = target
        logger.info(
            f"[DISPATCH-REGISTER] destination={destination} | target={type(target).__name__}"
        )

    def resolve(self, destination: str) -> Optional[DownstreamTarget]:
        return self._targets.get(destination)

    def transactional_targets(self) -> Tuple[Transactional, ...]:
        return tuple(t for t in self._targets.values() if isinstance(t, Transactional))

    def dispatch(
        self,
        destination: str,
        payload: bytes,
        budget: int,
        correlation_id: Optional[str] = None
    ) -> CallResult:
        """
        Invoke `destination` with `payload`, bounded by `budget`.

        Returns:
            CallResult; never raises for ordinary call failures
        """
        target = self.resolve(destination)
        if target is None:
            logger.warning(
                f"[DISPATCH-UNKNOWN] destination={destination} | "
                f"correlation_id={correlation_id}"
            )
            return CallResult.failure(encode_failure_reason(UNREGISTERED_DESTINATION_MESSAGE))

        result = target.invoke(payload, budget)
        if result.budget_used > budget:
            logger.warning(
                f"[DISPATCH-OVER-BUDGET] destination={destination} | "
                f"budget={budget} | used={result.budget_used} | "
                f"correlation_id={correlation_id}"
            )
            return CallResult.failure(b"", budget_used=budget)

        logger.debug(
            f"[DISPATCH-RESULT] destination={destination} | status={result.status.value} | "
            f"budget_used={result.budget_used} | correlation_id={correlation_id}"
        )
        return result
