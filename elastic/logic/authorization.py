"""
============================================================================
Elastic Supply v1.0.0
Authorization Guard - Owner and Caller-Origin Checks
============================================================================

Reliability Level: SOVEREIGN TIER (Mission-Critical)
Input Constraints: Explicit CallContext on every privileged entry point
Side Effects: Logs AUTH-xxx on rejection

Two independent guards:

    1. Ownership: parameter setters and transaction-list edits require the
       caller to be the configured owner (AUTH-001).
    2. Caller origin: a rebase cycle may only be triggered by a top-level
       initiator, never from inside another unit of execution in the same
       atomic batch (AUTH-002). This blocks bracketing the supply change
       inside a single atomic multi-step transaction (e.g. a flash loan)
       before it becomes externally observable.

The caller-origin property is not rediscovered implicitly: the entry point
receives it as the top_level flag of CallContext.

============================================================================
"""

from dataclasses import dataclass
from typing import Optional
import logging

from elastic.errors import NotOwner, IndirectCallRejected, UnauthorizedCaller

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CallContext:
    """
    Who is calling, and from where.

    Attributes:
        caller: Identity of the immediate caller
        top_level: True when the call originates outside any other
            unit of execution in the same atomic batch
    """
    caller: str
    top_level: bool = True

    def nested(self, caller: str) -> "CallContext":
        """Context for a call made by `caller` while handling this one."""
        return CallContext(caller=caller, top_level=False)


def require_top_level(context: CallContext, correlation_id: Optional[str] = None) -> None:
    """
    Raises:
        IndirectCallRejected: If the call did not originate at top level
    """
    if not context.top_level:
        logger.error(
            f"[AUTH-002] Indirect call rejected | caller={context.caller} | "
            f"correlation_id={correlation_id}"
        )
        raise IndirectCallRejected(
            f"Caller {context.caller} is not a top-level initiator"
        )


def require_caller(
    context: CallContext,
    expected: Optional[str],
    operation: str
) -> None:
    """
    Raises:
        UnauthorizedCaller: If context.caller is not the expected identity
    """
    if expected is None or context.caller != expected:
        logger.error(
            f"[AUTH-003] Unauthorized caller | operation={operation} | "
            f"caller={context.caller} | expected={expected}"
        )
        raise UnauthorizedCaller(
            f"{operation} may only be called by {expected}, not {context.caller}"
        )


class Ownable:
    """
    Single-owner access control.

    Subclasses call self.require_owner(caller) at the top of every
    privileged operation.
    """

    def __init__(self, owner: str) -> None:
        if not owner or not owner.strip():
            raise ValueError("owner identity must be a non-empty string")
        self._owner = owner.strip()

    @property
    def owner(self) -> str:
        return self._owner

    def is_owner(self, caller: str) -> bool:
        return caller == self._owner

    def require_owner(self, caller: str, operation: str = "privileged operation") -> None:
        """
        Raises:
            NotOwner: If caller is not the owner
        """
        if not self.is_owner(caller):
            logger.error(
                f"[AUTH-001] Owner check failed | operation={operation} | "
                f"caller={caller} | component={type(self).__name__}"
            )
            raise NotOwner(f"{operation} requires owner, caller={caller}")

    def transfer_ownership(self, caller: str, new_owner: str) -> None:
        self.require_owner(caller, "transfer_ownership")
        if not new_owner or not new_owner.strip():
            raise ValueError("new owner identity must be a non-empty string")
        previous = self._owner
        self._owner = new_owner.strip()
        logger.info(
            f"[OWNERSHIP-TRANSFERRED] component={type(self).__name__} | "
            f"previous={previous} | new={self._owner}"
        )
