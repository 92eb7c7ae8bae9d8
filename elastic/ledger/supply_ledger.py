"""
============================================================================
Elastic Supply v1.0.0
Supply Ledger - Interface and In-Memory Reference Implementation
============================================================================

Reliability Level: L6 Critical
Input Constraints: delta is a signed fixed-point integer
Side Effects: InMemorySupplyLedger mutates its total supply

The policy engine consumes exactly two ledger operations:

    total_supply() -> int
    rebase(epoch, delta) -> new_total_supply

Balance storage and transfer semantics belong to the ledger and are not
modelled here. InMemorySupplyLedger tracks only the total unit count so
that cycles can be simulated and tested end to end.

============================================================================
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Tuple
import logging

from elastic.errors import ArithmeticUnderflow
from elastic.unit_of_work import Transactional
from elastic.numeric.fixed_point import MAX_SUPPLY, u_add, u_sub, s_abs

logger = logging.getLogger(__name__)


class SupplyLedger(ABC):
    """Ledger operations consumed by the policy engine."""

    @abstractmethod
    def total_supply(self) -> int:
        """Current total unit count."""
        pass

    @abstractmethod
    def rebase(self, epoch: int, delta: int) -> int:
        """Apply a signed supply delta for `epoch`; return the new total."""
        pass


@dataclass(frozen=True)
class LedgerRebase:
    """One applied rebase, kept for inspection."""
    epoch: int
    delta: int
    total_supply: int


class InMemorySupplyLedger(SupplyLedger, Transactional):
    """
    Reference ledger holding only the total supply.

    Negative deltas larger than the current supply fail with
    ArithmeticUnderflow. A result above MAX_SUPPLY is capped.
    """

    def __init__(self, initial_supply: int) -> None:
        if initial_supply < 0 or initial_supply > MAX_SUPPLY:
            raise ValueError(
                f"initial_supply must be within [0, MAX_SUPPLY], got {initial_supply}"
            )
        self._total_supply = initial_supply
        self._rebases: List[LedgerRebase] = []

    @property
    def rebases(self) -> List[LedgerRebase]:
        return list(self._rebases)

    def total_supply(self) -> int:
        return self._total_supply

    def rebase(self, epoch: int, delta: int) -> int:
        if delta == 0:
            new_total = self._total_supply
        elif delta < 0:
            magnitude = s_abs(delta)
            if magnitude > self._total_supply:
                logger.error(
                    f"[FXP-002] Ledger contraction exceeds supply | epoch={epoch} | "
                    f"delta={delta} | total_supply={self._total_supply}"
                )
                raise ArithmeticUnderflow(
                    f"Contraction of {magnitude} exceeds total supply {self._total_supply}"
                )
            new_total = u_sub(self._total_supply, magnitude)
        else:
            new_total = u_add(self._total_supply, delta)

        if new_total > MAX_SUPPLY:
            new_total = MAX_SUPPLY

        self._total_supply = new_total
        self._rebases.append(LedgerRebase(epoch=epoch, delta=delta, total_supply=new_total))
        logger.info(
            f"[LEDGER-REBASE] epoch={epoch} | delta={delta} | total_supply={new_total}"
        )
        return new_total

    def snapshot(self) -> Tuple[int, int]:
        return (self._total_supply, len(self._rebases))

    def restore(self, snapshot: Tuple[int, int]) -> None:
        self._total_supply, count = snapshot
        del self._rebases[count:]
