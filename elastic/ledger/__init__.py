"""
Ledger layer - the two supply operations consumed by the policy engine.
"""

from elastic.ledger.supply_ledger import (
    SupplyLedger,
    LedgerRebase,
    InMemorySupplyLedger,
)

__all__ = [
    "SupplyLedger",
    "LedgerRebase",
    "InMemorySupplyLedger",
]
