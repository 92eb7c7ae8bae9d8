"""
============================================================================
Property-Based Tests for Transaction List Management
============================================================================

Reliability Level: SOVEREIGN TIER

Properties tested:
- Any sequence of add / remove / toggle matches a swap-with-last model
- Records read back exactly as added
- Classification of a structured reason recovers the normalized message

============================================================================
"""

import os
import sys
from typing import List, Tuple

from hypothesis import given, settings, Phase
from hypothesis import strategies as st

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from elastic.ledger.supply_ledger import InMemorySupplyLedger
from elastic.logic.failure_codes import classify_failure, encode_failure_reason, failure_code
from elastic.logic.orchestrator import Orchestrator
from elastic.logic.policy_engine import MonetaryPolicy
from elastic.numeric.fixed_point import ONE


# =============================================================================
# HYPOTHESIS STRATEGIES
# =============================================================================

add_op = st.tuples(
    st.just("add"),
    st.text(alphabet="abcdef", min_size=1, max_size=6),
    st.binary(max_size=8),
    st.integers(min_value=0, max_value=10 ** 7),
)
remove_op = st.tuples(st.just("remove"), st.integers(min_value=0, max_value=50))
toggle_op = st.tuples(st.just("toggle"), st.integers(min_value=0, max_value=50))

operations_strategy = st.lists(st.one_of(add_op, remove_op, toggle_op), max_size=40)


def make_orchestrator() -> Orchestrator:
    policy = MonetaryPolicy(
        owner="owner",
        ledger=InMemorySupplyLedger(ONE),
        base_reference_index=ONE,
    )
    return Orchestrator(owner="owner", policy=policy)


class TestTransactionListProperties:

    @settings(max_examples=100, phases=[Phase.generate, Phase.target])
    @given(operations=operations_strategy)
    def test_matches_swap_with_last_model(self, operations) -> None:
        orchestrator = make_orchestrator()
        model: List[Tuple[str, bytes, int, bool]] = []

        for op in operations:
            if op[0] == "add":
                _, destination, payload, budget = op
                index = orchestrator.add_transaction("owner", destination, payload, budget)
                model.append((destination, payload, budget, True))
                assert index == len(model) - 1
            elif not model:
                continue
            elif op[0] == "remove":
                index = op[1] % len(model)
                removed = orchestrator.remove_transaction("owner", index)
                assert removed.destination == model[index][0]
                last = model.pop()
                if index < len(model):
                    model[index] = last
            else:
                index = op[1] % len(model)
                destination, payload, budget, enabled = model[index]
                orchestrator.set_transaction_enabled("owner", index, not enabled)
                model[index] = (destination, payload, budget, not enabled)

        assert orchestrator.transactions_size() == len(model)
        observed = [
            (r.destination, r.payload, r.compute_budget, r.enabled)
            for r in orchestrator.transactions()
        ]
        assert observed == model

    @settings(max_examples=100, phases=[Phase.generate, Phase.target])
    @given(message=st.text(max_size=80))
    def test_structured_reason_classification(self, message) -> None:
        code, decoded = classify_failure(encode_failure_reason(message))
        assert decoded == message.strip()
        assert code == failure_code(message)
