"""
Schemas - pydantic models for scenario input.
"""

from elastic.schemas.scenario import (
    TargetBehaviour,
    OracleReadingIn,
    OraclesIn,
    TargetIn,
    TransactionIn,
    ScenarioIn,
)

__all__ = [
    "TargetBehaviour",
    "OracleReadingIn",
    "OraclesIn",
    "TargetIn",
    "TransactionIn",
    "ScenarioIn",
]
