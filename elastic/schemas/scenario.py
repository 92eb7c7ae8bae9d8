"""
============================================================================
Elastic Supply v1.0.0
Scenario Schema - Pydantic Models for Cycle Scenario Files
============================================================================

Reliability Level: L6 Critical
Input Constraints: Decimal strings or ints for every numeric value, zero floats
Side Effects: None (pure validation)

A scenario file describes one system state to run a cycle against:
initial supply, oracle readings, downstream target behaviour and the
notification list. Policy parameters come from PolicyConfig.

Example:
    {
        "initial_supply": "50000000",
        "now": 158472000,
        "oracles": {
            "reference_index": {"value": "100"},
            "exchange_rate": {"value": "1.1"},
            "aux_rate": {"value": "1"}
        },
        "targets": {
            "pool-a": {"behaviour": "succeed"},
            "pool-b": {"behaviour": "revert", "message": "paused"}
        },
        "transactions": [
            {"destination": "pool-a", "payload": "73796e63", "compute_budget": 100000},
            {"destination": "pool-b", "payload": "", "compute_budget": 100000,
             "approved_failure_messages": ["paused"]}
        ]
    }

============================================================================
"""

from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from elastic.numeric.fixed_point import MAX_SUPPLY, from_fixed

# Largest initial_supply, in whole units, the ledger accepts
MAX_INITIAL_SUPPLY = from_fixed(MAX_SUPPLY)


# ============================================================================
# CUSTOM VALIDATORS
# ============================================================================

def validate_decimal_input(value: Any, field_name: str) -> Decimal:
    """
    Coerce a scenario value to a finite, non-negative Decimal.

    Raises:
        ValueError: On floats, non-numeric input, non-finite or negative values
    """
    if isinstance(value, float):
        raise ValueError(
            f"[SCN-001] {field_name} received float type. "
            f"Use a decimal string instead. Received: {value}"
        )
    if isinstance(value, bool):
        raise ValueError(f"[SCN-001] {field_name} must be numeric, received bool")
    try:
        if isinstance(value, Decimal):
            decimal_value = value
        elif isinstance(value, (str, int)):
            decimal_value = Decimal(str(value).strip())
        else:
            raise ValueError(
                f"[SCN-001] {field_name} must be Decimal, str, or int. "
                f"Received: {type(value).__name__}"
            )
    except InvalidOperation as e:
        raise ValueError(
            f"[SCN-001] {field_name} is not a valid decimal number. Received: {value}"
        ) from e

    if not decimal_value.is_finite():
        raise ValueError(f"[SCN-001] {field_name} must be finite. Received: {decimal_value}")
    if decimal_value < 0:
        raise ValueError(f"[SCN-001] {field_name} must not be negative. Received: {decimal_value}")
    return decimal_value


# ============================================================================
# ENUMS
# ============================================================================

class TargetBehaviour(str, Enum):
    """How a scenario target responds to a notification."""
    SUCCEED = "succeed"
    REVERT = "revert"
    SILENT = "silent"
    EXHAUST = "exhaust"


# ============================================================================
# MODELS
# ============================================================================

class OracleReadingIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    value: Decimal
    valid: bool = True

    @field_validator("value", mode="before")
    @classmethod
    def validate_value(cls, v: Any) -> Decimal:
        return validate_decimal_input(v, "oracle value")


class OraclesIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    reference_index: OracleReadingIn
    exchange_rate: OracleReadingIn
    aux_rate: OracleReadingIn = Field(
        default_factory=lambda: OracleReadingIn(value=Decimal("1"))
    )


class TargetIn(BaseModel):
    """
    Behaviour of one registered destination.

    revert fails with a structured reason built from `message`; silent
    fails with a short payload that carries no reason; exhaust consumes
    the whole budget it was given.
    """
    model_config = ConfigDict(extra="forbid")

    behaviour: TargetBehaviour = TargetBehaviour.SUCCEED
    message: str = ""
    cost: int = Field(default=21000, ge=0)


class TransactionIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    destination: str = Field(..., min_length=1)
    payload: str = Field(default="", description="Hex-encoded payload bytes")
    compute_budget: int = Field(..., ge=0)
    approved_failure_messages: List[str] = Field(default_factory=list)
    approved_failure_codes: List[str] = Field(default_factory=list)
    enabled: bool = True

    @field_validator("payload")
    @classmethod
    def validate_payload(cls, v: str) -> str:
        cleaned = v[2:] if v.startswith("0x") else v
        try:
            bytes.fromhex(cleaned)
        except ValueError as e:
            raise ValueError(f"[SCN-002] payload is not valid hex: {v!r}") from e
        return cleaned

    def payload_bytes(self) -> bytes:
        return bytes.fromhex(self.payload)


class ScenarioIn(BaseModel):
    """Root of a scenario file."""
    model_config = ConfigDict(extra="forbid")

    initial_supply: Decimal
    now: Optional[int] = Field(default=None, ge=0)
    oracles: OraclesIn
    targets: Dict[str, TargetIn] = Field(default_factory=dict)
    transactions: List[TransactionIn] = Field(default_factory=list)

    @field_validator("initial_supply", mode="before")
    @classmethod
    def validate_initial_supply(cls, v: Any) -> Decimal:
        value = validate_decimal_input(v, "initial_supply")
        if value > MAX_INITIAL_SUPPLY:
            raise ValueError(
                f"[SCN-001] initial_supply exceeds the supply ceiling "
                f"{MAX_INITIAL_SUPPLY}. Received: {value}"
            )
        return value


__all__ = [
    "MAX_INITIAL_SUPPLY",
    "TargetBehaviour",
    "OracleReadingIn",
    "OraclesIn",
    "TargetIn",
    "TransactionIn",
    "ScenarioIn",
    "validate_decimal_input",
]
