"""
============================================================================
Elastic Supply v1.0.0
Fixed-Point Arithmetic - 18-Decimal Checked Integer Math
============================================================================

Reliability Level: SOVEREIGN TIER (Mission-Critical)
Input Constraints: Python ints only. Float contamination is FORBIDDEN.
Side Effects: Logs FXP-xxx on failure

All monetary and rate values are unsigned 256-bit integers scaled by 10**18.
Intermediate signed arithmetic uses the 256-bit signed range. Every
operation raises instead of wrapping:

    - ArithmeticOverflow   (FXP-001): result above the representable range
    - ArithmeticUnderflow  (FXP-002): unsigned result below zero
    - ValueTooLargeForSigned (FXP-003): unsigned value above INT256_MAX
    - DivisionByZero       (FXP-004): zero divisor

Signed division truncates toward zero (not Python's floor division).

Human-facing values (configuration, CLI, logs) cross into fixed point only
through to_fixed() / from_fixed(), which go via decimal.Decimal.

============================================================================
"""

from decimal import Decimal, ROUND_DOWN, InvalidOperation, localcontext
from typing import Union
import logging

from elastic.errors import (
    ArithmeticOverflow,
    ArithmeticUnderflow,
    ValueTooLargeForSigned,
    DivisionByZero,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

DECIMALS = 18
ONE = 10 ** DECIMALS

UINT256_MAX = 2 ** 256 - 1
INT256_MAX = 2 ** 255 - 1
INT256_MIN = -(2 ** 255)

# Ceiling on the market exchange rate (1,000,000 units of the quote asset)
MAX_RATE = 10 ** 6 * ONE

# Largest supply for which MAX_RATE * supply still fits in a signed word
MAX_SUPPLY = INT256_MAX // MAX_RATE


# =============================================================================
# Range checks
# =============================================================================

def _check_unsigned(value: int, op: str) -> int:
    if value < 0:
        logger.error(f"[FXP-002] Unsigned underflow | op={op} | result={value}")
        raise ArithmeticUnderflow(f"Unsigned underflow in {op}")
    if value > UINT256_MAX:
        logger.error(f"[FXP-001] Unsigned overflow | op={op}")
        raise ArithmeticOverflow(f"Unsigned overflow in {op}")
    return value


def _check_signed(value: int, op: str) -> int:
    if value > INT256_MAX:
        logger.error(f"[FXP-001] Signed overflow | op={op}")
        raise ArithmeticOverflow(f"Signed overflow in {op}")
    if value < INT256_MIN:
        logger.error(f"[FXP-001] Signed overflow (negative) | op={op}")
        raise ArithmeticOverflow(f"Signed overflow in {op}")
    return value


# =============================================================================
# Unsigned operations
# =============================================================================

def u_add(a: int, b: int) -> int:
    return _check_unsigned(a + b, "u_add")


def u_sub(a: int, b: int) -> int:
    return _check_unsigned(a - b, "u_sub")


def u_mul(a: int, b: int) -> int:
    return _check_unsigned(a * b, "u_mul")


def u_div(a: int, b: int) -> int:
    if b == 0:
        logger.error("[FXP-004] Unsigned division by zero")
        raise DivisionByZero("Division by zero in u_div")
    return _check_unsigned(a // b, "u_div")


# =============================================================================
# Signed operations
# =============================================================================

def s_add(a: int, b: int) -> int:
    return _check_signed(a + b, "s_add")


def s_sub(a: int, b: int) -> int:
    return _check_signed(a - b, "s_sub")


def s_mul(a: int, b: int) -> int:
    return _check_signed(a * b, "s_mul")


def s_div(a: int, b: int) -> int:
    """
    Signed division truncating toward zero.

    INT256_MIN / -1 overflows, as on a two's complement machine.
    """
    if b == 0:
        logger.error("[FXP-004] Signed division by zero")
        raise DivisionByZero("Division by zero in s_div")
    quotient = abs(a) // abs(b)
    if (a < 0) != (b < 0):
        quotient = -quotient
    return _check_signed(quotient, "s_div")


def s_abs(a: int) -> int:
    return _check_signed(abs(a), "s_abs")


def to_signed(value: int) -> int:
    """Convert an unsigned word to signed. Fails above INT256_MAX."""
    _check_unsigned(value, "to_signed")
    if value > INT256_MAX:
        logger.error(f"[FXP-003] Value too large for signed conversion | value={value}")
        raise ValueTooLargeForSigned(f"Value {value} exceeds INT256_MAX")
    return value


# =============================================================================
# Module-wide ceiling invariant
# =============================================================================

def assert_ceiling_invariant(
    max_rate: int = MAX_RATE,
    max_supply: int = MAX_SUPPLY
) -> None:
    """
    Assert MAX_RATE * MAX_SUPPLY fits in a signed word.

    Constrains configuration, not runtime values. Checked once when the
    policy engine is initialized.

    Raises:
        ArithmeticOverflow: If the ceilings are inconsistent
    """
    if max_rate * max_supply > INT256_MAX:
        logger.error(
            f"[FXP-001] Ceiling invariant violated | "
            f"max_rate={max_rate} | max_supply={max_supply}"
        )
        raise ArithmeticOverflow("MAX_RATE * MAX_SUPPLY exceeds INT256_MAX")


# =============================================================================
# Decimal boundary
# =============================================================================

def to_fixed(value: Union[Decimal, str, int]) -> int:
    """
    Convert a human-readable decimal value to 18-decimal fixed point.

    Precision beyond 18 places is truncated toward zero. Floats are
    rejected outright.

    Args:
        value: Decimal, decimal string or int (e.g. "0.05", Decimal("1.02"), 100)

    Returns:
        Signed fixed-point integer

    Raises:
        ValueError: If value is a float, not numeric, or not finite
    """
    if isinstance(value, float):
        raise ValueError(
            f"Float value {value} rejected. Use Decimal or string input."
        )
    if isinstance(value, bool):
        raise ValueError("Boolean is not a numeric fixed-point input")
    try:
        decimal_value = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as e:
        raise ValueError(f"Cannot convert '{value}' to fixed point") from e
    if not decimal_value.is_finite():
        raise ValueError(f"Fixed-point value must be finite, got {decimal_value}")

    with localcontext() as ctx:
        ctx.prec = 120
        scaled = (decimal_value * ONE).to_integral_value(rounding=ROUND_DOWN)
    return int(scaled)


def from_fixed(value: int) -> Decimal:
    """Render a fixed-point integer as an exact Decimal."""
    with localcontext() as ctx:
        ctx.prec = 120
        return Decimal(value) / Decimal(ONE)


__all__ = [
    "DECIMALS",
    "ONE",
    "UINT256_MAX",
    "INT256_MAX",
    "INT256_MIN",
    "MAX_RATE",
    "MAX_SUPPLY",
    "u_add",
    "u_sub",
    "u_mul",
    "u_div",
    "s_add",
    "s_sub",
    "s_mul",
    "s_div",
    "s_abs",
    "to_signed",
    "assert_ceiling_invariant",
    "to_fixed",
    "from_fixed",
]
