"""
Numeric layer - 18-decimal checked fixed-point arithmetic.
"""

from elastic.numeric.fixed_point import (
    DECIMALS,
    ONE,
    UINT256_MAX,
    INT256_MAX,
    INT256_MIN,
    MAX_RATE,
    MAX_SUPPLY,
    u_add,
    u_sub,
    u_mul,
    u_div,
    s_add,
    s_sub,
    s_mul,
    s_div,
    s_abs,
    to_signed,
    assert_ceiling_invariant,
    to_fixed,
    from_fixed,
)

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
