"""
Oracle layer - external price feed capabilities and the validating adapter.
"""

from elastic.oracle.adapter import (
    MAX_AUX_RATE,
    OracleSource,
    OracleReading,
    OracleSnapshot,
    PriceFeed,
    OracleAdapter,
)
from elastic.oracle.feeds import StaticPriceFeed

__all__ = [
    "MAX_AUX_RATE",
    "OracleSource",
    "OracleReading",
    "OracleSnapshot",
    "PriceFeed",
    "OracleAdapter",
    "StaticPriceFeed",
]
