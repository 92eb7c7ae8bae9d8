"""
Static price feeds for simulation and testing.

StaticPriceFeed holds a settable reading and needs no live oracle network.
"""

from decimal import Decimal
from typing import Union
import logging

from elastic.numeric.fixed_point import to_fixed
from elastic.oracle.adapter import PriceFeed, OracleReading

logger = logging.getLogger(__name__)


class StaticPriceFeed(PriceFeed):
    """
    Price feed returning whatever reading was last set.

    Example Usage:
        feed = StaticPriceFeed.from_decimal("1.05")
        feed.invalidate()   # next get_reading() reports valid=False
    """

    def __init__(self, value: int = 0, valid: bool = True, name: str = "static") -> None:
        self.name = name
        self._reading = OracleReading(value=value, valid=valid)
        self.reads = 0

    @classmethod
    def from_decimal(
        cls,
        value: Union[Decimal, str, int],
        valid: bool = True,
        name: str = "static"
    ) -> "StaticPriceFeed":
        return cls(value=to_fixed(value), valid=valid, name=name)

    def set_reading(self, value: int, valid: bool = True) -> None:
        self._reading = OracleReading(value=value, valid=valid)
        logger.debug(f"[FEED-SET] name={self.name} | value={value} | valid={valid}")

    def invalidate(self) -> None:
        self._reading = OracleReading(value=self._reading.value, valid=False)

    def get_reading(self) -> OracleReading:
        self.reads += 1
        return self._reading
