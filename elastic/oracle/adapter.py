"""
============================================================================
Elastic Supply v1.0.0
Oracle Adapter - Validated Fixed-Point Price Readings
============================================================================

Reliability Level: L6 Critical
Input Constraints: Three independently owned PriceFeed handles
Side Effects: Logs ORC-001 on invalid data, WARNING on clamping

The adapter reads three external feeds once per cycle:

    1. reference_index  - reference price index (e.g. a CPI-style index)
    2. exchange_rate    - market exchange rate of the asset
    3. aux_rate         - auxiliary-market delta rate (1.0 == no change)

Any invalid reading aborts the cycle with OracleDataInvalid naming the
failing source. Two ceilings are applied silently (logged, never raised):

    - exchange_rate is capped at MAX_RATE
    - aux_rate is capped at 2 * ONE (a +100% bounded change)

The ceilings keep downstream arithmetic inside the overflow-safe envelope.

============================================================================
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional
import logging

from elastic.errors import OracleDataInvalid
from elastic.numeric.fixed_point import ONE, MAX_RATE, UINT256_MAX

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

MAX_AUX_RATE = 2 * ONE


# =============================================================================
# Types
# =============================================================================

class OracleSource(Enum):
    """Identifies which feed a reading came from."""
    REFERENCE_INDEX = "reference_index"
    EXCHANGE_RATE = "exchange_rate"
    AUX_RATE = "aux_rate"


@dataclass(frozen=True)
class OracleReading:
    """
    Raw reading from a price feed.

    Attributes:
        value: 18-decimal fixed-point value
        valid: Whether the feed considers the value trustworthy
    """
    value: int
    valid: bool


@dataclass(frozen=True)
class OracleSnapshot:
    """Validated and clamped readings for one cycle."""
    reference_index: int
    exchange_rate: int
    aux_rate: int
    exchange_rate_clamped: bool = False
    aux_rate_clamped: bool = False


class PriceFeed(ABC):
    """
    External price feed capability.

    Implementations return the latest reading and a validity flag.
    """

    @abstractmethod
    def get_reading(self) -> OracleReading:
        """Return the latest (value, valid) reading."""
        pass


# =============================================================================
# Adapter
# =============================================================================

class OracleAdapter:
    """
    Normalizes the three feeds into a single validated snapshot.

    Reliability Level: L6 Critical
    Input Constraints: Feeds may be None before configuration
    Side Effects: None besides logging
    """

    def __init__(
        self,
        reference_index_feed: Optional[PriceFeed] = None,
        market_feed: Optional[PriceFeed] = None,
        aux_feed: Optional[PriceFeed] = None,
    ) -> None:
        self.reference_index_feed = reference_index_feed
        self.market_feed = market_feed
        self.aux_feed = aux_feed

    def _read(
        self,
        feed: Optional[PriceFeed],
        source: OracleSource,
        correlation_id: Optional[str]
    ) -> int:
        if feed is None:
            logger.error(
                f"[ORC-001] Feed not configured | source={source.value} | "
                f"correlation_id={correlation_id}"
            )
            raise OracleDataInvalid(source.value, "feed not configured")

        reading = feed.get_reading()
        if not reading.valid:
            logger.error(
                f"[ORC-001] Invalid oracle reading | source={source.value} | "
                f"value={reading.value} | correlation_id={correlation_id}"
            )
            raise OracleDataInvalid(source.value)

        if reading.value < 0 or reading.value > UINT256_MAX:
            logger.error(
                f"[ORC-001] Oracle value out of range | source={source.value} | "
                f"value={reading.value} | correlation_id={correlation_id}"
            )
            raise OracleDataInvalid(source.value, "value outside unsigned range")

        return reading.value

    def read_all(self, correlation_id: Optional[str] = None) -> OracleSnapshot:
        """
        Read and validate all three feeds.

        Args:
            correlation_id: Audit trail identifier

        Returns:
            OracleSnapshot with ceilings applied

        Raises:
            OracleDataInvalid: If any feed is missing or reports invalid data
        """
        reference_index = self._read(
            self.reference_index_feed, OracleSource.REFERENCE_INDEX, correlation_id
        )
        exchange_rate = self._read(
            self.market_feed, OracleSource.EXCHANGE_RATE, correlation_id
        )
        aux_rate = self._read(
            self.aux_feed, OracleSource.AUX_RATE, correlation_id
        )

        exchange_rate_clamped = exchange_rate > MAX_RATE
        if exchange_rate_clamped:
            logger.warning(
                f"[ORACLE-CLAMP] exchange_rate capped | raw={exchange_rate} | "
                f"ceiling={MAX_RATE} | correlation_id={correlation_id}"
            )
            exchange_rate = MAX_RATE

        aux_rate_clamped = aux_rate > MAX_AUX_RATE
        if aux_rate_clamped:
            logger.warning(
                f"[ORACLE-CLAMP] aux_rate capped | raw={aux_rate} | "
                f"ceiling={MAX_AUX_RATE} | correlation_id={correlation_id}"
            )
            aux_rate = MAX_AUX_RATE

        return OracleSnapshot(
            reference_index=reference_index,
            exchange_rate=exchange_rate,
            aux_rate=aux_rate,
            exchange_rate_clamped=exchange_rate_clamped,
            aux_rate_clamped=aux_rate_clamped,
        )
