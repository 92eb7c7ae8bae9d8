"""
============================================================================
Elastic Supply v1.0.0
Policy Configuration - Environment-Driven Settings
============================================================================

Reliability Level: L6 Critical
Decimal Integrity: Decimal inputs converted to 18-decimal fixed point (ROUND_DOWN)

This module provides configuration management for the rebase system:
- Environment variable parsing with type safety
- Default values for every setting
- Validation that fails closed on bad bounds (CFG-001)

ENVIRONMENT VARIABLES:
    - ELASTIC_DEVIATION_THRESHOLD: Dead-zone half width as a decimal (default: 0.05)
    - ELASTIC_REBASE_LAG: Dampening divisor (default: 30)
    - ELASTIC_MIN_REBASE_INTERVAL: Seconds between rebases (default: 86400)
    - ELASTIC_REBASE_WINDOW_OFFSET: Window start within interval (default: 72000)
    - ELASTIC_REBASE_WINDOW_LENGTH: Window length in seconds (default: 900)
    - ELASTIC_AUX_WEIGHT: Auxiliary factor weight as a decimal (default: 0)
    - ELASTIC_BASE_REFERENCE_INDEX: Reference index at launch (default: 100)
    - ELASTIC_CYCLE_COMPUTE_BUDGET: Compute budget per cycle (default: 10000000)
    - ELASTIC_OWNER: Owner identity (default: owner)
    - ELASTIC_ORCHESTRATOR_ID: Orchestrator identity (default: orchestrator)
    - ELASTIC_DATABASE_URL: Journal database (default: sqlite:///elastic_supply.db)

ERROR CODES:
    - CFG-001: Configuration invalid

============================================================================
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Optional
import logging
import os

from dotenv import load_dotenv

from elastic.database.session import DEFAULT_DATABASE_URL
from elastic.errors import ConfigurationError, PolicyConfigurationError
from elastic.logic.orchestrator import DEFAULT_CYCLE_BUDGET, DEFAULT_ORCHESTRATOR_ID
from elastic.logic.policy_engine import (
    DEFAULT_MIN_REBASE_INTERVAL,
    DEFAULT_REBASE_LAG,
    DEFAULT_REBASE_WINDOW_LENGTH,
    DEFAULT_REBASE_WINDOW_OFFSET,
    PolicyParameters,
)
from elastic.numeric.fixed_point import ONE, to_fixed

# Configure module logger
logger = logging.getLogger(__name__)


# =============================================================================
# Default Values
# =============================================================================

DEFAULT_DEVIATION_THRESHOLD = Decimal("0.05")
DEFAULT_AUX_WEIGHT = Decimal("0")
DEFAULT_BASE_REFERENCE_INDEX = Decimal("100")
DEFAULT_OWNER = "owner"


def _read_int(name: str, default: int) -> int:
    raw = os.environ.get(name, str(default))
    try:
        return int(raw.strip())
    except ValueError:
        logger.warning(
            f"[POLICY-CONFIG] Invalid {name} value: {raw}, using default: {default}"
        )
        return default


def _read_decimal(name: str, default: Decimal) -> Decimal:
    raw = os.environ.get(name, str(default))
    try:
        value = Decimal(raw.strip())
    except InvalidOperation:
        logger.warning(
            f"[POLICY-CONFIG] Invalid {name} value: {raw}, using default: {default}"
        )
        return default
    if not value.is_finite():
        logger.warning(
            f"[POLICY-CONFIG] Non-finite {name} value: {raw}, using default: {default}"
        )
        return default
    return value


# =============================================================================
# Configuration Dataclass
# =============================================================================

@dataclass
class PolicyConfig:
    """
    Policy, identity and persistence settings.

    Decimal fields hold human-readable values; to_parameters() converts
    them to fixed point.
    """
    deviation_threshold: Decimal = DEFAULT_DEVIATION_THRESHOLD
    rebase_lag: int = DEFAULT_REBASE_LAG
    min_rebase_interval: int = DEFAULT_MIN_REBASE_INTERVAL
    rebase_window_offset: int = DEFAULT_REBASE_WINDOW_OFFSET
    rebase_window_length: int = DEFAULT_REBASE_WINDOW_LENGTH
    aux_weight: Decimal = DEFAULT_AUX_WEIGHT
    base_reference_index: Decimal = DEFAULT_BASE_REFERENCE_INDEX
    cycle_compute_budget: int = DEFAULT_CYCLE_BUDGET
    owner: str = DEFAULT_OWNER
    orchestrator_id: str = DEFAULT_ORCHESTRATOR_ID
    database_url: str = DEFAULT_DATABASE_URL

    def to_parameters(self) -> PolicyParameters:
        return PolicyParameters(
            deviation_threshold=to_fixed(self.deviation_threshold),
            rebase_lag=self.rebase_lag,
            min_rebase_interval=self.min_rebase_interval,
            rebase_window_offset=self.rebase_window_offset,
            rebase_window_length=self.rebase_window_length,
            aux_weight=to_fixed(self.aux_weight),
        )

    @property
    def base_reference_index_fixed(self) -> int:
        return to_fixed(self.base_reference_index)

    def validate(self) -> None:
        """
        Validate configuration values.

        Raises:
            ConfigurationError: If any value is out of bounds (CFG-001)
        """
        errors = []
        if not self.owner.strip():
            errors.append("ELASTIC_OWNER must not be empty")
        if not self.orchestrator_id.strip():
            errors.append("ELASTIC_ORCHESTRATOR_ID must not be empty")
        if self.base_reference_index_fixed <= 0:
            errors.append(
                f"ELASTIC_BASE_REFERENCE_INDEX must be positive, got {self.base_reference_index}"
            )
        if self.cycle_compute_budget <= 0:
            errors.append(
                f"ELASTIC_CYCLE_COMPUTE_BUDGET must be positive, got {self.cycle_compute_budget}"
            )
        if not 0 <= to_fixed(self.aux_weight) <= ONE:
            errors.append(f"ELASTIC_AUX_WEIGHT must be in [0, 1], got {self.aux_weight}")
        try:
            self.to_parameters().validate()
        except PolicyConfigurationError as e:
            errors.append(e.message)

        if errors:
            message = "; ".join(errors)
            logger.error(f"[CFG-001] Policy configuration invalid | {message}")
            raise ConfigurationError(message)

        logger.info(
            f"[POLICY-CONFIG] Configuration validated | "
            f"rebase_lag={self.rebase_lag} | "
            f"min_rebase_interval={self.min_rebase_interval} | "
            f"owner={self.owner}"
        )

    @classmethod
    def from_environment(cls, validate: bool = True) -> "PolicyConfig":
        """
        Load configuration from environment variables (and a .env file).

        Malformed numeric values fall back to their defaults with a warning.

        Raises:
            ConfigurationError: If validate is True and a bound is violated (CFG-001)
        """
        load_dotenv()

        config = cls(
            deviation_threshold=_read_decimal(
                "ELASTIC_DEVIATION_THRESHOLD", DEFAULT_DEVIATION_THRESHOLD
            ),
            rebase_lag=_read_int("ELASTIC_REBASE_LAG", DEFAULT_REBASE_LAG),
            min_rebase_interval=_read_int(
                "ELASTIC_MIN_REBASE_INTERVAL", DEFAULT_MIN_REBASE_INTERVAL
            ),
            rebase_window_offset=_read_int(
                "ELASTIC_REBASE_WINDOW_OFFSET", DEFAULT_REBASE_WINDOW_OFFSET
            ),
            rebase_window_length=_read_int(
                "ELASTIC_REBASE_WINDOW_LENGTH", DEFAULT_REBASE_WINDOW_LENGTH
            ),
            aux_weight=_read_decimal("ELASTIC_AUX_WEIGHT", DEFAULT_AUX_WEIGHT),
            base_reference_index=_read_decimal(
                "ELASTIC_BASE_REFERENCE_INDEX", DEFAULT_BASE_REFERENCE_INDEX
            ),
            cycle_compute_budget=_read_int(
                "ELASTIC_CYCLE_COMPUTE_BUDGET", DEFAULT_CYCLE_BUDGET
            ),
            owner=os.environ.get("ELASTIC_OWNER", DEFAULT_OWNER).strip(),
            orchestrator_id=os.environ.get(
                "ELASTIC_ORCHESTRATOR_ID", DEFAULT_ORCHESTRATOR_ID
            ).strip(),
            database_url=os.environ.get("ELASTIC_DATABASE_URL", DEFAULT_DATABASE_URL),
        )

        logger.info(
            f"[POLICY-CONFIG] Loading configuration from environment | "
            f"deviation_threshold={config.deviation_threshold} | "
            f"rebase_lag={config.rebase_lag} | "
            f"aux_weight={config.aux_weight}"
        )

        if validate:
            config.validate()
        return config

    def to_dict(self) -> dict:
        return {
            "deviation_threshold": str(self.deviation_threshold),
            "rebase_lag": self.rebase_lag,
            "min_rebase_interval": self.min_rebase_interval,
            "rebase_window_offset": self.rebase_window_offset,
            "rebase_window_length": self.rebase_window_length,
            "aux_weight": str(self.aux_weight),
            "base_reference_index": str(self.base_reference_index),
            "cycle_compute_budget": self.cycle_compute_budget,
            "owner": self.owner,
            "orchestrator_id": self.orchestrator_id,
            "database_url": self.database_url,
        }


# =============================================================================
# Module-Level Configuration Instance
# =============================================================================

_config_instance: Optional[PolicyConfig] = None


def get_policy_config(validate: bool = True) -> PolicyConfig:
    """Lazily load the process-wide configuration."""
    global _config_instance

    if _config_instance is None:
        _config_instance = PolicyConfig.from_environment(validate=validate)

    return _config_instance


def reset_policy_config() -> None:
    """Clear the cached configuration (used by tests)."""
    global _config_instance
    _config_instance = None
    logger.debug("[POLICY-CONFIG] Configuration instance reset")


__all__ = [
    "PolicyConfig",
    "DEFAULT_DEVIATION_THRESHOLD",
    "DEFAULT_AUX_WEIGHT",
    "DEFAULT_BASE_REFERENCE_INDEX",
    "DEFAULT_OWNER",
    "get_policy_config",
    "reset_policy_config",
]


# =============================================================================
# Sovereign Reliability Audit
# =============================================================================
#
# [Module Audit]
# Module: elastic/services/policy_config.py
# Decimal Integrity: [Verified - Decimal to fixed point via to_fixed, floats rejected]
# Error Handling: [Verified - CFG-001 on invalid bounds, fallback on parse errors]
#
# =============================================================================
