"""
Services layer - configuration and system wiring.
"""

from elastic.services.policy_config import (
    PolicyConfig,
    get_policy_config,
    reset_policy_config,
)

__all__ = [
    "PolicyConfig",
    "get_policy_config",
    "reset_policy_config",
]
