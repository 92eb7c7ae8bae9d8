"""
============================================================================
Elastic Supply v1.0.0
Error Taxonomy - Coded Exceptions for Policy, Oracle and Orchestration
============================================================================

Reliability Level: L6 Critical
Input Constraints: None
Side Effects: None

Every failure raised by this package carries a stable error code. The code
is embedded in the exception message as "[CODE] message".

ERROR FAMILIES:
    - Arithmetic (FXP-xxx): overflow, underflow, sign conversion, div by zero
    - Oracle (ORC-xxx): invalid or missing feed readings
    - Policy (POL-xxx): window/cooldown gating, parameter bounds, ceilings
    - Authorization (AUTH-xxx): owner checks, caller-origin checks
    - Orchestration (ORCH-xxx): budget and downstream failures
    - Configuration (CFG-xxx): environment configuration

============================================================================
"""

from typing import Optional


class ErrorCode:
    """Error codes for audit logging."""
    ARITHMETIC_OVERFLOW = "FXP-001"
    ARITHMETIC_UNDERFLOW = "FXP-002"
    VALUE_TOO_LARGE_FOR_SIGNED = "FXP-003"
    DIVISION_BY_ZERO = "FXP-004"

    ORACLE_DATA_INVALID = "ORC-001"

    OUTSIDE_REBASE_WINDOW = "POL-001"
    REBASE_TOO_SOON = "POL-002"
    POLICY_PARAMETER_INVALID = "POL-003"
    SUPPLY_CEILING_VIOLATED = "POL-004"

    NOT_OWNER = "AUTH-001"
    INDIRECT_CALL_REJECTED = "AUTH-002"
    UNAUTHORIZED_CALLER = "AUTH-003"

    INSUFFICIENT_BUDGET = "ORCH-001"
    UNAPPROVED_TRANSACTION_FAILURE = "ORCH-002"
    TRANSACTION_INDEX_INVALID = "ORCH-003"

    CONFIG_INVALID = "CFG-001"


class ElasticSupplyError(Exception):
    """
    Base class for all coded errors.

    Args:
        message: Human-readable error message
        error_code: Error code (defaults to the class-level code)
    """

    default_code = "ERR-000"

    def __init__(self, message: str, error_code: Optional[str] = None):
        self.error_code = error_code or self.default_code
        self.message = message
        super().__init__(f"[{self.error_code}] {message}")


# =============================================================================
# Arithmetic
# =============================================================================

class FixedPointError(ElasticSupplyError):
    """Fixed-point arithmetic failure. Always fatal for the invocation."""


class ArithmeticOverflow(FixedPointError):
    default_code = ErrorCode.ARITHMETIC_OVERFLOW


class ArithmeticUnderflow(FixedPointError):
    default_code = ErrorCode.ARITHMETIC_UNDERFLOW


class ValueTooLargeForSigned(FixedPointError):
    default_code = ErrorCode.VALUE_TOO_LARGE_FOR_SIGNED


class DivisionByZero(FixedPointError):
    default_code = ErrorCode.DIVISION_BY_ZERO


# =============================================================================
# Oracle
# =============================================================================

class OracleDataInvalid(ElasticSupplyError):
    """
    A price feed returned an invalid reading or is not configured.

    Attributes:
        source: Name of the failing feed (reference_index, exchange_rate, aux_rate)
    """

    default_code = ErrorCode.ORACLE_DATA_INVALID

    def __init__(self, source: str, reason: str = "reading marked invalid"):
        self.source = source
        self.reason = reason
        super().__init__(f"Oracle data invalid: source={source} | reason={reason}")


# =============================================================================
# Policy
# =============================================================================

class GatingError(ElasticSupplyError):
    """Rebase attempted at the wrong time. Recoverable by retrying later."""


class OutsideRebaseWindow(GatingError):
    default_code = ErrorCode.OUTSIDE_REBASE_WINDOW


class RebaseTooSoon(GatingError):
    default_code = ErrorCode.REBASE_TOO_SOON


class PolicyConfigurationError(ElasticSupplyError):
    default_code = ErrorCode.POLICY_PARAMETER_INVALID


class SupplyCeilingViolated(ElasticSupplyError):
    default_code = ErrorCode.SUPPLY_CEILING_VIOLATED


# =============================================================================
# Authorization
# =============================================================================

class AuthorizationError(ElasticSupplyError):
    """Caller is not permitted to perform the operation."""


class NotOwner(AuthorizationError):
    default_code = ErrorCode.NOT_OWNER


class IndirectCallRejected(AuthorizationError):
    default_code = ErrorCode.INDIRECT_CALL_REJECTED


class UnauthorizedCaller(AuthorizationError):
    default_code = ErrorCode.UNAUTHORIZED_CALLER


# =============================================================================
# Orchestration
# =============================================================================

class OrchestrationError(ElasticSupplyError):
    """Failure while sequencing a rebase cycle."""


class InsufficientBudget(OrchestrationError):
    default_code = ErrorCode.INSUFFICIENT_BUDGET


class UnapprovedTransactionFailure(OrchestrationError):
    """
    A downstream call failed with a code outside its approved set.

    Attributes:
        destination: Destination identifier of the failing record
        index: Position of the record in the transaction list
        failure_code: Derived failure code
        reason: Decoded (or sentinel) failure message
    """

    default_code = ErrorCode.UNAPPROVED_TRANSACTION_FAILURE

    def __init__(self, destination: str, index: int, failure_code: str, reason: str):
        self.destination = destination
        self.index = index
        self.failure_code = failure_code
        self.reason = reason
        super().__init__(
            f"Transaction failed: destination={destination} | index={index} | "
            f"failure_code={failure_code} | reason={reason}"
        )


class TransactionIndexError(OrchestrationError, IndexError):
    default_code = ErrorCode.TRANSACTION_INDEX_INVALID


# =============================================================================
# Configuration
# =============================================================================

class ConfigurationError(ElasticSupplyError):
    """Environment configuration is missing or invalid."""

    default_code = ErrorCode.CONFIG_INVALID


__all__ = [
    "ErrorCode",
    "ElasticSupplyError",
    "FixedPointError",
    "ArithmeticOverflow",
    "ArithmeticUnderflow",
    "ValueTooLargeForSigned",
    "DivisionByZero",
    "OracleDataInvalid",
    "GatingError",
    "OutsideRebaseWindow",
    "RebaseTooSoon",
    "PolicyConfigurationError",
    "SupplyCeilingViolated",
    "AuthorizationError",
    "NotOwner",
    "IndirectCallRejected",
    "UnauthorizedCaller",
    "OrchestrationError",
    "InsufficientBudget",
    "UnapprovedTransactionFailure",
    "TransactionIndexError",
    "ConfigurationError",
]
