"""
============================================================================
Elastic Supply v1.0.0
============================================================================

Elastic-supply monetary policy: oracle-driven supply rebases, gated to a
daily window and dampened by a lag, followed by an all-or-nothing batch of
downstream notifications.

Subpackages:
- numeric: 18-decimal fixed-point arithmetic
- oracle: price feed adapter
- ledger: supply ledger interface
- logic: policy engine, orchestrator, authorization, events
- services: environment configuration
- database: committed-event journal
- observability: Prometheus metrics

============================================================================
"""

__version__ = "1.0.0"
