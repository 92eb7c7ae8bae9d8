"""
============================================================================
Elastic Supply v1.0.0
Event Journal - Persisted Record of Committed Cycle Events
============================================================================

Reliability Level: L6 Critical
Input Constraints: Only committed events (subscribe to EventLog)
Side Effects: Database INSERT to rebase_events / transaction_failures

The journal subscribes to the EventLog, which delivers events only after
the cycle's unit of work commits. Rolled-back cycles never reach the
database.

Fixed-point values are stored as TEXT: they exceed the range of any SQL
integer type.

A journal write failure is logged (JRN-001) and does not propagate: by the
time an event reaches the journal its cycle has already committed.

============================================================================
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import logging

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from elastic.database.session import get_engine
from elastic.logic.events import CycleEvent, RebaseCompleted, TransactionFailed

logger = logging.getLogger(__name__)


# =============================================================================
# Schema
# =============================================================================

SCHEMA_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS rebase_events (
        epoch BIGINT NOT NULL,
        exchange_rate TEXT NOT NULL,
        reference_index TEXT NOT NULL,
        aux_rate TEXT NOT NULL,
        supply_delta TEXT NOT NULL,
        rebase_timestamp BIGINT NOT NULL,
        recorded_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS transaction_failures (
        destination TEXT NOT NULL,
        tx_index INTEGER NOT NULL,
        payload_hex TEXT NOT NULL,
        message TEXT NOT NULL,
        failure_code TEXT NOT NULL,
        recorded_at TEXT NOT NULL
    )
    """,
)


class EventJournal:
    """
    Writes committed events to the database.

    Example Usage:
        journal = EventJournal(engine)
        journal.ensure_schema()
        event_log.subscribe(journal.record)
    """

    def __init__(self, engine: Optional[Engine] = None) -> None:
        self._engine = engine or get_engine()

    def ensure_schema(self) -> None:
        with self._engine.connect() as conn:
            for statement in SCHEMA_STATEMENTS:
                conn.execute(text(statement))
            conn.commit()

    def record(self, event: CycleEvent) -> None:
        """EventLog subscriber."""
        recorded_at = datetime.now(timezone.utc).isoformat()
        try:
            if isinstance(event, RebaseCompleted):
                self._insert_rebase(event, recorded_at)
            elif isinstance(event, TransactionFailed):
                self._insert_failure(event, recorded_at)
        except SQLAlchemyError as e:
            logger.error(
                f"[JRN-001] Failed to journal event | event={type(event).__name__} | error={e}"
            )

    def _insert_rebase(self, event: RebaseCompleted, recorded_at: str) -> None:
        insert_sql = text("""
            INSERT INTO rebase_events (
                epoch, exchange_rate, reference_index, aux_rate,
                supply_delta, rebase_timestamp, recorded_at
            ) VALUES (
                :epoch, :exchange_rate, :reference_index, :aux_rate,
                :supply_delta, :rebase_timestamp, :recorded_at
            )
        """)
        with self._engine.connect() as conn:
            conn.execute(insert_sql, {
                "epoch": event.epoch,
                "exchange_rate": str(event.exchange_rate),
                "reference_index": str(event.reference_index),
                "aux_rate": str(event.aux_rate),
                "supply_delta": str(event.supply_delta),
                "rebase_timestamp": event.timestamp,
                "recorded_at": recorded_at,
            })
            conn.commit()
        logger.debug(f"[JRN-REBASE] epoch={event.epoch} | supply_delta={event.supply_delta}")

    def _insert_failure(self, event: TransactionFailed, recorded_at: str) -> None:
        insert_sql = text("""
            INSERT INTO transaction_failures (
                destination, tx_index, payload_hex, message, failure_code, recorded_at
            ) VALUES (
                :destination, :tx_index, :payload_hex, :message, :failure_code, :recorded_at
            )
        """)
        with self._engine.connect() as conn:
            conn.execute(insert_sql, {
                "destination": event.destination,
                "tx_index": event.index,
                "payload_hex": event.payload.hex(),
                "message": event.message,
                "failure_code": event.failure_code,
                "recorded_at": recorded_at,
            })
            conn.commit()

    def list_rebases(self, limit: int = 100) -> List[Dict[str, Any]]:
        query = text("""
            SELECT epoch, exchange_rate, reference_index, aux_rate,
                   supply_delta, rebase_timestamp, recorded_at
            FROM rebase_events
            ORDER BY recorded_at, epoch
            LIMIT :limit
        """)
        with self._engine.connect() as conn:
            rows = conn.execute(query, {"limit": limit}).fetchall()
        return [
            {
                "epoch": row[0],
                "exchange_rate": int(row[1]),
                "reference_index": int(row[2]),
                "aux_rate": int(row[3]),
                "supply_delta": int(row[4]),
                "timestamp": row[5],
                "recorded_at": row[6],
            }
            for row in rows
        ]

    def list_failures(self, limit: int = 100) -> List[Dict[str, Any]]:
        query = text("""
            SELECT destination, tx_index, payload_hex, message, failure_code, recorded_at
            FROM transaction_failures
            ORDER BY recorded_at
            LIMIT :limit
        """)
        with self._engine.connect() as conn:
            rows = conn.execute(query, {"limit": limit}).fetchall()
        return [
            {
                "destination": row[0],
                "index": row[1],
                "payload": bytes.fromhex(row[2]),
                "message": row[3],
                "failure_code": row[4],
                "recorded_at": row[5],
            }
            for row in rows
        ]
