"""
Unit Tests for the Event Journal

Reliability Level: SOVEREIGN TIER

Uses an in-memory SQLite engine (StaticPool) so every connection sees the
same database.
"""

import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from elastic.database.event_journal import EventJournal
from elastic.database.session import (
    check_database_connection,
    create_db_engine,
    get_database_url,
    reset_engine,
)
from elastic.ledger.supply_ledger import InMemorySupplyLedger
from elastic.logic.authorization import CallContext
from elastic.logic.downstream import CallDispatcher, DownstreamRevert, RecordingTarget
from elastic.logic.events import EventLog, RebaseCompleted, TransactionFailed
from elastic.logic.failure_codes import failure_code
from elastic.logic.orchestrator import Orchestrator
from elastic.logic.policy_engine import MonetaryPolicy
from elastic.numeric.fixed_point import MAX_SUPPLY, ONE
from elastic.oracle.adapter import OracleAdapter
from elastic.oracle.feeds import StaticPriceFeed

WINDOW_NOW = 10 * 86400 + 72000


@pytest.fixture
def engine():
    engine = create_db_engine("sqlite://")
    yield engine
    engine.dispose()


@pytest.fixture
def journal(engine) -> EventJournal:
    journal = EventJournal(engine)
    journal.ensure_schema()
    return journal


def make_orchestrator(journal: EventJournal) -> Orchestrator:
    events = EventLog()
    events.subscribe(journal.record)

    def paused(payload: bytes) -> bytes:
        raise DownstreamRevert("paused")

    policy = MonetaryPolicy(
        owner="owner",
        ledger=InMemorySupplyLedger(1_000_000 * ONE),
        base_reference_index=100 * ONE,
        oracles=OracleAdapter(
            StaticPriceFeed.from_decimal("100"),
            StaticPriceFeed.from_decimal("1.1"),
            StaticPriceFeed.from_decimal("1"),
        ),
        orchestrator="orchestrator",
        clock=lambda: WINDOW_NOW,
        events=events,
    )
    dispatcher = CallDispatcher({"paused": RecordingTarget(paused, name="paused")})
    return Orchestrator(owner="owner", policy=policy, dispatcher=dispatcher)


class TestSession:

    def test_database_url_from_environment(self, monkeypatch) -> None:
        monkeypatch.setenv("ELASTIC_DATABASE_URL", "sqlite:///other.db")
        assert get_database_url() == "sqlite:///other.db"

    def test_database_url_default(self, monkeypatch) -> None:
        monkeypatch.delenv("ELASTIC_DATABASE_URL", raising=False)
        assert get_database_url() == "sqlite:///elastic_supply.db"

    def test_connection_check(self, engine) -> None:
        assert check_database_connection(engine) is True

    def test_reset_engine_without_engine(self) -> None:
        reset_engine()


class TestEventJournal:

    def test_ensure_schema_is_idempotent(self, journal) -> None:
        journal.ensure_schema()
        assert journal.list_rebases() == []
        assert journal.list_failures() == []

    def test_record_rebase_preserves_large_values(self, journal) -> None:
        journal.record(RebaseCompleted(
            epoch=3,
            exchange_rate=11 * 10 ** 17,
            reference_index=100 * ONE,
            aux_rate=ONE,
            supply_delta=-MAX_SUPPLY,
            timestamp=WINDOW_NOW,
        ))
        rows = journal.list_rebases()
        assert len(rows) == 1
        assert rows[0]["epoch"] == 3
        assert rows[0]["supply_delta"] == -MAX_SUPPLY
        assert rows[0]["reference_index"] == 100 * ONE
        assert rows[0]["timestamp"] == WINDOW_NOW

    def test_record_failure(self, journal) -> None:
        journal.record(TransactionFailed(
            destination="pool",
            index=2,
            payload=b"\x01\x02",
            message="paused",
            failure_code=failure_code("paused"),
        ))
        rows = journal.list_failures()
        assert rows[0]["destination"] == "pool"
        assert rows[0]["index"] == 2
        assert rows[0]["payload"] == b"\x01\x02"
        assert rows[0]["failure_code"] == failure_code("paused")

    def test_write_failure_is_logged_not_raised(self, engine) -> None:
        journal = EventJournal(engine)  # schema never created
        journal.record(RebaseCompleted(1, ONE, ONE, ONE, 0, 0))

    def test_only_committed_cycles_are_journaled(self, journal) -> None:
        orchestrator = make_orchestrator(journal)
        orchestrator.add_transaction("owner", "paused", b"", 100_000)

        with pytest.raises(Exception):
            orchestrator.run_cycle(CallContext("keeper"))
        assert journal.list_rebases() == []

        orchestrator.remove_transaction("owner", 0)
        orchestrator.add_transaction(
            "owner", "paused", b"\xaa", 100_000, approved_failure_codes=[failure_code("paused")]
        )
        orchestrator.run_cycle(CallContext("keeper"))

        assert [row["epoch"] for row in journal.list_rebases()] == [1]
        failures = journal.list_failures()
        assert len(failures) == 1
        assert failures[0]["payload"] == b"\xaa"
        assert failures[0]["message"] == "paused"
