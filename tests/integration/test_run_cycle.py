"""
Integration Tests for the Run Cycle Job

Reliability Level: SOVEREIGN TIER

Drives jobs.run_cycle end to end: environment configuration, scenario
validation, system wiring, one cycle, JSON output and the optional
database journal.
"""

import json
import os
import sys
from pathlib import Path
from typing import Any, Dict

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from elastic.database.event_journal import EventJournal
from elastic.database.session import create_db_engine
from elastic.errors import UnapprovedTransactionFailure
from elastic.factory import build_scenario_system
from elastic.logic.authorization import CallContext
from elastic.logic.failure_codes import failure_code
from elastic.numeric.fixed_point import ONE
from elastic.schemas.scenario import ScenarioIn
from elastic.services.policy_config import PolicyConfig, reset_policy_config
from jobs.run_cycle import (
    EXIT_ABORTED,
    EXIT_COMMITTED,
    EXIT_INVALID_INPUT,
    main,
    run_scenario,
)

DAY = 86400
WINDOW_NOW = 10 * DAY + 72000


def base_scenario() -> Dict[str, Any]:
    return {
        "initial_supply": "1000000",
        "now": WINDOW_NOW,
        "oracles": {
            "reference_index": {"value": "100"},
            "exchange_rate": {"value": "1.1"},
            "aux_rate": {"value": "1"},
        },
        "targets": {
            "pool-a": {"behaviour": "succeed"},
            "pool-b": {"behaviour": "revert", "message": "paused"},
            "pool-c": {"behaviour": "succeed"},
            "drain": {"behaviour": "exhaust"},
            "mute": {"behaviour": "silent"},
        },
        "transactions": [
            {"destination": "pool-a", "payload": "0a", "compute_budget": 100000},
            {"destination": "pool-b", "payload": "0b", "compute_budget": 100000,
             "approved_failure_messages": ["paused"]},
            {"destination": "pool-c", "payload": "0c", "compute_budget": 100000},
        ],
    }


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for var in list(os.environ):
        if var.startswith("ELASTIC_"):
            monkeypatch.delenv(var, raising=False)
    reset_policy_config()
    yield
    reset_policy_config()


def write_scenario(tmp_path: Path, data: Dict[str, Any]) -> str:
    path = tmp_path / "scenario.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return str(path)


class TestRunScenario:

    def test_three_notifications_with_tolerated_failure(self) -> None:
        scenario = ScenarioIn.model_validate(base_scenario())
        output = run_scenario(scenario, PolicyConfig(), correlation_id="cid-int")

        assert output["correlation_id"] == "cid-int"
        assert output["rebase"]["epoch"] == 1
        assert output["rebase"]["supply_delta"] == str((100_000 * ONE) // 30)
        assert output["total_supply"] == str(1_000_000 * ONE + (100_000 * ONE) // 30)
        statuses = [n["status"] for n in output["notifications"]]
        assert statuses == ["SUCCEEDED", "TOLERATED", "SUCCEEDED"]
        assert output["notifications"][1]["failure_code"] == failure_code("paused")

    def test_unapproved_failure_rolls_back_scenario_system(self) -> None:
        data = base_scenario()
        data["transactions"][1]["approved_failure_messages"] = []
        system = build_scenario_system(ScenarioIn.model_validate(data), PolicyConfig())

        with pytest.raises(UnapprovedTransactionFailure):
            system.orchestrator.run_cycle(CallContext("keeper"))

        assert system.policy.epoch == 0
        assert system.ledger.total_supply() == 1_000_000 * ONE
        assert system.dispatcher.resolve("pool-a").received == []
        assert system.events.history == []

    def test_exhausting_target_is_out_of_budget(self) -> None:
        data = base_scenario()
        data["transactions"] = [{
            "destination": "drain",
            "compute_budget": 5000,
            "approved_failure_messages": ["out of budget"],
        }]
        output = run_scenario(ScenarioIn.model_validate(data), PolicyConfig())
        notification = output["notifications"][0]
        assert notification["message"] == "out of budget"
        assert notification["budget_used"] == 5000

    def test_silent_target(self) -> None:
        data = base_scenario()
        data["transactions"] = [{
            "destination": "mute",
            "compute_budget": 50000,
            "approved_failure_messages": ["silent failure"],
        }]
        output = run_scenario(ScenarioIn.model_validate(data), PolicyConfig())
        assert output["notifications"][0]["message"] == "silent failure"

    def test_disabled_transaction(self) -> None:
        data = base_scenario()
        data["transactions"][1]["enabled"] = False
        data["transactions"][1]["approved_failure_messages"] = []
        output = run_scenario(ScenarioIn.model_validate(data), PolicyConfig())
        assert output["notifications"][1]["status"] == "SKIPPED"


class TestMain:

    def test_committed_cycle(self, tmp_path, capsys) -> None:
        path = write_scenario(tmp_path, base_scenario())
        assert main(["--scenario", path]) == EXIT_COMMITTED
        output = json.loads(capsys.readouterr().out)
        assert output["status"] == "COMMITTED"
        assert output["rebase"]["epoch"] == 1

    def test_outside_window_aborts(self, tmp_path, capsys) -> None:
        path = write_scenario(tmp_path, base_scenario())
        assert main(["--scenario", path, "--now", str(WINDOW_NOW - 1)]) == EXIT_ABORTED
        output = json.loads(capsys.readouterr().out)
        assert output["status"] == "ABORTED"
        assert output["error_code"] == "POL-001"

    def test_budget_flag(self, tmp_path, capsys) -> None:
        path = write_scenario(tmp_path, base_scenario())
        assert main(["--scenario", path, "--budget", "100000"]) == EXIT_ABORTED
        assert json.loads(capsys.readouterr().out)["error_code"] == "ORCH-001"

    def test_invalid_scenario(self, tmp_path, capsys) -> None:
        data = base_scenario()
        data["initial_supply"] = 1.5
        path = write_scenario(tmp_path, data)
        assert main(["--scenario", path]) == EXIT_INVALID_INPUT
        assert json.loads(capsys.readouterr().out)["status"] == "INVALID"

    def test_initial_supply_above_ceiling(self, tmp_path, capsys) -> None:
        data = base_scenario()
        data["initial_supply"] = "1" + "0" * 40
        path = write_scenario(tmp_path, data)
        assert main(["--scenario", path]) == EXIT_INVALID_INPUT
        output = json.loads(capsys.readouterr().out)
        assert output["status"] == "INVALID"
        assert "SCN-001" in output["error"]

    def test_missing_scenario_file(self, tmp_path, capsys) -> None:
        assert main(["--scenario", str(tmp_path / "missing.json")]) == EXIT_INVALID_INPUT
        capsys.readouterr()

    def test_invalid_configuration(self, tmp_path, capsys, monkeypatch) -> None:
        monkeypatch.setenv("ELASTIC_REBASE_LAG", "0")
        path = write_scenario(tmp_path, base_scenario())
        assert main(["--scenario", path]) == EXIT_INVALID_INPUT
        assert "CFG-001" in json.loads(capsys.readouterr().out)["error"]

    def test_journal(self, tmp_path, capsys, monkeypatch) -> None:
        url = f"sqlite:///{tmp_path / 'journal.db'}"
        monkeypatch.setenv("ELASTIC_DATABASE_URL", url)
        path = write_scenario(tmp_path, base_scenario())

        assert main(["--scenario", path, "--journal"]) == EXIT_COMMITTED
        capsys.readouterr()

        engine = create_db_engine(url)
        try:
            journal = EventJournal(engine)
            assert [row["epoch"] for row in journal.list_rebases()] == [1]
            failures = journal.list_failures()
            assert [row["destination"] for row in failures] == ["pool-b"]
            assert failures[0]["payload"] == b"\x0b"
        finally:
            engine.dispose()
