"""
============================================================================
Elastic Supply v1.0.0
Run Cycle Job - Execute One Rebase Cycle Against a Scenario File
============================================================================

Reliability Level: L6 Critical
Input Constraints: Scenario JSON validated by ScenarioIn
Side Effects: Optional database writes (--journal), stdout JSON

USAGE:
    python -m jobs.run_cycle --scenario scenario.json [--now N] [--budget N] [--journal]

EXIT CODES:
    0: Cycle committed
    1: Cycle rejected or rolled back (coded error in output)
    2: Scenario or configuration invalid

============================================================================
"""

import argparse
import json
import logging
import sys
import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from elastic.database.event_journal import EventJournal
from elastic.database.session import create_db_engine
from elastic.errors import ConfigurationError, ElasticSupplyError
from elastic.factory import build_scenario_system
from elastic.logic.authorization import CallContext
from elastic.schemas.scenario import ScenarioIn
from elastic.services.policy_config import PolicyConfig

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)

DEFAULT_CALLER = "keeper"

EXIT_COMMITTED = 0
EXIT_ABORTED = 1
EXIT_INVALID_INPUT = 2


def load_scenario(path: Path) -> ScenarioIn:
    """
    Raises:
        OSError: If the file cannot be read
        ValidationError: If the content does not match ScenarioIn
    """
    return ScenarioIn.model_validate_json(path.read_text(encoding="utf-8"))


def run_scenario(
    scenario: ScenarioIn,
    config: PolicyConfig,
    now: Optional[int] = None,
    budget: Optional[int] = None,
    journal: Optional[EventJournal] = None,
    caller: str = DEFAULT_CALLER,
    correlation_id: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Build the scenario system and run one top-level cycle.

    Returns:
        CycleResult.to_dict() plus the resulting total supply

    Raises:
        ElasticSupplyError: If the cycle is rejected or rolled back
    """
    cid = correlation_id or str(uuid.uuid4())
    system = build_scenario_system(scenario, config, journal=journal, now=now)

    logger.info(
        f"[RUN-CYCLE] Starting | transactions={system.orchestrator.transactions_size()} | "
        f"targets={len(scenario.targets)} | correlation_id={cid}"
    )
    result = system.orchestrator.run_cycle(
        CallContext(caller=caller), budget=budget, correlation_id=cid
    )

    output = result.to_dict()
    output["total_supply"] = str(system.ledger.total_supply())
    return output


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point for a single rebase cycle."""
    parser = argparse.ArgumentParser(
        description="Run one elastic-supply rebase cycle against a scenario file"
    )
    parser.add_argument(
        "--scenario",
        type=str,
        required=True,
        help="Path to scenario JSON"
    )
    parser.add_argument(
        "--now",
        type=int,
        default=None,
        help="Unix time to run the cycle at (default: scenario 'now' or wall clock)"
    )
    parser.add_argument(
        "--budget",
        type=int,
        default=None,
        help="Compute budget for the cycle (default: ELASTIC_CYCLE_COMPUTE_BUDGET)"
    )
    parser.add_argument(
        "--journal",
        action="store_true",
        help="Persist committed events to ELASTIC_DATABASE_URL"
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging"
    )

    args = parser.parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        config = PolicyConfig.from_environment(validate=True)
        scenario = load_scenario(Path(args.scenario))
    except (ConfigurationError, ValidationError, OSError) as e:
        logger.error(f"[RUN-CYCLE] Invalid input | error={e}")
        print(json.dumps({"status": "INVALID", "error": str(e)}, indent=2))
        return EXIT_INVALID_INPUT

    journal = None
    if args.journal:
        journal = EventJournal(create_db_engine(config.database_url))
        journal.ensure_schema()

    try:
        output = run_scenario(scenario, config, now=args.now, budget=args.budget, journal=journal)
    except ElasticSupplyError as e:
        print(json.dumps({
            "status": "ABORTED",
            "error_code": e.error_code,
            "error": e.message,
        }, indent=2))
        return EXIT_ABORTED

    output["status"] = "COMMITTED"
    print(json.dumps(output, indent=2))
    return EXIT_COMMITTED


if __name__ == "__main__":
    sys.exit(main())
