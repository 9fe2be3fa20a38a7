#!/usr/bin/env python3
"""Replay a pool scenario file and print the outcome.

Usage:
    # Print each step and the final pool state
    python scripts/simulate_pool.py tests/fixtures/scenarios/single_range_swap.json

    # Machine-readable output and debug logging
    python scripts/simulate_pool.py scenario.json --json --verbose
"""

import argparse
import json
import sys
from pathlib import Path

import structlog
from pydantic import ValidationError

# Add project root to path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from clamm.errors import PoolError  # noqa: E402
from clamm.log_config import configure_logging  # noqa: E402
from clamm.models.scenario import ScenarioOutcome  # noqa: E402
from clamm.simulation import ScenarioError, load_scenario, run_scenario  # noqa: E402

logger = structlog.get_logger()


def print_outcome(outcome: ScenarioOutcome) -> None:
    """Print a human-readable report of a scenario run."""
    print("=" * 60)
    print(f"Scenario: {outcome.name}")
    print("=" * 60)
    for step in outcome.steps:
        if step.error is not None:
            print(f"[{step.index:3d}] {step.action:<12} -> raised {step.error} (expected)")
            continue
        details = ", ".join(f"{key}={value}" for key, value in step.result.items())
        print(f"[{step.index:3d}] {step.action:<12} {details}")

    print()
    print("Final state")
    print("-" * 60)
    for key, value in outcome.final_state.items():
        if key == "positions":
            continue
        print(f"  {key}: {value}")
    for position in outcome.final_state["positions"]:
        print(
            f"  position {position['owner']} [{position['tick_lower']}, {position['tick_upper']}): "
            f"liquidity={position['liquidity']} owed0={position['tokens_owed0']} "
            f"owed1={position['tokens_owed1']}"
        )


def main() -> int:
    """Main entry point for the scenario runner."""
    parser = argparse.ArgumentParser(
        description="Replay a concentrated-liquidity pool scenario",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("scenario", type=Path, help="Scenario JSON file")
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the outcome as JSON instead of a text report",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging (tick crossings, reverted operations)",
    )

    args = parser.parse_args()

    configure_logging("DEBUG" if args.verbose else None, json_output=args.json)

    if not args.scenario.exists():
        logger.error("scenario_not_found", path=str(args.scenario))
        print(f"Error: Scenario file not found: {args.scenario}")
        return 1

    try:
        scenario = load_scenario(args.scenario)
    except ValidationError as e:
        logger.error("scenario_invalid", path=str(args.scenario), error=str(e))
        print(f"Error: Invalid scenario: {e}")
        return 1

    try:
        outcome = run_scenario(scenario)
    except (PoolError, ScenarioError) as e:
        logger.error("scenario_failed", name=scenario.name, error=str(e), error_type=type(e).__name__)
        print(f"Error: {type(e).__name__}: {e}")
        return 1

    if args.json:
        print(json.dumps(outcome.model_dump(), indent=2))
    else:
        print_outcome(outcome)
    return 0


if __name__ == "__main__":
    sys.exit(main())
