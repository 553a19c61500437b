"""Command-line entry point: run a scenario against a configured pool."""

import argparse
import logging
import sys
from typing import List, Optional

from pydantic import ValidationError

from .config.loader import load_config
from .engine.ledger import PRECISION
from .reporting.export import export_csv, export_json
from .simulation.runner import ScenarioRunner, generate_random_scenario, load_scenario

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="yieldpool",
        description="Replay a staking scenario against a dual-stream yield pool."
    )
    parser.add_argument("--config", help="Pool config YAML (defaults to packaged defaults)")
    parser.add_argument("--scenario", help="Scenario YAML; a random scenario is generated if omitted")
    parser.add_argument("--seed", type=int, help="Seed for the generated scenario")
    parser.add_argument("--set", dest="overrides", action="append", default=[],
                        metavar="SECTION.KEY=VALUE", help="Override one config value (repeatable)")
    parser.add_argument("--rate-model", choices=["ema", "linear"], help="Override rate model kind")
    parser.add_argument("--csv", help="Write per-action snapshots to this CSV file")
    parser.add_argument("--json", help="Write the full result to this JSON file")
    parser.add_argument("--log-level", default="WARNING",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = load_config(args.config, overrides=args.overrides)
        if args.rate_model:
            config.rate_model.kind = args.rate_model
        if args.scenario:
            actions = load_scenario(args.scenario)
        else:
            actions = generate_random_scenario(config, random_seed=args.seed)
    except (OSError, ValidationError, ValueError) as exc:
        logger.error("could not prepare scenario: %s", exc)
        return 2

    result = ScenarioRunner(config).run(actions)
    metrics = result.final_metrics

    print(f"config hash:        {config.compute_hash()}")
    print(f"rate model:         {config.rate_model.kind}")
    print(f"actions:            {metrics['num_actions']} ({metrics['num_rejected']} rejected)")
    print(f"total staked:       {metrics['total_staked'] / PRECISION:,.6f}")
    print(f"stream A paid:      {metrics['paid_a'] / PRECISION:,.6f}")
    print(f"stream B delivered: {metrics['delivered_b'] / PRECISION:,.6f}")
    print(f"stream B paid:      {metrics['paid_b'] / PRECISION:,.6f}")
    print(f"invariant warnings: {len(result.warnings)}")

    if args.csv:
        export_csv(result, args.csv)
    if args.json:
        export_json(result, args.json)

    errors = [w for w in result.warnings if w.severity == "error"]
    return 1 if errors else 0


if __name__ == "__main__":
    sys.exit(main())
