"""
Darwin Stress — Command line entry point.

Runs one Monte Carlo stress test or one evolutionary search and prints the
result as JSON on stdout. Logs go to stderr (and optionally a file).

Usage:
    darwin-stress simulate --alloc us_equities=0.6 --alloc long_term_bonds=0.4
    darwin-stress simulate -c config.yaml --seed 42 --scenarios 2000 --paths
    darwin-stress evolve --alloc us_equities=0.6 --alloc long_term_bonds=0.4 \\
        --generations 8 --pressure 1.0
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Dict, List, Sequence

from darwin_stress.config import (
    ConfigError, StressConfig, load_config, parse_allocations, validate_portfolio,
)
from darwin_stress.evolution.engine import evolve_portfolio
from darwin_stress.simulation.engine import run_monte_carlo

logger = logging.getLogger("darwin.stress.main")

DEFAULT_ALLOCATION = {"us_equities": 0.6, "long_term_bonds": 0.4}
EXIT_INVALID = 2


def setup_logging(level: str, log_file: str | None = None):
    fmt = "%(asctime)s │ %(levelname)-5s │ %(name)-20s │ %(message)s"
    handlers = [logging.StreamHandler(sys.stderr)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=fmt,
        handlers=handlers,
        force=True,
    )


def _parse_alloc(items: Sequence[str] | None) -> Dict[str, float]:
    if not items:
        return dict(DEFAULT_ALLOCATION)
    allocations: Dict[str, float] = {}
    for item in items:
        name, sep, value = item.partition("=")
        if not sep:
            raise ConfigError(f"--alloc expects asset=weight, got {item!r}")
        try:
            allocations[name.strip()] = float(value)
        except ValueError:
            raise ConfigError(f"--alloc {name}: weight {value!r} is not a number") from None
    return allocations


def _apply_overrides(config: StressConfig, args: argparse.Namespace) -> None:
    if args.seed is not None:
        config.simulation.seed = args.seed
        config.evolution.seed = args.seed
    if args.scenarios is not None:
        config.simulation.num_scenarios = args.scenarios
        config.evolution.num_scenarios = args.scenarios
    if args.horizon is not None:
        config.simulation.horizon_months = args.horizon
        config.evolution.horizon_months = args.horizon
    if args.command == "evolve":
        if args.population is not None:
            config.evolution.population_size = args.population
        if args.generations is not None:
            config.evolution.generations = args.generations
        if args.pressure is not None:
            config.evolution.adversarial_pressure = args.pressure


def _report_errors(errors: List[str]) -> int:
    for err in errors:
        logger.error("invalid input: %s", err)
    return EXIT_INVALID


# ═════════════════════════════════════════════════════════════
# Commands
# ═════════════════════════════════════════════════════════════

def run(config: StressConfig, args: argparse.Namespace) -> int:
    try:
        portfolio = parse_allocations(_parse_alloc(args.alloc))
        market = config.market()
    except ConfigError as exc:
        return _report_errors([str(exc)])

    errors = validate_portfolio(portfolio) + config.validate()
    if errors:
        return _report_errors(errors)

    if args.command == "simulate":
        summary = run_monte_carlo(portfolio, config.simulation_config(), market=market)
        payload = summary.to_dict(include_paths=args.paths)
    else:
        result = evolve_portfolio(portfolio, config.evolution_config(), market)
        payload = result.to_dict()

    json.dump(payload, sys.stdout, indent=2 if args.pretty else None)
    sys.stdout.write("\n")
    return 0


# ═════════════════════════════════════════════════════════════
# CLI
# ═════════════════════════════════════════════════════════════

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="darwin-stress",
        description="Regime-aware Monte Carlo stress testing and portfolio evolution",
    )
    parser.add_argument("--config", "-c", default="config.yaml",
                        help="Path to config YAML file")
    parser.add_argument("--log-level", default=None,
                        help="Log level (overrides config)")
    parser.add_argument("--pretty", action="store_true",
                        help="Indent JSON output")
    sub = parser.add_subparsers(dest="command", required=True)

    for name, help_text in (
        ("simulate", "Run one Monte Carlo stress test"),
        ("evolve", "Evolve resilient allocations from a seed portfolio"),
    ):
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument("--alloc", "-a", action="append", metavar="ASSET=WEIGHT",
                         help="Allocation entry, repeatable (default 60/40)")
        cmd.add_argument("--seed", type=int, default=None,
                         help="RNG seed (overrides config)")
        cmd.add_argument("--scenarios", type=int, default=None,
                         help="Scenarios per Monte Carlo run")
        cmd.add_argument("--horizon", type=int, default=None,
                         help="Horizon in months")

    simulate = sub.choices["simulate"]
    simulate.add_argument("--paths", action="store_true",
                          help="Include wealth paths and asset returns in output")

    evolve = sub.choices["evolve"]
    evolve.add_argument("--population", type=int, default=None)
    evolve.add_argument("--generations", type=int, default=None)
    evolve.add_argument("--pressure", type=float, default=None,
                        help="Adversarial pressure in [0, 1]")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config)
    except ConfigError as exc:
        setup_logging("INFO")
        return _report_errors([str(exc)])

    _apply_overrides(config, args)
    setup_logging(args.log_level or config.infra.log_level, config.infra.log_file or None)

    return run(config, args)


if __name__ == "__main__":
    sys.exit(main())
