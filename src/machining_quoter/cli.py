"""Command-line entry point for quoting a part from a JSON input document."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence

from machining_quoter.catalogs import default_catalog, load_catalog_dir, load_region_costs
from machining_quoter.config import (
    DEBUG_ENV_VAR,
    ConfigError,
    configure_logging,
    describe_runtime_environment,
    env_flag,
    load_app_settings,
    load_engine_settings,
    logger,
)
from machining_quoter.domain import MachiningInput, RegionCost
from machining_quoter.pricing import run_calculation
from machining_quoter.reporting import render_text


def _jdump(payload: Any) -> str:
    return json.dumps(payload, indent=2, sort_keys=True, default=str)


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="machining-quoter",
        description="Machining cost and cycle-time calculator",
    )
    parser.add_argument(
        "--print-settings",
        action="store_true",
        help="Print the merged application settings as JSON and exit.",
    )
    parser.add_argument(
        "--print-env",
        action="store_true",
        help="Print a JSON dump of relevant environment configuration and exit.",
    )
    subparsers = parser.add_subparsers(dest="command")

    quote = subparsers.add_parser("quote", help="Calculate the cost of one part.")
    quote.add_argument("input", type=Path, help="Machining input JSON (or a stored calculation document).")
    quote.add_argument(
        "--catalog-dir",
        type=Path,
        default=None,
        help="Directory of materials/machines/tools/processes JSON or CSV tables.",
    )
    quote.add_argument(
        "--region-costs",
        type=Path,
        default=None,
        help="JSON or CSV file of dated regional price overrides.",
    )
    quote.add_argument(
        "--as-of",
        type=datetime.fromisoformat,
        default=None,
        help="ISO timestamp at which regional prices are resolved (default: now).",
    )
    output = quote.add_mutually_exclusive_group()
    output.add_argument("--json", action="store_true", help="Print the full result as JSON.")
    output.add_argument("--table", action="store_true", help="Print time and cost tables.")
    return parser


def _read_input(path: Path) -> MachiningInput:
    try:
        with path.open("r", encoding="utf-8") as handle:
            payload = json.load(handle)
    except FileNotFoundError as exc:
        raise ConfigError(f"Input file not found: {path}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Input JSON is invalid ({path}): {exc}") from exc

    if not isinstance(payload, Mapping):
        raise ConfigError(f"Input JSON must contain an object at the top level: {path}")
    inputs = payload.get("inputs")
    if isinstance(inputs, Mapping):
        payload = {"id": payload.get("id"), **inputs}
    return MachiningInput.from_dict(payload)


def _quote(args: argparse.Namespace) -> int:
    inputs = _read_input(args.input)
    catalog = load_catalog_dir(args.catalog_dir) if args.catalog_dir else default_catalog()
    region_costs: tuple[RegionCost, ...] = ()
    if args.region_costs:
        region_costs = load_region_costs(args.region_costs)

    outcome = run_calculation(
        inputs,
        catalog,
        region_costs,
        as_of=args.as_of,
        settings=load_engine_settings(),
    )
    if not outcome.ok or outcome.result is None:
        print(f"Results unavailable: {outcome.reason}", file=sys.stderr)
        return 2

    result = outcome.result
    if args.json:
        print(_jdump(result.to_dict()))
    elif args.table:
        print(render_text(result))
    else:
        print(f"Total cost: {result.total_cost:,.2f} {result.currency}")
        print(f"Cost per part: {result.cost_per_part:,.2f} {result.currency}")
        print(f"Cycle time per part: {result.cycle_time_per_part_min:.2f} min")
    for error in result.formula_errors:
        logger.warning("Formula error: %s", error)
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the command line with ``argv`` and return the process exit code."""

    configure_logging(logging.DEBUG if env_flag(DEBUG_ENV_VAR) else logging.INFO)
    parser = build_arg_parser()
    args = parser.parse_args(argv)

    try:
        if args.print_settings:
            print(_jdump(load_app_settings()))
            return 0
        if args.print_env:
            print(_jdump(describe_runtime_environment()))
            return 0
        if args.command == "quote":
            return _quote(args)
    except ConfigError as exc:
        logger.error("%s", exc)
        return 1

    parser.print_help()
    return 1


__all__ = ["build_arg_parser", "main"]
