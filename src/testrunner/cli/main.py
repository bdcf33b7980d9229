"""
testrunner CLI — run scenarios from the command line.

Usage:
    python -m testrunner.cli run --registry scenarios:registry --plans smoke --iterations 3
    python -m testrunner.cli run --registry scenarios:registry --plan-file plans.yaml --plans nightly --alerter webhook
    python -m testrunner.cli plans --registry scenarios:registry
    python -m testrunner.cli version
"""

import argparse
import asyncio
import importlib
import json
import logging
import sys
from pathlib import Path
from typing import Any, List, Optional

from testrunner import __version__
from testrunner.engine import UNBOUNDED, Engine
from testrunner.errors import RunnerError
from testrunner.loader import register_plans
from testrunner.registry import Registry

logger = logging.getLogger(__name__)


def load_object(path: str) -> Any:
    """Import ``module:attribute``."""
    module_name, _, attr = path.partition(":")
    if not module_name or not attr:
        raise RunnerError(f"Expected module:attribute, got {path!r}")
    try:
        module = importlib.import_module(module_name)
        return getattr(module, attr)
    except (ImportError, AttributeError) as exc:
        raise RunnerError(f"Could not import {path}: {exc}") from exc


def load_registry(path: Optional[str], plan_files: List[str]) -> Registry:
    registry: Any = Registry()
    if path:
        registry = load_object(path)
        if callable(registry) and not isinstance(registry, Registry):
            registry = registry()
        if not isinstance(registry, Registry):
            raise RunnerError(f"{path} is not a Registry")
    for plan_file in plan_files:
        register_plans(registry, plan_file)
    return registry


def _seed(value: str) -> Any:
    return int(value) if value.lstrip("-").isdigit() else value


def _iterations(value: str) -> Any:
    return value if value == UNBOUNDED else int(value)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="testrunner",
        description="Scenario-driven test and fuzz runner",
    )
    parser.add_argument("--log-level", default="WARNING", help="Logging level (default: WARNING)")
    subparsers = parser.add_subparsers(dest="command")

    def add_registry_args(sub: argparse.ArgumentParser) -> None:
        sub.add_argument("--registry", help="Registry to use, as module:attribute")
        sub.add_argument("--plan-file", action="append", default=[], help="YAML file with plans")

    # run subcommand
    run_parser = subparsers.add_parser("run", help="Run plans against the target")
    add_registry_args(run_parser)
    run_parser.add_argument("--plans", nargs="+", required=True, help="Plan names, in order")
    run_parser.add_argument("--iterations", type=_iterations, default=1,
                            help=f"Number of cycles, or '{UNBOUNDED}'")
    run_parser.add_argument("--sleep", type=float, default=0.0, help="Seconds between cycles")
    run_parser.add_argument("--seed", type=_seed, default=None)
    run_parser.add_argument("--continue-on-failure", action="store_true")
    run_parser.add_argument("--hook-timeout", type=float, default=None)
    run_parser.add_argument("--url", default=None, help="Target URL")
    run_parser.add_argument("--target-factory", default=None, help="Target factory, as module:attribute")
    run_parser.add_argument("--config", default=None, help="Target configuration file")
    run_parser.add_argument("--addresses-config", default=None, help="Addresses file")
    run_parser.add_argument("--alerter", action="append", default=[], help="Alerter to notify")
    run_parser.add_argument("--alert-level", default="error", choices=["info", "error"])
    run_parser.add_argument("--output", default=None, help="Write the report to this file")

    # plans subcommand
    plans_parser = subparsers.add_parser("plans", help="List registered plans")
    add_registry_args(plans_parser)

    # version subcommand
    subparsers.add_parser("version", help="Show version")

    return parser


async def _run(parsed: argparse.Namespace) -> int:
    registry = load_registry(parsed.registry, parsed.plan_file)
    target_factory = load_object(parsed.target_factory) if parsed.target_factory else None
    engine = Engine(
        registry,
        target_factory=target_factory,
        plans=parsed.plans,
        iterations=parsed.iterations,
        sleep=parsed.sleep,
        seed=parsed.seed,
        continue_on_failure=parsed.continue_on_failure,
        hook_timeout=parsed.hook_timeout,
        url=parsed.url,
        config=parsed.config,
        addresses_config=parsed.addresses_config,
    )
    report = await engine.run()
    if parsed.alerter:
        await engine.alert(parsed.alert_level, parsed.alerter)

    text = report.to_text()
    if parsed.output:
        Path(parsed.output).write_text(text)
    else:
        print(text)
    return 0 if report.all_passed else 1


def cli(args: Optional[List[str]] = None) -> int:
    """Main CLI entry point. Returns exit code."""
    parser = _build_parser()
    parsed = parser.parse_args(args)
    logging.basicConfig(level=parsed.log_level.upper(), format="%(asctime)s %(name)s %(levelname)s %(message)s")

    if parsed.command == "version":
        print(f"testrunner {__version__}")
        return 0

    try:
        if parsed.command == "plans":
            registry = load_registry(parsed.registry, parsed.plan_file)
            print(json.dumps(registry.to_dict(), indent=2))
            return 0

        if parsed.command == "run":
            return asyncio.run(_run(parsed))
    except RunnerError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    parser.print_help()
    return 1


def main() -> None:
    sys.exit(cli())
