"""Command line entry point.

Usage:
    ledger-insights overview --tenant=t1 --company=c1
    ledger-insights predictions --tenant=t1 --company=c1 --type=expense
    ledger-insights balances --tenant=t1 --company=c1 --as-of=2024-06-30
"""

import argparse
import asyncio
import json
import sys
from datetime import UTC, datetime
from typing import Any

import structlog

from ledger_insights.config import bind_request_context, configure_logging, load_settings
from ledger_insights.engine import AnalyticsEngine
from ledger_insights.exceptions import ConfigurationError, MissingScopeError

logger = structlog.get_logger(__name__)

COMMANDS = (
    "balances",
    "statement",
    "overview",
    "anomalies",
    "insights",
    "predictions",
    "recommendations",
)


def _parse_as_of(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ledger-insights",
        description="Ledger balances, statements and financial signals",
    )
    parser.add_argument("command", choices=COMMANDS, help="Component to run")
    parser.add_argument("--tenant", required=True, help="Tenant id")
    parser.add_argument("--company", required=True, help="Company id")
    parser.add_argument(
        "--as-of",
        type=_parse_as_of,
        default=None,
        help="ISO date or timestamp to evaluate at (default: now)",
    )
    parser.add_argument(
        "--type",
        dest="prediction_type",
        default="revenue",
        help="Prediction series for the predictions command (default: revenue)",
    )
    return parser


async def execute(engine: AnalyticsEngine, args: argparse.Namespace) -> Any:
    """Run the requested component and return a JSON-ready value."""
    tenant, company, as_of = args.tenant, args.company, args.as_of

    if args.command == "balances":
        return [b.to_dict() for b in await engine.balances(tenant, company, as_of=as_of)]
    if args.command == "statement":
        return (await engine.statement(tenant, company, as_of=as_of)).to_dict()
    if args.command == "overview":
        return (await engine.overview(tenant, company, as_of=as_of)).to_dict()
    if args.command == "anomalies":
        return [r.to_dict() for r in await engine.detect_anomalies(tenant, company)]
    if args.command == "insights":
        return [r.to_dict() for r in await engine.generate_insights(tenant, company, as_of=as_of)]
    if args.command == "predictions":
        records = await engine.generate_predictions(
            tenant, company, prediction_type=args.prediction_type, as_of=as_of
        )
        return [r.to_dict() for r in records]
    records = await engine.generate_recommendations(tenant, company, as_of=as_of)
    return [r.to_dict() for r in records]


async def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = load_settings()
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    configure_logging(level=settings.log_level, format=settings.log_format)
    bind_request_context(args.tenant, args.company, command=args.command)

    try:
        async with AnalyticsEngine.from_settings() as engine:
            result = await execute(engine, args)
    except MissingScopeError as e:
        print(f"Invalid request: {e}", file=sys.stderr)
        return 2
    except Exception as e:
        logger.exception("command_failed", error=str(e))
        print("Failed to compute result", file=sys.stderr)
        return 1

    print(json.dumps(result, indent=2, default=str))
    return 0


def run() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
