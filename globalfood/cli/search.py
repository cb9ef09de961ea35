# =============================================================================
# globalfood/cli/search.py -- Command-line restaurant search
# =============================================================================
#
# Runs one aggregated search from the shell using credentials read from the
# environment / .env (see .env.example):
#
#   python -m globalfood.cli search --lat 40.73 --lng -73.997 --term pizza
#   python -m globalfood.cli search --near "Soho, New York" --json
#   python -m globalfood.cli status
#
# Text output lists merged records with their corroborating sources, then a
# per-provider status table.  --json prints the AggregatedResult as JSON and
# implies --quiet, which sends log lines to stderr at WARNING+ so stdout
# carries only the result.
#
# Exit codes: 0 on success, 1 when the query is invalid or no provider
# could answer it.
# =============================================================================

"""Standalone CLI for GlobalFood searches.

Usage::

    python -m globalfood.cli search --lat 40.73 --lng -73.997 --term pizza --limit 10
    python -m globalfood.cli search --near "Soho, New York" --json
    python -m globalfood.cli status
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Any

from globalfood.config.loader import load_config, settings_from_config
from globalfood.config.settings import Settings
from globalfood.models.results import AggregatedResult, DispatchOutcome
from globalfood.services.global_food import GlobalFood
from globalfood.utils.errors import ConfigurationError, InvalidQueryError, NoProviderAvailableError
from globalfood.utils.logging import configure_logging

_DEFAULT_WAIT_SECONDS = 5.0


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def _format_text_output(result: AggregatedResult) -> str:
    """Format merged records and provider statuses as a readable report."""
    lines: list[str] = []
    sep = "=" * 60

    lines.append(sep)
    lines.append(f"  GlobalFood -- {len(result)} result(s)")
    lines.append(sep)

    for index, record in enumerate(result.records, start=1):
        extras: list[str] = []
        if record.rating is not None:
            extras.append(f"{record.rating:.1f}/5")
        if record.price is not None:
            extras.append("$" * record.price.value)
        suffix = f"  ({', '.join(extras)})" if extras else ""
        lines.append(f"{index:>3}. {record.name}  [{', '.join(record.sources)}]{suffix}")
        if record.address:
            lines.append(f"     {record.address}")
        if record.categories:
            lines.append(f"     {', '.join(record.categories[:5])}")

    lines.append("")
    lines.append("PROVIDERS")
    lines.append("-" * 40)
    for name, status in result.statuses.items():
        if status.outcome == DispatchOutcome.SUCCESS:
            detail = f"{status.count} record(s)"
            if status.elapsed_ms is not None:
                detail += f" in {status.elapsed_ms:.0f} ms"
        elif status.outcome == DispatchOutcome.FAILED:
            detail = f"{status.error_type}: {status.error}"
        else:
            detail = "query not supported"
        lines.append(f"  {name:<11} {status.outcome.value:<8} {detail}")

    return "\n".join(lines)


def _format_json_output(result: AggregatedResult) -> str:
    return json.dumps(result.model_dump(mode="json"), indent=2, default=str)


def _build_query(args: argparse.Namespace) -> dict[str, Any]:
    query: dict[str, Any] = {"term": args.term, "radius": args.radius, "limit": args.limit}
    if args.near:
        query["location"] = args.near
    elif args.lat is not None or args.lng is not None:
        query["location"] = {"lat": args.lat, "lng": args.lng}
    return query


# ---------------------------------------------------------------------------
# Command runners
# ---------------------------------------------------------------------------


def _suppress_logs() -> None:
    """Send all structlog and stdlib logging to stderr at WARNING+ level."""
    configure_logging(log_level="WARNING", stream=sys.stderr)


async def _run_search(args: argparse.Namespace, settings: Settings, wait: float) -> int:
    async with GlobalFood.from_settings(settings) as gf:
        await gf.wait_ready(timeout=wait)
        try:
            result = await gf.search(_build_query(args))
        except InvalidQueryError as exc:
            print(f"Error: {exc}", file=sys.stderr)
            return 1
        except NoProviderAvailableError as exc:
            print(f"Error: {exc}", file=sys.stderr)
            for name, status in exc.statuses.items():
                print(f"  {name}: {status.outcome.value} {status.error or ''}".rstrip(), file=sys.stderr)
            return 1

    print(_format_json_output(result) if args.json_output else _format_text_output(result))
    return 0


async def _run_status(settings: Settings, wait: float) -> int:
    async with GlobalFood.from_settings(settings) as gf:
        statuses = await gf.wait_ready(timeout=wait)

    for name, status in statuses.items():
        line = f"  {name:<11} {status.state.value}"
        if status.error:
            line += f"  ({status.error_type}: {status.error})"
        print(line)
    return 0 if any(s.is_ready for s in statuses.values()) else 1


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m globalfood.cli",
        description="Search restaurants across Yelp, Foursquare, Zomato and Factual.",
    )
    parser.add_argument(
        "--config",
        default="config/config.yaml",
        help="YAML defaults file (environment variables override it).",
    )
    parser.add_argument(
        "--wait",
        type=float,
        default=None,
        help="Seconds to wait for provider token exchanges before searching.",
    )
    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Suppress log output below WARNING.",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    search = commands.add_parser("search", help="Run one aggregated search.")
    search.add_argument("--lat", type=float, default=None, help="Latitude of the search centre.")
    search.add_argument("--lng", type=float, default=None, help="Longitude of the search centre.")
    search.add_argument("--near", type=str, default=None, help="Free-text location instead of coordinates.")
    search.add_argument("--term", type=str, default=None, help="Search term, e.g. 'pizza'.")
    search.add_argument("--radius", type=float, default=None, help="Search radius in metres.")
    search.add_argument("--limit", type=int, default=None, help="Maximum number of merged results.")
    search.add_argument(
        "--json",
        action="store_true",
        dest="json_output",
        help="Output results as JSON instead of formatted text.",
    )

    commands.add_parser("status", help="Show which providers are configured and ready.")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Parse *argv*, run the chosen command and return its exit code."""
    args = _build_parser().parse_args(argv)

    try:
        env_settings = Settings()
        config = load_config(args.config, env_settings)
        settings = settings_from_config(config, env_settings)
    except ConfigurationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    if args.quiet or getattr(args, "json_output", False):
        _suppress_logs()
    else:
        configure_logging(log_level=config.get("logging", {}).get("level", "INFO"), stream=sys.stderr)

    wait = args.wait
    if wait is None:
        wait = config.get("cli", {}).get("handshake_wait_seconds", _DEFAULT_WAIT_SECONDS)

    if args.command == "status":
        return asyncio.run(_run_status(settings, wait))
    return asyncio.run(_run_search(args, settings, wait))


if __name__ == "__main__":
    sys.exit(main())
