#!/usr/bin/env python3
"""
Weatherish v1.0: historical weather probabilities for a place and a date.

Fetches ~20 years of NASA POWER daily observations for one point, reduces
each requested variable to descriptive statistics and a threshold-exceedance
probability, prints a summary and optionally exports the result as JSON.
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from datetime import date, datetime

import aiohttp

import config
from models.errors import QueryError, WeatherishError
from models.query import AnalysisQuery, Location
from services.analysis_engine import AnalysisEngine, validate_variables
from services.exporter import export_to_file
from services.summary import ChatInbox, ChatRequest, format_summary
from utils.geocode_client import GeocodeClient
from utils.power_client import PowerClient

# ── Logging setup ─────────────────────────────────────────────────────────────
logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL, logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("weatherish")


def _print_banner(query: AnalysisQuery) -> None:
    width = 40
    lines = [
        "Weatherish v1.0",
        "Historical Weather Probabilities",
        f"Date: {query.target_date.isoformat()}  Years: {query.years_analyzed}",
        f"Variables: {', '.join(query.variables)}",
    ]
    print("╔" + "═" * width + "╗")
    for line in lines:
        print(f"║  {line[:width - 2]:<{width - 2}}║")
    print("╚" + "═" * width + "╝")


# ── Argument parsing ──────────────────────────────────────────────────────────


def parse_threshold(text: str) -> tuple[str, float]:
    """Parse "variable=value" into (variable_key, value)."""
    name, sep, raw_value = text.partition("=")
    if not sep:
        raise QueryError(f"Threshold {text!r} must look like variable=value")
    key = config.variable_key_from_text(name)
    if key is None:
        raise QueryError(f"Unknown variable in threshold {text!r}")
    try:
        value = float(raw_value)
    except ValueError as exc:
        raise QueryError(f"Threshold value {raw_value!r} is not a number") from exc
    return key, value


def parse_date(text: str) -> date:
    try:
        return datetime.strptime(text, "%Y-%m-%d").date()
    except ValueError as exc:
        raise QueryError(f"Date {text!r} must be YYYY-MM-DD") from exc


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="weatherish",
        description="Historical weather statistics and exceedance probabilities for a location and date.",
    )
    parser.add_argument("--lat", type=float, required=True, help="latitude in degrees")
    parser.add_argument("--lon", type=float, required=True, help="longitude in degrees")
    parser.add_argument("--date", required=True, help="target date, YYYY-MM-DD")
    parser.add_argument("--name", default="", help="location name (reverse-geocoded if omitted)")
    parser.add_argument(
        "--variables",
        nargs="+",
        default=list(config.DEFAULT_VARIABLES),
        help=f"variables to analyse ({', '.join(config.VARIABLES)})",
    )
    parser.add_argument(
        "--threshold",
        action="append",
        default=[],
        metavar="VAR=VALUE",
        help="exceedance threshold, repeatable (e.g. temperature=32)",
    )
    parser.add_argument("--window-days", type=int, default=config.DEFAULT_WINDOW_DAYS)
    parser.add_argument("--start-year", type=int, default=config.DEFAULT_START_YEAR)
    parser.add_argument("--end-year", type=int, default=config.DEFAULT_END_YEAR)
    parser.add_argument(
        "--export",
        nargs="?",
        const="",
        default=None,
        metavar="PATH",
        help=f"write the result as JSON (default directory: {config.EXPORT_DIR})",
    )
    parser.add_argument(
        "--explain",
        action="store_true",
        help="print the message handed to the chat explainer",
    )
    return parser


def build_query(args: argparse.Namespace) -> AnalysisQuery:
    if not -90.0 <= args.lat <= 90.0 or not -180.0 <= args.lon <= 180.0:
        raise QueryError(f"Coordinates ({args.lat}, {args.lon}) are out of range")
    if args.window_days < 0:
        raise QueryError("--window-days must not be negative")
    if args.start_year > args.end_year:
        raise QueryError(f"--start-year {args.start_year} is after --end-year {args.end_year}")

    thresholds = dict(parse_threshold(t) for t in args.threshold)
    return AnalysisQuery(
        location=Location(lat=args.lat, lon=args.lon, name=args.name),
        target_date=parse_date(args.date),
        variables=validate_variables(args.variables),
        thresholds=thresholds,
        start_year=args.start_year,
        end_year=args.end_year,
        window_days=args.window_days,
    )


# ── Main ──────────────────────────────────────────────────────────────────────


async def run(query: AnalysisQuery, export: str | None = None, explain: bool = False) -> int:
    _print_banner(query)
    inbox = ChatInbox()

    async with aiohttp.ClientSession(
        headers={"User-Agent": config.HTTP_USER_AGENT}
    ) as session:
        if not query.location.name:
            name = await GeocodeClient(session=session).reverse(
                query.location.lat, query.location.lon
            )
            query.location = Location(query.location.lat, query.location.lon, name)

        engine = AnalysisEngine(PowerClient(session=session))
        try:
            result = await engine.run_query(query)
        except WeatherishError as exc:
            logger.error("Analysis failed: %s", exc)
            return 1

    print()
    print(format_summary(result, query.location, query.target_date, query.years_analyzed))

    await inbox.submit(
        ChatRequest.from_result(result, query.location, query.target_date, query.years_analyzed)
    )
    if explain:
        request = await inbox.get()
        print()
        print(request.prompt)

    if export is not None:
        written = export_to_file(query, result, export or None)
        if written is None:
            return 1
        print(f"\nExported to {written}")
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        query = build_query(args)
    except QueryError as exc:
        logger.error("%s", exc)
        return 2
    return asyncio.run(run(query, export=args.export, explain=args.explain))


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nInterrupted")
        sys.exit(130)
