"""
timething - Forecast allocation vs Harvest time report for one user.
"""

import argparse
import logging
import sys
from typing import List, Optional, Tuple

from timething.api_client import FetchResult
from timething.config import Settings, load_settings, run_config_wizard
from timething.dates import WeekBounds, parse_date, resolve_period
from timething.errors import ConfigurationError
from timething.forecast import ForecastClient, forecast_id
from timething.harvest import HarvestClient, harvest_id
from timething.logging_config import setup_logging
from timething.projects import KEYED_BY_FORECAST, build_index, load_projects, write_cache
from timething.reconcile import aggregate_assignments, reconcile
from timething.report import print_report

logger = logging.getLogger("timething")

MODE_SUMMARY = "summary"
MODE_UPDATE_PROJECTS = "update-projects"
MODE_CONFIG = "config"
MODES = (MODE_SUMMARY, MODE_UPDATE_PROJECTS, MODE_CONFIG)

CONFIG_HINT = "Please run 'timething config' to configure the Harvest and Forecast accounts."


# -------------------------------------------------
# Argument handling
# -------------------------------------------------
def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="timething",
        description="Compare Forecast allocations with Harvest logged hours",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  timething                                # this week + next week
  timething summary 2024-05-01 2024-05-31  # explicit window
  timething 2024-05-01 2024-05-31          # same, mode defaults to summary
  timething update-projects                # refresh the cached Forecast projects
  timething config                         # store credentials
        """,
    )
    parser.add_argument(
        "args",
        nargs="*",
        metavar="[MODE] [START END]",
        help=f"mode ({', '.join(MODES)}; default {MODE_SUMMARY}) and optional YYYY-MM-DD dates",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Debug logging on stderr"
    )
    return parser


def split_args(
    parser: argparse.ArgumentParser, args: List[str]
) -> Tuple[str, Optional[str], Optional[str]]:
    """
    First positional picks the mode when it names one.
    For the summary, the LAST two remaining positionals are start/end.
    """
    rest = list(args)
    mode = MODE_SUMMARY
    if rest and rest[0] in MODES:
        mode = rest.pop(0)

    if mode != MODE_SUMMARY or not rest:
        return mode, None, None

    if len(rest) < 2:
        parser.error(f"expected a mode or a START END date pair, got {rest[0]!r}")

    try:
        start, end = parse_date(rest[-2]), parse_date(rest[-1])
    except ValueError:
        parser.error(f"dates must be YYYY-MM-DD, got {rest[-2]!r} {rest[-1]!r}")

    return mode, start.isoformat(), end.isoformat()


# -------------------------------------------------
# Modes
# -------------------------------------------------
def _data_or_empty(result: FetchResult, what: str) -> list:
    if result.ok:
        return result.data or []
    logger.error(f"❌ Could not fetch {what}: {result.error}")
    return []


def update_projects(settings: Settings, forecast: ForecastClient) -> int:
    result = forecast.projects()
    if not result.ok:
        logger.error(f"❌ Could not fetch Forecast projects: {result.error}")
        return 1
    write_cache(settings.cache_file, result.data)
    print("Forecast projects list updated.")
    return 0


def summary(
    settings: Settings,
    forecast: ForecastClient,
    harvest: HarvestClient,
    period: WeekBounds,
) -> int:
    forecast_user = forecast_id(forecast)
    harvest_user = harvest_id(harvest)
    if not forecast_user or not harvest_user:
        print(CONFIG_HINT)
        return 1

    logger.info(f"📅 Reporting {period.start} → {period.end}")

    index = build_index(load_projects(forecast, settings.cache_file), KEYED_BY_FORECAST)

    assignments_result = forecast.assignments(forecast_user, period.start, period.end)
    assignments = aggregate_assignments(
        _data_or_empty(assignments_result, "Forecast assignments"), index
    )

    projects_result = harvest.project_assignments()
    entries_result = harvest.time_entries(harvest_user, period.start, period.end)

    reconciliation = reconcile(
        _data_or_empty(projects_result, "Harvest project assignments"),
        _data_or_empty(entries_result, "Harvest time entries"),
        assignments,
    )

    truncated = any(
        r.truncated for r in (assignments_result, projects_result, entries_result)
    )
    print_report(reconciliation, truncated=truncated)
    return 0


# -------------------------------------------------
# Entry point
# -------------------------------------------------
def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    ns = parser.parse_args(argv)
    mode, start, end = split_args(parser, ns.args)

    setup_logging("DEBUG" if ns.verbose else "INFO")

    try:
        if mode == MODE_CONFIG:
            run_config_wizard()
            return 0

        try:
            settings = load_settings()
        except ConfigurationError as e:
            logger.error(f"❌ {e}")
            print(CONFIG_HINT)
            return 1

        if not ns.verbose and settings.log_level.upper() != "INFO":
            setup_logging(settings.log_level)

        forecast = ForecastClient.from_settings(settings)
        harvest = HarvestClient.from_settings(settings)
        with forecast, harvest:
            if mode == MODE_UPDATE_PROJECTS:
                return update_projects(settings, forecast)
            return summary(settings, forecast, harvest, resolve_period(start, end))

    except KeyboardInterrupt:
        print("\n\nOperation cancelled by user.")
        return 1


if __name__ == "__main__":
    sys.exit(main())
