import argparse
import logging
import sys
from pathlib import Path

import requests

from graph_reports import configure_logging
from graph_reports.auth import AuthConfigError, build_headers, get_access_token
from graph_reports.graph_client import GraphClientError
from graph_reports.identity import ResolutionStatus, UserResolver
from graph_reports.output import timestamped_name, write_json
from graph_reports.planner import PlannerExporter, get_plan, list_group_plans

LOGGER = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Export Planner tasks with buckets, assignees and comments to JSON.",
    )
    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument(
        "--group-id",
        help="Microsoft 365 group whose plans should all be exported.",
    )
    target.add_argument(
        "--plan-id",
        help="Export a single plan.",
    )
    parser.add_argument(
        "--delay-seconds",
        type=float,
        default=0.0,
        help="Fixed pause before each Graph request (default: 0).",
    )
    parser.add_argument(
        "--output-dir",
        default="exports",
        help="Folder for the JSON export (default: exports)",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )
    return parser


def main() -> int:
    args = _build_parser().parse_args()
    configure_logging(args.verbose)

    try:
        headers = build_headers(get_access_token())
        if args.group_id:
            plans = list_group_plans(args.group_id, headers, delay_seconds=args.delay_seconds)
            LOGGER.info("Found %d plan(s) in group %s", len(plans), args.group_id)
        else:
            plans = [get_plan(args.plan_id, headers, delay_seconds=args.delay_seconds)]
    except (AuthConfigError, GraphClientError, RuntimeError, requests.RequestException) as exc:
        LOGGER.error("Could not load plans: %s", exc)
        return 1

    resolver = UserResolver(headers, delay_seconds=args.delay_seconds)
    exporter = PlannerExporter(headers, resolver, delay_seconds=args.delay_seconds)
    records = exporter.export_plans(plans)

    counts = resolver.status_counts()
    LOGGER.info(
        "User lookups: %d (resolved=%d, not found=%d, errors=%d)",
        resolver.lookups,
        counts[ResolutionStatus.RESOLVED],
        counts[ResolutionStatus.NOT_FOUND],
        counts[ResolutionStatus.ERROR],
    )

    try:
        out = write_json(Path(args.output_dir) / timestamped_name("planner_tasks", "json"), records)
    except OSError as exc:
        LOGGER.error("Failed to write export: %s", exc)
        return 1

    LOGGER.info("Exported %d task(s) to %s", len(records), out)
    return 0


if __name__ == "__main__":
    sys.exit(main())
