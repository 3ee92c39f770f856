import argparse
import logging
import sys
from pathlib import Path

import pandas as pd
import requests

from graph_reports import configure_logging
from graph_reports.auth import AuthConfigError, build_headers, get_access_token
from graph_reports.graph_client import GraphClientError
from graph_reports.output import timestamped_name, write_chart_html, write_excel_report
from graph_reports.signins import aggregate_daily, build_pivot, fetch_signins, flatten_signin

LOGGER = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Export Entra ID sign-in logs to an Excel workbook and an HTML chart.",
    )
    parser.add_argument(
        "--days",
        type=int,
        default=7,
        help="Lookback window in days (default: 7).",
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
        help="Folder for the generated reports (default: exports)",
    )
    parser.add_argument(
        "--no-html",
        action="store_false",
        dest="html",
        help="Skip the HTML chart page.",
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
        records = fetch_signins(headers, args.days, delay_seconds=args.delay_seconds)
    except (AuthConfigError, GraphClientError, RuntimeError, ValueError, requests.RequestException) as exc:
        LOGGER.error("Could not fetch sign-in logs: %s", exc)
        return 1

    rows = [flatten_signin(record) for record in records]
    frame = pd.DataFrame(rows)
    series = aggregate_daily(rows)
    output_dir = Path(args.output_dir)

    try:
        workbook = write_excel_report(
            output_dir / timestamped_name("signins", "xlsx"),
            frame,
            build_pivot(series),
            data_sheet="SignIns",
            pivot_sheet="DailySummary",
        )
        LOGGER.info("Sign-in workbook: %s", workbook)
        if args.html:
            page = write_chart_html(
                output_dir / timestamped_name("signins", "html"),
                f"Sign-ins over the last {args.days} day(s)",
                series,
            )
            LOGGER.info("Sign-in chart: %s", page)
    except OSError as exc:
        LOGGER.error("Failed to write sign-in reports: %s", exc)
        return 1

    LOGGER.info("Exported %d sign-in record(s)", len(rows))
    return 0


if __name__ == "__main__":
    sys.exit(main())
