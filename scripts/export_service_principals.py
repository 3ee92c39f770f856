import argparse
import logging
import sys
from pathlib import Path

import requests

from graph_reports import configure_logging
from graph_reports.auth import AuthConfigError, build_headers, get_access_token
from graph_reports.graph_client import GraphClientError
from graph_reports.output import timestamped_name, write_json, write_yaml_documents
from graph_reports.service_principals import (
    fetch_service_principals,
    flatten_service_principal,
)

LOGGER = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Export service principal configuration to JSON or per-principal YAML files.",
    )
    parser.add_argument(
        "--format",
        choices=["json", "yaml"],
        default="json",
        help="Output format (default: json).",
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
        help="Folder for the export (default: exports)",
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
        principals = fetch_service_principals(headers, delay_seconds=args.delay_seconds)
    except (AuthConfigError, GraphClientError, RuntimeError, requests.RequestException) as exc:
        LOGGER.error("Could not fetch service principals: %s", exc)
        return 1

    records = [flatten_service_principal(principal) for principal in principals]
    with_expired = sum(1 for record in records if record["expiredCredentialCount"])
    LOGGER.info("%d service principal(s) carry expired credentials", with_expired)

    output_dir = Path(args.output_dir)
    try:
        if args.format == "yaml":
            written = write_yaml_documents(records, output_dir / "service_principals")
            LOGGER.info("Exported %d service principal(s) as YAML", len(written))
        else:
            out = write_json(output_dir / timestamped_name("service_principals", "json"), records)
            LOGGER.info("Exported %d service principal(s) to %s", len(records), out)
    except OSError as exc:
        LOGGER.error("Failed to write export: %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
