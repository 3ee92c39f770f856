import logging
from collections import Counter
from datetime import UTC, datetime, timedelta
from typing import Any

import pandas as pd

from graph_reports.graph_client import GRAPH_BASE_URL, fetch_all_pages

LOGGER = logging.getLogger(__name__)

SUCCESS = "Success"
FAILURE = "Failure"

_SIGNINS_URL = f"{GRAPH_BASE_URL}/auditLogs/signIns"


def build_signin_filter(days: int, now: datetime | None = None) -> str:
    if days < 1:
        raise ValueError(f"Lookback window must be at least one day, got {days}")
    current = now or datetime.now(UTC)
    since = current.astimezone(UTC) - timedelta(days=days)
    return f"createdDateTime ge {since.strftime('%Y-%m-%dT%H:%M:%SZ')}"


def fetch_signins(
    headers: dict[str, str],
    days: int,
    delay_seconds: float = 0.0,
    top: int = 999,
) -> list[dict[str, Any]]:
    params = {
        "$filter": build_signin_filter(days),
        "$top": top,
    }
    LOGGER.info("Fetching sign-in logs for the last %d day(s)", days)
    return fetch_all_pages(_SIGNINS_URL, headers, params=params, delay_seconds=delay_seconds)


def flatten_signin(record: dict[str, Any]) -> dict[str, Any]:
    status = record.get("status") or {}
    location = record.get("location") or {}
    device = record.get("deviceDetail") or {}
    created = str(record.get("createdDateTime") or "")
    error_code = status.get("errorCode")

    return {
        "id": record.get("id"),
        "createdDateTime": created,
        "date": created[:10],
        "userDisplayName": record.get("userDisplayName"),
        "userPrincipalName": record.get("userPrincipalName"),
        "appDisplayName": record.get("appDisplayName"),
        "ipAddress": record.get("ipAddress"),
        "clientAppUsed": record.get("clientAppUsed"),
        "isInteractive": record.get("isInteractive"),
        "conditionalAccessStatus": record.get("conditionalAccessStatus"),
        "result": SUCCESS if error_code == 0 else FAILURE,
        "errorCode": error_code,
        "failureReason": status.get("failureReason"),
        "city": location.get("city"),
        "countryOrRegion": location.get("countryOrRegion"),
        "operatingSystem": device.get("operatingSystem"),
        "browser": device.get("browser"),
    }


def aggregate_daily(rows: list[dict[str, Any]]) -> dict[str, list[Any]]:
    """Count successful and failed sign-ins per day for charting."""
    counts: Counter[tuple[str, str]] = Counter()
    dates: set[str] = set()
    for row in rows:
        date = row.get("date")
        if not date:
            continue
        dates.add(date)
        counts[(date, row.get("result", FAILURE))] += 1

    labels = sorted(dates)
    return {
        "labels": labels,
        "success": [counts[(date, SUCCESS)] for date in labels],
        "failure": [counts[(date, FAILURE)] for date in labels],
    }


def build_pivot(series: dict[str, list[Any]]) -> pd.DataFrame:
    """Tabulate the daily series from aggregate_daily for the summary sheet."""
    pivot = pd.DataFrame(
        {SUCCESS: series["success"], FAILURE: series["failure"]},
        index=pd.Index(series["labels"], name="date"),
        dtype="int64",
    )
    pivot["Total"] = pivot[SUCCESS] + pivot[FAILURE]
    return pivot
