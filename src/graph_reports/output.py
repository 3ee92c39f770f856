import html
import json
import logging
import re
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import pandas as pd
import yaml

LOGGER = logging.getLogger(__name__)

_INVALID_FILENAME_CHARS = re.compile(r"[\\/:*?\"<>|]")
_CHART_JS_URL = "https://cdn.jsdelivr.net/npm/chart.js@4"

_CHART_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>{title}</title>
<script src="{chart_js_url}"></script>
<style>
body {{ font-family: Segoe UI, Arial, sans-serif; margin: 2rem; }}
.chart-container {{ max-width: 1100px; }}
</style>
</head>
<body>
<h1>{title}</h1>
<p>Generated {generated}</p>
<div class="chart-container"><canvas id="reportChart"></canvas></div>
<script>
const series = {series_json};
new Chart(document.getElementById('reportChart').getContext('2d'), {{
    type: 'bar',
    data: {{
        labels: series.labels,
        datasets: [
            {{ label: 'Success', data: series.success, backgroundColor: '#28a745' }},
            {{ label: 'Failure', data: series.failure, backgroundColor: '#dc3545' }}
        ]
    }},
    options: {{
        responsive: true,
        scales: {{ x: {{ stacked: true }}, y: {{ stacked: true, beginAtZero: true }} }}
    }}
}});
</script>
</body>
</html>
"""


def sanitize_filename(value: str) -> str:
    sanitized = _INVALID_FILENAME_CHARS.sub("_", value).strip()
    sanitized = re.sub(r"\s+", "_", sanitized)
    sanitized = re.sub(r"_+", "_", sanitized)
    return sanitized or "unnamed"


def dedupe_path(path: Path) -> Path:
    if not path.exists():
        return path

    index = 2
    while True:
        candidate = path.parent / f"{path.stem}_{index}{path.suffix}"
        if not candidate.exists():
            return candidate
        index += 1


def timestamped_name(prefix: str, suffix: str, now: datetime | None = None) -> str:
    stamp = (now or datetime.now(UTC)).strftime("%Y%m%dT%H%M%SZ")
    return f"{prefix}_{stamp}.{suffix}"


def write_json(path: Path | str, payload: Any) -> Path:
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    with out.open("w", encoding="utf-8") as handle:
        json.dump(payload, handle, indent=2, ensure_ascii=False)
        handle.write("\n")
    LOGGER.info("Wrote JSON export: %s", out)
    return out


def write_yaml_documents(
    records: list[dict[str, Any]],
    output_dir: Path | str,
    name_key: str = "displayName",
) -> list[Path]:
    """Write one YAML file per record, named after the record's name field."""
    target_dir = Path(output_dir)
    target_dir.mkdir(parents=True, exist_ok=True)

    written: list[Path] = []
    for idx, record in enumerate(records, start=1):
        raw_name = str(record.get(name_key) or record.get("id") or f"item_{idx:03d}")
        file_path = dedupe_path(target_dir / f"{sanitize_filename(raw_name)}.yaml")
        with file_path.open("w", encoding="utf-8") as handle:
            yaml.safe_dump(
                record,
                handle,
                sort_keys=True,
                indent=2,
                default_flow_style=False,
                allow_unicode=True,
            )
        written.append(file_path)

    LOGGER.info("Wrote %d YAML file(s) under %s", len(written), target_dir)
    return written


def write_excel_report(
    path: Path | str,
    frame: pd.DataFrame,
    pivot: pd.DataFrame,
    data_sheet: str = "Data",
    pivot_sheet: str = "Summary",
) -> Path:
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    with pd.ExcelWriter(out, engine="openpyxl") as writer:
        frame.to_excel(writer, index=False, sheet_name=data_sheet)
        pivot.to_excel(writer, sheet_name=pivot_sheet)
    LOGGER.info("Wrote Excel report: %s (%d row(s))", out, len(frame))
    return out


def render_chart_html(
    title: str,
    series: dict[str, list[Any]],
    generated: datetime | None = None,
) -> str:
    # "</" inside an inline script would end it early.
    series_json = json.dumps(series).replace("</", "<\\/")
    return _CHART_TEMPLATE.format(
        title=html.escape(title),
        chart_js_url=_CHART_JS_URL,
        generated=(generated or datetime.now(UTC)).strftime("%Y-%m-%d %H:%M UTC"),
        series_json=series_json,
    )


def write_chart_html(path: Path | str, title: str, series: dict[str, list[Any]]) -> Path:
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(render_chart_html(title, series), encoding="utf-8")
    LOGGER.info("Wrote HTML chart: %s", out)
    return out
