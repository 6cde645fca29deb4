from __future__ import annotations

import json
import logging
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import config
from models.analysis import AnalysisResult
from models.query import AnalysisQuery

logger = logging.getLogger("weatherish.exporter")


def _default_filename() -> str:
    return f"weatherish-data-{int(time.time() * 1000)}.json"


def build_export_payload(
    query: AnalysisQuery,
    result: AnalysisResult,
    timestamp: datetime | None = None,
) -> dict[str, Any]:
    """Query metadata plus the analysis result, in the dashboard's download format."""
    ts = timestamp or datetime.now(timezone.utc)
    location = query.location
    return {
        "query": {
            "location": {"lat": location.lat, "lon": location.lon, "name": location.name},
            "date": query.target_date.isoformat(),
            "parameters": list(result.requested),
            "thresholds": {name: query.threshold_for(name) for name in result.requested},
            "windowDays": query.window_days,
        },
        "data": result.to_dict(),
        "metadata": {
            "data_source": config.DATA_SOURCE_NAME,
            "source_url": config.POWER_SOURCE_URL,
            "query_date": ts.isoformat(),
            "years_analyzed": query.years_analyzed,
        },
    }


def export_to_file(
    query: AnalysisQuery,
    result: AnalysisResult,
    path: Path | str | None = None,
) -> Path | None:
    """
    Write the export payload as pretty-printed JSON.

    *path* may be a file or an existing directory; defaults to
    config.EXPORT_DIR/weatherish-data-<epoch ms>.json.  Returns the written
    path, or None if the file could not be written.
    """
    if path is None:
        filepath = Path(config.EXPORT_DIR) / _default_filename()
    else:
        filepath = Path(path)
        if filepath.is_dir():
            filepath = filepath / _default_filename()

    payload = build_export_payload(query, result)
    try:
        filepath.parent.mkdir(parents=True, exist_ok=True)
        with open(filepath, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2, ensure_ascii=False, default=str)
    except OSError as exc:
        logger.error("Failed to write export to %s: %s", filepath, exc)
        return None

    logger.info("Exported analysis to %s", filepath)
    return filepath
