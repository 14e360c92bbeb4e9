"""Pipeline orchestration: load estimates, review them and export rows."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from estimate_import.core.config import ParserSettings
from estimate_import.ingestion.loader import load_estimates
from estimate_import.quality import review_estimates
from estimate_import.reporting.sinks import write_csv, write_excel
from estimate_import.reporting.templates import estimates_to_rows

logger = logging.getLogger(__name__)

SINKS = ("csv", "excel")


def run_pipeline(
    data_dir: Path,
    output_path: Path,
    sink: str = "csv",
    excel_path: Optional[Path] = None,
    settings: Optional[ParserSettings] = None,
) -> Path:
    """Parse estimates, add quality statuses, and emit a CSV of estimate lines."""

    if sink not in SINKS:
        raise ValueError(f"Unsupported sink {sink!r}; expected one of {', '.join(SINKS)}")

    logger.info("Pipeline starting for data dir %s", data_dir)
    loaded, alerts = load_estimates(data_dir, settings=settings)
    for alert in alerts:
        logger.warning("Ingestion alert: %s", alert)
    if not loaded:
        message = (
            f"No estimates found under {data_dir}. "
            "Verify the directory exists and includes .xml, .bms, .ems or .txt files."
        )
        logger.error(message)
        raise ValueError(message)
    logger.info("Loaded %d estimates", len(loaded))

    reviewed = review_estimates(loaded)
    flagged = sum(1 for item in reviewed if item.issues)
    logger.info("Reviewed %d estimates (%d need review)", len(reviewed), flagged)

    rows = estimates_to_rows(reviewed)
    write_csv(rows, output_path)
    logger.info("Wrote CSV output to %s", output_path)

    if sink == "excel":
        excel_target = excel_path or output_path.with_suffix(".xlsx")
        write_excel(rows, excel_target)
        logger.info("Wrote Excel output to %s", excel_target)
    return output_path
