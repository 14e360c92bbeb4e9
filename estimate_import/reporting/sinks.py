"""Sinks for exporting estimate rows to CSV and Excel."""
from __future__ import annotations

import csv
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List

from openpyxl import Workbook

from estimate_import.reporting.templates import LINE_HEADERS

logger = logging.getLogger(__name__)


def ensure_output_dir(output_path: Path) -> None:
    """Create parent folders for sink outputs when missing."""

    output_path.parent.mkdir(parents=True, exist_ok=True)


def write_csv(rows: Iterable[Dict[str, Any]], output_path: Path) -> None:
    """Write estimate rows to a CSV file with consistent headers."""

    rows = list(rows)
    ensure_output_dir(output_path)
    if not rows:
        return

    with output_path.open("w", newline="", encoding="utf-8") as csvfile:
        writer = csv.DictWriter(csvfile, fieldnames=LINE_HEADERS)
        writer.writeheader()
        writer.writerows(rows)


def write_excel(rows: Iterable[Dict[str, Any]], output_path: Path) -> None:
    """Write estimate rows to an Excel workbook using openpyxl."""

    rows = list(rows)
    if not rows:
        return

    ensure_output_dir(output_path)
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = "estimate_lines"
    headers: List[str] = list(LINE_HEADERS)
    sheet.append(headers)
    for row in rows:
        sheet.append([row.get(header, "") for header in headers])
    workbook.save(output_path)
    logger.debug("Saved %d rows to workbook %s", len(rows), output_path)
