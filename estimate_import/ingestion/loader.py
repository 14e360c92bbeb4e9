"""Batch loader that parses every estimate file under a directory."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

from estimate_import.core.config import ParserSettings
from estimate_import.core.errors import EstimateParsingError
from estimate_import.core.models import ParseResult
from estimate_import.ingestion.vendors import BMS, EMS
from estimate_import.parsers import BMSParser, EMSParser

logger = logging.getLogger(__name__)

FILE_FORMATS = {
    ".xml": BMS,
    ".bms": BMS,
    ".ems": EMS,
    ".txt": EMS,
}


@dataclass(frozen=True)
class LoadedEstimate:
    """A parsed estimate together with the file it came from."""

    path: Path
    result: ParseResult

    @property
    def source_name(self) -> str:
        return self.path.name


def estimate_files(data_dir: Path) -> List[Path]:
    """Return supported estimate files in ``data_dir``, sorted by name."""

    if not data_dir.is_dir():
        return []
    return sorted(path for path in data_dir.iterdir() if path.is_file() and path.suffix.lower() in FILE_FORMATS)


def load_estimates(
    data_dir: Path, settings: Optional[ParserSettings] = None
) -> Tuple[List[LoadedEstimate], List[str]]:
    """Parse all supported files under ``data_dir``.

    Files that fail to parse are logged and reported as alerts; the batch
    carries on with the remaining files.
    """

    parsers = {BMS: BMSParser(settings=settings), EMS: EMSParser(settings=settings)}
    estimates: List[LoadedEstimate] = []
    alerts: List[str] = []

    logger.info("Loading estimates from %s", data_dir)

    for path in estimate_files(data_dir):
        fmt = FILE_FORMATS[path.suffix.lower()]
        try:
            result = parsers[fmt].parse(path.read_bytes())
        except (EstimateParsingError, OSError):
            logger.exception("Failed to parse %s estimate %s", fmt, path)
            alerts.append(f"Failed to parse {fmt} estimate {path.name}")
            continue
        estimates.append(LoadedEstimate(path=path, result=result))

    logger.info("Loaded %d estimates", len(estimates))
    return estimates, alerts
