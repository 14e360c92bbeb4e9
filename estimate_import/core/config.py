"""Environment-driven settings for the estimate parsers."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

UNKNOWN_VEHICLE_YEAR = 0
ODOMETER_UNITS = ("miles", "km")

_TRUE_WORDS = {"1", "true", "yes", "y", "on"}
_FALSE_WORDS = {"0", "false", "no", "n", "off"}


def load_env_file(path: Path) -> int:
    """Export KEY=value pairs from ``path`` without overriding the environment.

    Returns the number of variables set. A missing file is not an error.
    """

    if not path.is_file():
        return 0

    loaded = 0
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        logger.warning("Could not read env file %s: %s", path, exc)
        return 0
    for line in text.splitlines():
        line = line.strip()
        if line.startswith("export "):
            line = line[len("export ") :]
        key, sep, value = line.partition("=")
        key = key.strip()
        if not sep or not key or key.startswith("#") or key in os.environ:
            continue
        os.environ[key] = value.strip().strip("\"'")
        loaded += 1
    logger.debug("Loaded %d variables from %s", loaded, path)
    return loaded


@dataclass(frozen=True)
class ParserSettings:
    """Defaults applied when a document is silent on a field."""

    unknown_vehicle_year: int = UNKNOWN_VEHICLE_YEAR
    odometer_unit: str = "miles"
    default_drivable: bool = True


def load_settings(env_file: Optional[Path] = None) -> ParserSettings:
    """Build settings from ``ESTIMATE_*`` environment variables.

    When ``env_file`` is given it is loaded first; variables already present
    in the environment win. Unparseable values fall back to the defaults.
    """

    if env_file is not None:
        load_env_file(env_file)

    defaults = ParserSettings()

    raw_year = os.getenv("ESTIMATE_UNKNOWN_VEHICLE_YEAR", str(defaults.unknown_vehicle_year))
    try:
        year = int(raw_year)
    except ValueError:
        logger.warning("Ignoring invalid ESTIMATE_UNKNOWN_VEHICLE_YEAR=%r", raw_year)
        year = defaults.unknown_vehicle_year

    unit = os.getenv("ESTIMATE_ODOMETER_UNIT", defaults.odometer_unit).strip().lower()
    if unit not in ODOMETER_UNITS:
        logger.warning("Ignoring invalid ESTIMATE_ODOMETER_UNIT=%r", unit)
        unit = defaults.odometer_unit

    raw_drivable = os.getenv("ESTIMATE_DEFAULT_DRIVABLE", "true").strip().lower()
    if raw_drivable in _TRUE_WORDS:
        drivable = True
    elif raw_drivable in _FALSE_WORDS:
        drivable = False
    else:
        logger.warning("Ignoring invalid ESTIMATE_DEFAULT_DRIVABLE=%r", raw_drivable)
        drivable = defaults.default_drivable

    return ParserSettings(unknown_vehicle_year=year, odometer_unit=unit, default_drivable=drivable)
