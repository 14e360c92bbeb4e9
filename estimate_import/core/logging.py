"""Logging setup shared by the CLI and batch pipeline."""
from __future__ import annotations

import logging
import os

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Initialize root logging for estimate imports.

    The level comes from ``level`` or the ``LOG_LEVEL`` environment variable
    and defaults to ``INFO``. Unrecognised level names fall back to ``INFO``
    rather than aborting the run.
    """

    resolved_level = (level or os.getenv("LOG_LEVEL", "INFO")).strip().upper()
    if not isinstance(logging.getLevelName(resolved_level), int):
        resolved_level = "INFO"
    logging.basicConfig(level=resolved_level, format=LOG_FORMAT)
