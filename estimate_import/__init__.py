"""Parse BMS and EMS collision-repair estimates into one normalized model."""
from estimate_import.core import (
    EmptyInputError,
    EstimateParsingError,
    MalformedDocumentError,
    ParseResult,
    ParserSettings,
    configure_logging,
    load_settings,
)
from estimate_import.parsers import (
    BMSParser,
    EMSParser,
    detect_format,
    parse_document,
    parse_flat_document,
    parse_markup_document,
)
from estimate_import.ingestion.loader import LoadedEstimate, load_estimates
from estimate_import.pipeline import run_pipeline
from estimate_import.quality import review_estimates, validate_result

__all__ = [
    "BMSParser",
    "EMSParser",
    "EmptyInputError",
    "EstimateParsingError",
    "LoadedEstimate",
    "MalformedDocumentError",
    "ParseResult",
    "ParserSettings",
    "configure_logging",
    "detect_format",
    "load_estimates",
    "load_settings",
    "parse_document",
    "parse_flat_document",
    "parse_markup_document",
    "review_estimates",
    "run_pipeline",
    "validate_result",
]
