"""Core building blocks: result models, errors, settings and logging."""
from estimate_import.core.config import ParserSettings, load_settings
from estimate_import.core.errors import EmptyInputError, EstimateParsingError, MalformedDocumentError
from estimate_import.core.logging import configure_logging
from estimate_import.core.models import (
    Customer,
    EstimateLine,
    Identities,
    ParseMeta,
    ParseResult,
    Totals,
    Vehicle,
)

__all__ = [
    "Customer",
    "EmptyInputError",
    "EstimateLine",
    "EstimateParsingError",
    "Identities",
    "MalformedDocumentError",
    "ParseMeta",
    "ParseResult",
    "ParserSettings",
    "Totals",
    "Vehicle",
    "configure_logging",
    "load_settings",
]
