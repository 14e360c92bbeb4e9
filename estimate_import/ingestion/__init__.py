"""Readers that turn raw estimate bytes into document trees and records."""
from estimate_import.ingestion.flat import FlatDocument
from estimate_import.ingestion.markup import MarkupDocument
from estimate_import.ingestion.tracker import UnknownElementTracker
from estimate_import.ingestion.vendors import BMS, EMS, resolve_source_system

__all__ = [
    "BMS",
    "EMS",
    "FlatDocument",
    "MarkupDocument",
    "UnknownElementTracker",
    "resolve_source_system",
]
