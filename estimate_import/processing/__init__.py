"""Normalization of parsed documents into the shared estimate model."""
from estimate_import.processing.assembler import NormalizedEstimate, assemble

__all__ = ["NormalizedEstimate", "assemble"]
