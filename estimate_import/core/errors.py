"""Errors raised by the estimate parsers.

Only two failure kinds ever leave a parse call. Every other anomaly is
absorbed into defaults and reported through ``meta.unknown_tags``.
"""
from __future__ import annotations

from typing import Optional


class EstimateParsingError(Exception):
    """Base exception for estimate parsing failures."""

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.cause = cause


class EmptyInputError(EstimateParsingError):
    """Raised when a markup document has no content at all."""


class MalformedDocumentError(EstimateParsingError):
    """Raised when content cannot be tokenized into the expected structure."""
