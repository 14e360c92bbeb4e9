"""Public entry points for parsing BMS and EMS estimate documents."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional, Union

from estimate_import.core.config import ParserSettings
from estimate_import.core.models import ParseResult
from estimate_import.ingestion import flat, markup
from estimate_import.ingestion.tracker import UnknownElementTracker
from estimate_import.ingestion.vendors import BMS, EMS
from estimate_import.processing import bms, ems
from estimate_import.processing.assembler import assemble

logger = logging.getLogger(__name__)

RawDocument = Union[str, bytes, bytearray, None]
Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class _EstimateParser:
    """Shared wiring for the format-specific parsers.

    Each ``parse`` call builds its own tracker, so one parser can be reused
    across documents. The tags of the latest call, including one that raised,
    are kept on the instance for :meth:`get_unknown_tags`; callers sharing a
    parser between threads should read ``result.meta.unknown_tags`` instead.
    """

    source_format = ""

    def __init__(self, settings: Optional[ParserSettings] = None, clock: Optional[Clock] = None) -> None:
        self.settings = settings or ParserSettings()
        self.clock = clock or utc_now
        self._last_unknown_tags: List[str] = []

    def parse(self, raw: RawDocument) -> ParseResult:
        tracker = UnknownElementTracker()
        try:
            result = self._parse(raw, tracker)
        finally:
            self._last_unknown_tags = tracker.as_list()
        logger.info(
            "Parsed %s document %s (%s) with %d line(s)",
            self.source_format,
            result.identities.document_number or "<no id>",
            result.meta.document_type,
            len(result.lines),
        )
        return result

    def get_unknown_tags(self) -> List[str]:
        """Return the unknown elements recorded by the most recent parse."""

        return list(self._last_unknown_tags)

    def _parse(self, raw: RawDocument, tracker: UnknownElementTracker) -> ParseResult:
        raise NotImplementedError


class BMSParser(_EstimateParser):
    """Parser for BMS (XML markup) estimates.

    Raises ``EmptyInputError`` for blank input and ``MalformedDocumentError``
    for text that is not well-formed XML.
    """

    source_format = BMS

    def _parse(self, raw: RawDocument, tracker: UnknownElementTracker) -> ParseResult:
        document = markup.parse(raw, tracker)
        logger.info("Detected BMS variant %s (root %s)", document.document_type, document.root_name)
        normalized = bms.normalize(document, tracker, self.settings)
        return assemble(normalized, tracker, self.clock())


class EMSParser(_EstimateParser):
    """Parser for EMS (pipe-delimited) estimates.

    Empty text yields a fully defaulted result. ``None``, undecodable bytes
    and text with no delimited records raise ``MalformedDocumentError``.
    """

    source_format = EMS

    def _parse(self, raw: RawDocument, tracker: UnknownElementTracker) -> ParseResult:
        document = flat.parse(raw, tracker)
        logger.info("Tokenized %d EMS line(s) into %d record type(s)", document.line_count, len(document.records))
        normalized = ems.normalize(document, tracker, self.settings)
        return assemble(normalized, tracker, self.clock())


def parse_markup_document(raw: RawDocument, settings: Optional[ParserSettings] = None) -> ParseResult:
    """Parse a BMS document with a fresh parser."""

    return BMSParser(settings=settings).parse(raw)


def parse_flat_document(raw: RawDocument, settings: Optional[ParserSettings] = None) -> ParseResult:
    """Parse an EMS document with a fresh parser."""

    return EMSParser(settings=settings).parse(raw)


def detect_format(raw: RawDocument) -> str:
    """Guess the format from content: markup starts with ``<``."""

    if raw is None:
        return EMS
    if isinstance(raw, (bytes, bytearray)):
        head = bytes(raw).lstrip(b"\xef\xbb\xbf \t\r\n")
        return BMS if head.startswith(b"<") else EMS
    return BMS if raw.lstrip("\ufeff \t\r\n").startswith("<") else EMS


def parse_document(
    raw: RawDocument,
    fmt: Optional[str] = None,
    settings: Optional[ParserSettings] = None,
) -> ParseResult:
    """Parse a document in ``fmt`` (``"BMS"``/``"EMS"``), detecting it when omitted."""

    resolved = (fmt or detect_format(raw)).upper()
    if resolved == BMS:
        return parse_markup_document(raw, settings)
    if resolved == EMS:
        return parse_flat_document(raw, settings)
    raise ValueError(f"Unsupported estimate format: {fmt}")
