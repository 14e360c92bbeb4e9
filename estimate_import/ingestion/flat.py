"""Format adapter for EMS pipe-delimited estimate documents."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple, Union

from estimate_import.core.errors import MalformedDocumentError
from estimate_import.ingestion.tracker import UnknownElementTracker
from estimate_import.ingestion.vendors import FLAT_RECORD_LAYOUTS

logger = logging.getLogger(__name__)

DELIMITER = "|"
ESCAPE = "\\"

Record = Tuple[str, ...]


@dataclass(frozen=True)
class FlatDocument:
    """EMS records grouped by upper-cased type code, in file order.

    Each record holds the fields that follow its type code.
    """

    records: Mapping[str, Tuple[Record, ...]] = field(default_factory=lambda: MappingProxyType({}))
    line_count: int = 0

    def first(self, record_type: str) -> Optional[Record]:
        found = self.records.get(record_type, ())
        return found[0] if found else None

    def all(self, record_type: str) -> Tuple[Record, ...]:
        return self.records.get(record_type, ())


def split_line(line: str) -> List[str]:
    """Split one EMS line on ``|``, honouring ``\\|`` escapes.

    Trailing empty fields are kept so positional layouts stay aligned.
    """

    fields: List[str] = []
    current: List[str] = []
    chars = iter(line)
    for char in chars:
        if char == ESCAPE:
            following = next(chars, "")
            current.append(following if following in (DELIMITER, ESCAPE) else char + following)
        elif char == DELIMITER:
            fields.append("".join(current).strip())
            current = []
        else:
            current.append(char)
    fields.append("".join(current).strip())
    return fields


def _has_delimiter(line: str) -> bool:
    escaped = False
    for char in line:
        if escaped:
            escaped = False
        elif char == ESCAPE:
            escaped = True
        elif char == DELIMITER:
            return True
    return False


def _decode(raw: Union[str, bytes, bytearray]) -> str:
    if isinstance(raw, (bytes, bytearray)):
        try:
            return bytes(raw).decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise MalformedDocumentError("EMS document is not valid UTF-8", cause=exc) from exc
    return raw.lstrip("\ufeff")


def parse(
    raw: Union[str, bytes, bytearray, None],
    tracker: Optional[UnknownElementTracker] = None,
) -> FlatDocument:
    """Tokenize EMS text into a :class:`FlatDocument`.

    Empty or whitespace-only text yields an empty document. ``None``,
    undecodable bytes, and text where no line tokenizes raise
    :class:`MalformedDocumentError`.
    """

    if raw is None:
        raise MalformedDocumentError("EMS document is missing")

    text = _decode(raw)
    tracker = tracker if tracker is not None else UnknownElementTracker()

    lines = [line.strip() for line in text.splitlines() if line.strip()]
    if not lines:
        return FlatDocument()

    grouped: Dict[str, List[Record]] = {}
    tokenized = 0
    for line in lines:
        if not _has_delimiter(line):
            tracker.track(f"untokenized_line:{line}")
            continue

        fields = split_line(line)
        record_type = fields[0].upper()
        if not record_type:
            tracker.track(f"untokenized_line:{line}")
            continue
        tokenized += 1

        values = tuple(fields[1:])
        layout = FLAT_RECORD_LAYOUTS.get(record_type)
        if layout is not None and len(values) < layout.min_fields:
            logger.debug("Skipping short %s record: %s", record_type, line)
            tracker.track(f"short_record:{record_type}:{line}")
            continue
        grouped.setdefault(record_type, []).append(values)

    if not tokenized:
        raise MalformedDocumentError("EMS document contains no delimited records")

    records = MappingProxyType({key: tuple(value) for key, value in grouped.items()})
    return FlatDocument(records=records, line_count=len(lines))
