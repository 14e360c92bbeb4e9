"""Normalization rules shared by the BMS and EMS record normalizers."""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from estimate_import.core.models import (
    LINE_LABOR,
    LINE_OTHER_CHARGE,
    LINE_PART,
    ORGANIZATION,
    PERSON,
    Address,
    Customer,
    EstimateLine,
    LaborInfo,
    LineDetail,
    OtherChargesInfo,
    Part,
    PartInfo,
    Totals,
    empty_detail,
)
from estimate_import.ingestion.extractors import extract_bool, extract_text
from estimate_import.ingestion.tracker import UnknownElementTracker
from estimate_import.ingestion.vendors import LINE_TYPE_ALIASES, TOTAL_TYPE_KEYWORDS

logger = logging.getLogger(__name__)

MILES_PER_KM = Decimal("0.621371")

# Precedence used when a line's own type word does not decide the detail.
DETAIL_PRECEDENCE = (LINE_PART, LINE_LABOR, LINE_OTHER_CHARGE)

_KIND_BY_DETAIL = {PartInfo: LINE_PART, LaborInfo: LINE_LABOR, OtherChargesInfo: LINE_OTHER_CHARGE}
_SUMMED_TOTALS = ("parts_total", "labor_total", "materials_total", "tax_total")


@dataclass(frozen=True)
class RawLine:
    """A line header as read from the document, before linkage."""

    line_number: Optional[int]
    description: str = ""
    raw_type: str = ""


@dataclass(frozen=True)
class RawDetail:
    """A detail record waiting to be attached to its line."""

    line_number: Optional[int]
    detail: LineDetail

    @property
    def kind(self) -> str:
        return _KIND_BY_DETAIL[type(self.detail)]


def parse_flag(raw: Any) -> Optional[bool]:
    """Return the boolean value of an indicator, or ``None`` when absent."""

    if not extract_text(raw).strip():
        return None
    return extract_bool(raw)


def classify_customer(
    first_name: str = "",
    last_name: str = "",
    company_name: str = "",
    gst_exempt: Optional[bool] = None,
    email: str = "",
    phone: str = "",
    address: Optional[Address] = None,
) -> Customer:
    """Build a :class:`Customer`, inferring person/organization and GST status.

    A non-empty company makes the party an organization that pays GST. Persons
    default to not paying GST. An explicit exemption flag overrides both.
    """

    first_name = first_name.strip()
    last_name = last_name.strip()
    company = company_name.strip()

    if company:
        customer_type = ORGANIZATION
        gst_payable = True
        first_name = first_name or "Business"
        last_name = last_name or company
    else:
        customer_type = PERSON
        gst_payable = False
        if not first_name and not last_name:
            first_name, last_name = "Unknown", "Customer"

    if gst_exempt is not None:
        gst_payable = not gst_exempt

    return Customer(
        first_name=first_name,
        last_name=last_name,
        company_name=company or None,
        type=customer_type,
        email=email.strip(),
        phone=phone.strip(),
        address=address or Address(),
        gst_payable=gst_payable,
    )


def resolve_line_type(raw_type: str, present_kinds: Sequence[str], tracker: UnknownElementTracker) -> str:
    """Map a vendor line type word to ``part``, ``labor`` or ``other_charge``.

    Unmapped words fall back to the kind of detail record present and are
    tracked as ``line_type:<raw>``.
    """

    word = raw_type.strip()
    canonical = LINE_TYPE_ALIASES.get(word.lower()) if word else None
    if canonical is not None:
        return canonical
    if word:
        tracker.track(f"line_type:{word}")
    for kind in DETAIL_PRECEDENCE:
        if kind in present_kinds:
            return kind
    return LINE_OTHER_CHARGE


def _number_lines(raw_lines: Sequence[RawLine], tracker: UnknownElementTracker) -> List[Tuple[int, RawLine]]:
    highest = max((line.line_number for line in raw_lines if line.line_number is not None), default=0)
    numbered: List[Tuple[int, RawLine]] = []
    seen = set()
    for line in raw_lines:
        number = line.line_number
        if number is None:
            highest += 1
            number = highest
            logger.debug("Assigned line number %s to unnumbered line %r", number, line.description)
        if number in seen:
            tracker.track(f"duplicate_line:{number}")
            continue
        seen.add(number)
        numbered.append((number, line))
    return numbered


def link_lines(
    raw_lines: Sequence[RawLine],
    details: Iterable[RawDetail],
    tracker: UnknownElementTracker,
) -> Tuple[EstimateLine, ...]:
    """Attach detail records to lines by shared line number.

    Lines keep the order they were read in. A line without any
    detail keeps a zero-valued payload and ``linked=False``; extra details on
    one line are tracked as ``secondary_detail`` and details with no line as
    ``orphan_detail``.
    """

    numbered = _number_lines(raw_lines, tracker)
    known_numbers = {number for number, _ in numbered}

    by_line: Dict[int, List[RawDetail]] = {}
    for detail in details:
        if detail.line_number not in known_numbers:
            label = "?" if detail.line_number is None else detail.line_number
            tracker.track(f"orphan_detail:{detail.kind}:{label}")
            continue
        by_line.setdefault(detail.line_number, []).append(detail)

    lines: List[EstimateLine] = []
    for number, raw in numbered:
        candidates = by_line.get(number, [])
        line_type = resolve_line_type(raw.raw_type, [item.kind for item in candidates], tracker)

        chosen: Optional[RawDetail] = next((item for item in candidates if item.kind == line_type), None)
        for item in candidates:
            if item is not chosen:
                tracker.track(f"secondary_detail:{number}:{item.kind}")

        if chosen is None:
            lines.append(
                EstimateLine(number, raw.description, line_type, empty_detail(line_type), linked=False)
            )
        else:
            lines.append(EstimateLine(number, raw.description, line_type, chosen.detail))
    return tuple(lines)


def derive_parts(lines: Iterable[EstimateLine]) -> Tuple[Part, ...]:
    """Return one :class:`Part` for every part line."""

    parts = []
    for line in lines:
        info = line.part_info
        if info is None:
            continue
        parts.append(
            Part(
                line_number=line.line_number,
                description=line.description,
                part_number=info.part_number,
                oem_part_number=info.oem_part_number,
                price=info.price,
                quantity=info.quantity,
                part_type=info.part_type,
                source_code=info.source_code,
                taxable=info.taxable,
            )
        )
    return tuple(parts)


def resolve_total_field(total_type: str, subtype: str = "") -> Optional[str]:
    """Map a total type (and optional subtype) to a :class:`Totals` field."""

    total_type = total_type.strip().lower()
    subtype = subtype.strip().lower()
    if subtype:
        field_name = TOTAL_TYPE_KEYWORDS.get(f"{total_type}:{subtype}")
        if field_name is not None:
            return field_name
    return TOTAL_TYPE_KEYWORDS.get(total_type)


def build_totals(entries: Iterable[Tuple[str, Decimal]]) -> Totals:
    """Fold ``(field, amount)`` pairs into :class:`Totals`.

    Category totals are summed; gross and net keep the last declared value.
    """

    values: Dict[str, Decimal] = {}
    for field_name, amount in entries:
        if field_name in _SUMMED_TOTALS and field_name in values:
            values[field_name] = values[field_name] + amount
        else:
            values[field_name] = amount
    return replace(Totals(), **values)


def convert_odometer(reading: int, from_unit: str, to_unit: str) -> int:
    """Convert an odometer reading between ``miles`` and ``km``."""

    from_unit = normalize_unit(from_unit) or to_unit
    if reading <= 0 or from_unit == to_unit:
        return max(reading, 0)
    converted = Decimal(reading) * MILES_PER_KM if to_unit == "miles" else Decimal(reading) / MILES_PER_KM
    return int(converted.to_integral_value(rounding=ROUND_HALF_UP))


def normalize_unit(raw: str) -> str:
    """Return ``miles`` or ``km`` for common unit spellings, else ``""``."""

    word = raw.strip().lower().rstrip(".")
    if word in {"mi", "mile", "miles", "m"}:
        return "miles"
    if word in {"km", "kms", "kilometer", "kilometers", "kilometre", "kilometres", "k"}:
        return "km"
    return ""

