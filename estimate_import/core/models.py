"""Vendor-neutral data models produced by the estimate parsers."""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Optional, Tuple, Union

PERSON = "person"
ORGANIZATION = "organization"

LINE_PART = "part"
LINE_LABOR = "labor"
LINE_OTHER_CHARGE = "other_charge"
LINE_TYPES = (LINE_PART, LINE_LABOR, LINE_OTHER_CHARGE)

ZERO = Decimal("0")


@dataclass(frozen=True)
class Identities:
    """Business keys used to match an import against existing jobs."""

    document_number: str = ""
    claim_number: str = ""
    vin: str = ""


@dataclass(frozen=True)
class Address:
    address1: str = ""
    address2: str = ""
    city: str = ""
    state_province: str = ""
    postal_code: str = ""
    country: str = ""

    def is_empty(self) -> bool:
        return not any(asdict(self).values())


@dataclass(frozen=True)
class Customer:
    """Normalized vehicle owner or insured party."""

    first_name: str = "Unknown"
    last_name: str = "Customer"
    company_name: Optional[str] = None
    type: str = PERSON
    email: str = ""
    phone: str = ""
    address: Address = field(default_factory=Address)
    gst_payable: bool = False

    @property
    def display_name(self) -> str:
        if self.type == ORGANIZATION and self.company_name:
            return self.company_name
        return f"{self.first_name} {self.last_name}".strip()


@dataclass(frozen=True)
class Vehicle:
    vin: str = ""
    year: int = 0
    make: str = ""
    model: str = ""
    trim: str = ""
    odometer: int = 0
    odometer_unit: str = "miles"
    drivable: bool = True
    body_style: str = ""
    engine: str = ""
    transmission: str = ""
    fuel_type: str = ""
    exterior_color: str = ""
    interior_color: str = ""
    license_plate: str = ""


@dataclass(frozen=True)
class ClaimInfo:
    """Insurance claim details carried by the estimate header."""

    claim_number: str = ""
    policy_number: str = ""
    insurance_company: str = ""
    deductible: Decimal = ZERO
    loss_date: Optional[date] = None
    adjuster_name: str = ""


@dataclass(frozen=True)
class PartInfo:
    part_number: str = ""
    oem_part_number: str = ""
    price: Decimal = ZERO
    quantity: int = 1
    part_type: str = ""
    source_code: str = ""
    taxable: bool = False


@dataclass(frozen=True)
class LaborInfo:
    operation: str = ""
    hours: Decimal = ZERO
    rate: Decimal = ZERO
    labor_type: str = ""
    paint_stages: Optional[int] = None
    taxable: bool = False


@dataclass(frozen=True)
class OtherChargesInfo:
    price: Decimal = ZERO
    taxable: bool = False
    charge_type: str = ""


LineDetail = Union[PartInfo, LaborInfo, OtherChargesInfo]

_DETAIL_TYPES = {
    LINE_PART: PartInfo,
    LINE_LABOR: LaborInfo,
    LINE_OTHER_CHARGE: OtherChargesInfo,
}


def empty_detail(line_type: str) -> LineDetail:
    """Return the zero-valued payload that matches ``line_type``."""

    return _DETAIL_TYPES[line_type]()


@dataclass(frozen=True)
class EstimateLine:
    """One damage line with exactly one detail payload.

    ``line_type`` is the discriminant and ``detail`` must be an instance of
    the payload class registered for it. ``linked`` is False when the
    document had no detail record for the line and ``detail`` is the
    zero-valued default.
    """

    line_number: int
    description: str
    line_type: str
    detail: LineDetail
    linked: bool = True

    def __post_init__(self) -> None:
        expected = _DETAIL_TYPES.get(self.line_type)
        if expected is None:
            raise ValueError(f"unsupported line type {self.line_type!r}")
        if not isinstance(self.detail, expected):
            raise TypeError(
                f"line {self.line_number} is {self.line_type} but carries {type(self.detail).__name__}"
            )

    @property
    def part_info(self) -> Optional[PartInfo]:
        return self.detail if isinstance(self.detail, PartInfo) else None

    @property
    def labor_info(self) -> Optional[LaborInfo]:
        return self.detail if isinstance(self.detail, LaborInfo) else None

    @property
    def other_charges_info(self) -> Optional[OtherChargesInfo]:
        return self.detail if isinstance(self.detail, OtherChargesInfo) else None


@dataclass(frozen=True)
class Part:
    """Denormalized part row linked back to its estimate line."""

    line_number: int
    description: str
    part_number: str
    oem_part_number: str
    price: Decimal
    quantity: int
    part_type: str
    source_code: str
    taxable: bool


@dataclass(frozen=True)
class Totals:
    """Document-declared financial totals; never recomputed from lines."""

    parts_total: Decimal = ZERO
    labor_total: Decimal = ZERO
    materials_total: Decimal = ZERO
    gross_total: Decimal = ZERO
    tax_total: Decimal = ZERO
    net_total: Decimal = ZERO


@dataclass(frozen=True)
class ParseMeta:
    source_system: str
    import_timestamp: datetime
    unknown_tags: Tuple[str, ...] = ()
    source_format: str = ""
    document_type: str = ""
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class ParseResult:
    """Immutable outcome of parsing a single estimate document."""

    identities: Identities
    customer: Customer
    vehicle: Vehicle
    claim: ClaimInfo
    lines: Tuple[EstimateLine, ...]
    parts: Tuple[Part, ...]
    totals: Totals
    meta: ParseMeta

    def to_dict(self) -> Dict[str, Any]:
        """Return a JSON-ready dictionary representation."""

        data = asdict(self)
        for raw_line, line in zip(data["lines"], self.lines):
            raw_line["detail_kind"] = type(line.detail).__name__
        return _jsonable(data)


def _jsonable(value: Any) -> Any:
    if isinstance(value, dict):
        return {key: _jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value
