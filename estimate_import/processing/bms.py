"""Record normalizer for BMS markup documents.

Field locations are declared as ordered path tables: the CIECA layout used
by Mitchell and CCC comes first, followed by the flatter ``<estimate>`` and
``BMS_ESTIMATE`` exports. The first non-empty path wins.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from estimate_import.core.config import ParserSettings
from estimate_import.core.models import (
    LINE_LABOR,
    LINE_OTHER_CHARGE,
    LINE_PART,
    ZERO,
    Address,
    ClaimInfo,
    Customer,
    Identities,
    LaborInfo,
    OtherChargesInfo,
    PartInfo,
    Totals,
    Vehicle,
)
from estimate_import.ingestion.extractors import (
    TEXT_KEY,
    extract_bool,
    extract_date,
    extract_decimal,
    extract_int,
    extract_text,
    extract_timestamp,
    format_phone,
)
from estimate_import.ingestion.markup import ATTRIBUTE_PREFIX, MarkupDocument
from estimate_import.ingestion.tracker import UnknownElementTracker
from estimate_import.ingestion.vendors import (
    BMS,
    GST_EXEMPT_ELEMENT_IDS,
    KNOWN_DAMAGE_LINE_CHILDREN,
    KNOWN_MARKUP_SECTIONS,
    LINE_TYPE_ALIASES,
    resolve_source_system,
)
from estimate_import.processing import rules
from estimate_import.processing.assembler import NormalizedEstimate

logger = logging.getLogger(__name__)

Path = Tuple[str, ...]

PHONE_QUALIFIERS = ("HP", "CP", "MP", "WP")
NOT_AVAILABLE = {"N/A", "NA", "n/a"}

DOCUMENT_NUMBER_PATHS: Sequence[Path] = (
    ("DocumentInfo", "DocumentID"),
    ("EstimateInfo", "EstimateNumber"),
    ("estimateInfo", "estimateNumber"),
    ("RepairOrderNum",),
    ("DocumentInfo", "RepairOrderNum"),
    ("RqUID",),
)
CLAIM_NUMBER_PATHS: Sequence[Path] = (
    ("RefClaimNum",),
    ("ClaimInfo", "ClaimNum"),
    ("EstimateInfo", "ClaimNumber"),
    ("estimateInfo", "claimNumber"),
    ("Insurance", "ClaimNumber"),
    ("CLAIM_INFO", "CLAIM_NUMBER"),
    ("ClaimNumber",),
)
POLICY_NUMBER_PATHS: Sequence[Path] = (
    ("ClaimInfo", "PolicyInfo", "PolicyNum"),
    ("Insurance", "PolicyNumber"),
    ("CLAIM_INFO", "POLICY_NUMBER"),
    ("PolicyNumber",),
    ("PolicyNum",),
)
INSURER_PATHS: Sequence[Path] = (
    ("AdminInfo", "InsuranceCompany", "Party", "OrgInfo", "CompanyName"),
    ("Insurance", "Company"),
    ("CLAIM_INFO", "INSURANCE_COMPANY"),
)
DEDUCTIBLE_PATHS: Sequence[Path] = (
    ("ClaimInfo", "PolicyInfo", "CoverageInfo", "Coverage", "DeductibleInfo", "DeductibleAmt"),
    ("Insurance", "Deductible"),
    ("DAMAGE_ASSESSMENT", "TOTALS_BREAKDOWN", "DEDUCTIBLE"),
)
LOSS_DATE_PATHS: Sequence[Path] = (
    ("ClaimInfo", "LossInfo", "Facts", "LossDateTime"),
    ("EstimateInfo", "AccidentDate"),
    ("estimateInfo", "accidentDate"),
    ("CLAIM_INFO", "LOSS_DATE"),
)
CREATED_AT_PATHS: Sequence[Path] = (
    ("DocumentInfo", "CreateDateTime"),
    ("EstimateInfo", "EstimateDate"),
    ("estimateInfo", "estimateDate"),
)

VEHICLE_PATHS: Dict[str, Sequence[Path]] = {
    "vin": (
        ("VehicleInfo", "VINInfo", "VIN", "VINNum"),
        ("Vehicle", "VIN"),
        ("vehicle", "vin"),
        ("VEHICLE_INFO", "VIN"),
    ),
    "year": (
        ("VehicleInfo", "VehicleDesc", "ModelYear"),
        ("Vehicle", "Year"),
        ("vehicle", "year"),
        ("VEHICLE_INFO", "YEAR"),
    ),
    "make": (
        ("VehicleInfo", "VehicleDesc", "MakeDesc"),
        ("Vehicle", "Make"),
        ("vehicle", "make"),
        ("VEHICLE_INFO", "MAKE"),
    ),
    "model": (
        ("VehicleInfo", "VehicleDesc", "ModelName"),
        ("Vehicle", "Model"),
        ("vehicle", "model"),
        ("VEHICLE_INFO", "MODEL"),
    ),
    "trim": (
        ("VehicleInfo", "VehicleDesc", "SubModelDesc"),
        ("Vehicle", "Trim"),
        ("vehicle", "trim"),
        ("VEHICLE_INFO", "TRIM"),
    ),
    "odometer": (
        ("VehicleInfo", "VehicleDesc", "OdometerInfo", "OdometerReading"),
        ("Vehicle", "Mileage"),
        ("vehicle", "mileage"),
        ("VEHICLE_INFO", "MILEAGE"),
    ),
    "odometer_unit": (
        ("VehicleInfo", "VehicleDesc", "OdometerInfo", "OdometerReadingMeasure"),
        ("Vehicle", "MileageUnit"),
        ("VEHICLE_INFO", "MILEAGE_UNIT"),
    ),
    "drivable": (
        ("VehicleInfo", "Condition", "DrivableInd"),
        ("VehicleInfo", "DrivableInd"),
        ("Vehicle", "Drivable"),
        ("vehicle", "drivable"),
    ),
    "body_style": (
        ("VehicleInfo", "Body", "BodyStyle"),
        ("Vehicle", "BodyStyle"),
        ("VEHICLE_INFO", "BODY_STYLE"),
    ),
    "engine": (
        ("VehicleInfo", "Powertrain", "EngineDesc"),
        ("Vehicle", "EngineType"),
        ("vehicle", "engine"),
        ("VEHICLE_INFO", "ENGINE"),
    ),
    "transmission": (
        ("VehicleInfo", "Powertrain", "TransmissionInfo", "TransmissionDesc"),
        ("Vehicle", "Transmission"),
        ("vehicle", "transmission"),
        ("VEHICLE_INFO", "TRANSMISSION"),
    ),
    "fuel_type": (
        ("VehicleInfo", "Powertrain", "FuelType"),
        ("vehicle", "fuelType"),
        ("VEHICLE_INFO", "FUEL_TYPE"),
    ),
    "exterior_color": (
        ("VehicleInfo", "Paint", "Exterior", "Color", "ColorName"),
        ("Vehicle", "Color"),
        ("vehicle", "color"),
        ("VEHICLE_INFO", "COLOR"),
    ),
    "interior_color": (("VehicleInfo", "Paint", "Interior", "Color", "ColorName"),),
    "license_plate": (
        ("VehicleInfo", "License", "LicensePlateNum"),
        ("Vehicle", "LicensePlate"),
        ("vehicle", "license"),
        ("VEHICLE_INFO", "LICENSE_PLATE"),
    ),
}

REPAIR_TOTAL_CONTAINERS = (
    ("PartsTotalsInfo", "parts_total"),
    ("LaborTotalsInfo", "labor_total"),
    ("OtherChargesTotalsInfo", "materials_total"),
)
SECTION_TOTALS: Sequence[Tuple[Path, Dict[str, str]]] = (
    (
        ("Totals",),
        {
            "PartsTotal": "parts_total",
            "LaborTotal": "labor_total",
            "MaterialsTotal": "materials_total",
            "Tax": "tax_total",
            "GrandTotal": "gross_total",
        },
    ),
    (
        ("totals",),
        {
            "partsTotal": "parts_total",
            "laborTotal": "labor_total",
            "materialsTotal": "materials_total",
            "tax": "tax_total",
            "grandTotal": "gross_total",
        },
    ),
    (
        ("DAMAGE_ASSESSMENT",),
        {
            "PARTS_TOTAL": "parts_total",
            "LABOR_TOTAL": "labor_total",
            "PAINT_MATERIALS_TOTAL": "materials_total",
            "TAX_TOTAL": "tax_total",
            "TOTAL_ESTIMATE": "gross_total",
        },
    ),
    (("DAMAGE_ASSESSMENT", "TOTALS_BREAKDOWN"), {"FINAL_TOTAL": "net_total"}),
)


def as_list(value: Any) -> List[Any]:
    """Return repeated elements as a list, whatever the source cardinality."""

    if value is None or value == "":
        return []
    if isinstance(value, list):
        return value
    return [value]


def get_node(node: Any, *path: str) -> Any:
    """Walk ``path`` through nested mappings; repeated elements use the first."""

    current = node
    for key in path:
        if isinstance(current, list):
            current = current[0] if current else None
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


def get_text(node: Any, *path: str) -> str:
    return extract_text(get_node(node, *path)).strip()


def first_text(node: Any, paths: Iterable[Path], skip: Iterable[str] = ()) -> str:
    skipped = set(skip)
    for path in paths:
        value = get_text(node, *path)
        if value and value not in skipped:
            return value
    return ""


def first_node(node: Any, paths: Iterable[Path]) -> Any:
    for path in paths:
        value = get_node(node, *path)
        if value not in (None, ""):
            return value
    return None


@dataclass(frozen=True)
class _Party:
    first_name: str = ""
    last_name: str = ""
    company_name: str = ""
    email: str = ""
    phone: str = ""
    address: Address = field(default_factory=Address)

    def has_name(self) -> bool:
        return bool(self.first_name or self.last_name or self.company_name)

    def has_contact(self) -> bool:
        return bool(self.email or self.phone or not self.address.is_empty())


def _bms_address(node: Any) -> Address:
    return Address(
        address1=get_text(node, "Address1"),
        address2=get_text(node, "Address2"),
        city=get_text(node, "City"),
        state_province=get_text(node, "StateProvince"),
        postal_code=get_text(node, "PostalCode"),
        country=get_text(node, "CountryCode") or get_text(node, "Country"),
    )


def _communications(party: Dict[str, Any]) -> List[Any]:
    found: List[Any] = []
    for path in (("ContactInfo", "Communications"), ("PersonInfo", "Communications"), ("OrgInfo", "Communications")):
        found.extend(item for item in as_list(get_node(party, *path)) if isinstance(item, dict))
    return found


def _party_from_bms(party: Any) -> _Party:
    """Read a CIECA ``Party`` block (owner, policy holder)."""

    if not isinstance(party, dict):
        return _Party()

    phones: Dict[str, str] = {}
    email = ""
    address = Address()
    for comm in _communications(party):
        qualifier = get_text(comm, "CommQualifier").upper()
        phone = get_text(comm, "CommPhone")
        if phone:
            phones.setdefault(qualifier, format_phone(phone))
        comm_email = get_text(comm, "CommEmail")
        if comm_email and (not email or qualifier == "EM"):
            email = comm_email
        if address.is_empty() and isinstance(comm.get("Address"), dict):
            address = _bms_address(comm["Address"])

    phone = next((phones[q] for q in PHONE_QUALIFIERS if q in phones), "")
    if not phone and phones:
        phone = next(iter(phones.values()))

    return _Party(
        first_name=get_text(party, "PersonInfo", "PersonName", "FirstName"),
        last_name=get_text(party, "PersonInfo", "PersonName", "LastName"),
        company_name=get_text(party, "OrgInfo", "CompanyName"),
        email=email,
        phone=phone,
        address=address,
    )


def _party_from_simple(node: Any) -> _Party:
    """Read a flat ``<Customer>`` block, accepting both capitalizations."""

    if not isinstance(node, dict):
        return _Party()

    def pick(*names: str) -> str:
        return first_text(node, [(name,) for name in names])

    raw_address = node.get("Address") or node.get("address")
    if isinstance(raw_address, dict):
        address = Address(
            address1=first_text(raw_address, [("Street",), ("street",), ("Address1",)]),
            city=first_text(raw_address, [("City",), ("city",)]),
            state_province=first_text(raw_address, [("State",), ("state",), ("Province",)]),
            postal_code=first_text(raw_address, [("Zip",), ("zip",), ("PostalCode",)]),
        )
    else:
        address = Address(
            address1=extract_text(raw_address).strip(),
            city=pick("City", "city"),
            state_province=pick("State", "state"),
            postal_code=pick("Zip", "zip"),
        )

    return _Party(
        first_name=pick("FirstName", "firstName"),
        last_name=pick("LastName", "lastName"),
        company_name=pick("CompanyName", "companyName", "Company", "company"),
        email=pick("Email", "email"),
        phone=format_phone(pick("Phone", "phone")),
        address=address,
    )


def _party_from_generic(node: Any) -> _Party:
    if not isinstance(node, dict):
        return _Party()
    return _Party(
        first_name=get_text(node, "FIRST_NAME"),
        last_name=get_text(node, "LAST_NAME"),
        company_name=get_text(node, "COMPANY_NAME"),
        email=get_text(node, "EMAIL"),
        phone=format_phone(get_text(node, "PHONE")),
        address=Address(
            address1=get_text(node, "ADDRESS", "STREET"),
            city=get_text(node, "ADDRESS", "CITY"),
            state_province=get_text(node, "ADDRESS", "STATE"),
            postal_code=get_text(node, "ADDRESS", "ZIP"),
        ),
    )


def _gst_exempt_flag(root: Dict[str, Any]) -> Optional[bool]:
    """Find the GST exemption custom element, wherever the vendor put it."""

    for path in (("CustomElement",), ("ClaimInfo", "CustomElement"), ("AdminInfo", "CustomElement"),
                 ("DocumentInfo", "CustomElement")):
        for element in as_list(get_node(root, *path)):
            if get_text(element, "CustomElementID").upper() not in GST_EXEMPT_ELEMENT_IDS:
                continue
            value = first_text(element, [("CustomElementText",), ("CustomElementInd",), ("CustomElementValue",)])
            flag = rules.parse_flag(value)
            if flag is not None:
                return flag
    return rules.parse_flag(first_text(root, [("Customer", "GSTExempt"), ("CUSTOMER_INFO", "GST_EXEMPT")]))


def normalize_customer(root: Dict[str, Any]) -> Customer:
    """Pick the owner, then the policy holder, then flat customer blocks."""

    candidates = (
        _party_from_bms(get_node(root, "AdminInfo", "Owner", "Party")),
        _party_from_bms(get_node(root, "AdminInfo", "PolicyHolder", "Party")),
        _party_from_simple(root.get("Customer") or root.get("customer")),
        _party_from_generic(root.get("CUSTOMER_INFO")),
    )
    party = next((item for item in candidates if item.has_name()), None)
    if party is None:
        party = next((item for item in candidates if item.has_contact()), _Party())

    return rules.classify_customer(
        first_name=party.first_name,
        last_name=party.last_name,
        company_name=party.company_name,
        gst_exempt=_gst_exempt_flag(root),
        email=party.email,
        phone=party.phone,
        address=party.address,
    )


def normalize_vehicle(root: Dict[str, Any], settings: ParserSettings) -> Vehicle:
    def text(name: str) -> str:
        return first_text(root, VEHICLE_PATHS[name])

    reading = extract_int(text("odometer"), 0) or 0
    unit = rules.normalize_unit(text("odometer_unit")) or settings.odometer_unit
    drivable = rules.parse_flag(text("drivable"))

    return Vehicle(
        vin=text("vin"),
        year=extract_int(text("year"), settings.unknown_vehicle_year),
        make=text("make"),
        model=text("model"),
        trim=text("trim"),
        odometer=rules.convert_odometer(reading, unit, settings.odometer_unit),
        odometer_unit=settings.odometer_unit,
        drivable=settings.default_drivable if drivable is None else drivable,
        body_style=text("body_style"),
        engine=text("engine"),
        transmission=text("transmission"),
        fuel_type=text("fuel_type"),
        exterior_color=text("exterior_color"),
        interior_color=text("interior_color"),
        license_plate=text("license_plate"),
    )


def _deductible(root: Dict[str, Any]) -> Decimal:
    declared = first_text(root, DEDUCTIBLE_PATHS)
    if declared:
        return extract_decimal(declared)
    for adjustment in as_list(get_node(root, "RepairTotalsInfo", "Adjustments")):
        if "deductible" in get_text(adjustment, "AdjustmentDesc").lower():
            return abs(extract_decimal(get_node(adjustment, "AdjustmentAmt")))
    return ZERO


def _adjuster_name(root: Dict[str, Any]) -> str:
    person = get_node(root, "AdminInfo", "Adjuster", "Party", "PersonInfo", "PersonName")
    name = f"{get_text(person, 'FirstName')} {get_text(person, 'LastName')}".strip()
    return name or get_text(root, "Insurance", "Adjuster", "Name")


def normalize_claim(root: Dict[str, Any], claim_number: str) -> ClaimInfo:
    return ClaimInfo(
        claim_number=claim_number,
        policy_number=first_text(root, POLICY_NUMBER_PATHS),
        insurance_company=first_text(root, INSURER_PATHS),
        deductible=_deductible(root),
        loss_date=extract_date(first_text(root, LOSS_DATE_PATHS)),
        adjuster_name=_adjuster_name(root),
    )


def _line_number(raw: Any) -> Optional[int]:
    return extract_int(raw, None)


def _part_info(node: Any) -> PartInfo:
    return PartInfo(
        part_number=get_text(node, "PartNum"),
        oem_part_number=get_text(node, "OEMPartNum"),
        price=extract_decimal(get_node(node, "PartPrice")),
        quantity=extract_int(get_node(node, "Quantity"), 1),
        part_type=get_text(node, "PartType"),
        source_code=get_text(node, "PartSourceCode"),
        taxable=extract_bool(get_node(node, "TaxableInd")),
    )


def _labor_info(node: Any) -> LaborInfo:
    return LaborInfo(
        operation=get_text(node, "LaborOperation"),
        hours=extract_decimal(get_node(node, "LaborHours")),
        rate=extract_decimal(get_node(node, "LaborRate")),
        labor_type=get_text(node, "LaborType"),
        paint_stages=extract_int(get_node(node, "PaintStagesNum"), None),
        taxable=extract_bool(get_node(node, "TaxableInd")),
    )


def _other_charges_info(node: Any, material_type: str) -> OtherChargesInfo:
    if not isinstance(node, dict):
        # A bare MaterialType marks a shop material line with no pricing block.
        return OtherChargesInfo(price=ZERO, taxable=True, charge_type=material_type)
    return OtherChargesInfo(
        price=extract_decimal(first_node(node, [("Price",), ("ChargeAmt",), ("Amount",)])),
        taxable=extract_bool(get_node(node, "TaxableInd")),
        charge_type=first_text(node, [("OtherChargesType",), ("ChargeType",)]) or material_type,
    )


def _damage_lines(
    root: Dict[str, Any], tracker: UnknownElementTracker
) -> Tuple[List[rules.RawLine], List[rules.RawDetail]]:
    raw_lines: List[rules.RawLine] = []
    details: List[rules.RawDetail] = []

    for entry in as_list(root.get("DamageLineInfo")):
        if not isinstance(entry, dict):
            tracker.track("line_element:#text")
            continue
        for child in entry:
            if child.startswith(ATTRIBUTE_PREFIX) or child == TEXT_KEY:
                continue
            if child not in KNOWN_DAMAGE_LINE_CHILDREN:
                tracker.track(f"line_element:{child}")

        number = _line_number(entry.get("LineNum"))
        raw_lines.append(rules.RawLine(number, get_text(entry, "LineDesc"), get_text(entry, "LineType")))

        for node in as_list(entry.get("PartInfo")):
            details.append(rules.RawDetail(number, _part_info(node)))
        for key in ("LaborInfo", "RefinishLaborInfo"):
            for node in as_list(entry.get(key)):
                details.append(rules.RawDetail(number, _labor_info(node)))
        material_type = get_text(entry, "MaterialType")
        charges = as_list(entry.get("OtherChargesInfo"))
        for node in charges:
            details.append(rules.RawDetail(number, _other_charges_info(node, material_type)))
        if material_type and not charges:
            details.append(rules.RawDetail(number, _other_charges_info(None, material_type)))

    return raw_lines, details


def _simple_line_items(root: Dict[str, Any]) -> Tuple[List[rules.RawLine], List[rules.RawDetail]]:
    """Read ``<LineItems><LineItem>`` entries from flat exports."""

    raw_lines: List[rules.RawLine] = []
    details: List[rules.RawDetail] = []
    for item in as_list(get_node(root, "LineItems", "LineItem")):
        if not isinstance(item, dict):
            continue

        def pick(*names: str) -> str:
            return first_text(item, [(name,) for name in names])

        number = _line_number(pick("LineNumber", "lineNumber"))
        raw_type = pick("Type", "type")
        raw_lines.append(rules.RawLine(number, pick("Description", "description"), raw_type))

        kind = LINE_TYPE_ALIASES.get(raw_type.lower())
        taxable = extract_bool(pick("Taxable", "taxable"))
        if kind == LINE_PART:
            detail: Any = PartInfo(
                part_number=pick("PartNumber", "partNumber"),
                price=extract_decimal(pick("UnitPrice", "unitPrice", "PartsAmount", "partsAmount")),
                quantity=extract_int(pick("Quantity", "quantity"), 1),
                part_type=raw_type,
                taxable=taxable,
            )
        elif kind == LINE_LABOR:
            detail = LaborInfo(
                operation=pick("Operation", "operation"),
                hours=extract_decimal(pick("LaborHours", "laborHours")),
                rate=extract_decimal(pick("LaborRate", "laborRate")),
                labor_type=raw_type,
                taxable=taxable,
            )
        elif kind == LINE_OTHER_CHARGE:
            detail = OtherChargesInfo(
                price=extract_decimal(pick("UnitPrice", "unitPrice", "Amount", "amount", "PartsAmount")),
                taxable=taxable,
                charge_type=raw_type,
            )
        else:
            continue
        details.append(rules.RawDetail(number, detail))
    return raw_lines, details


def _generic_line_items(root: Dict[str, Any]) -> Tuple[List[rules.RawLine], List[rules.RawDetail]]:
    raw_lines: List[rules.RawLine] = []
    details: List[rules.RawDetail] = []
    for item in as_list(get_node(root, "DAMAGE_ASSESSMENT", "DAMAGE_LINES", "LINE_ITEM")):
        if not isinstance(item, dict):
            continue
        number = _line_number(item.get("LINE_NUMBER"))
        description = get_text(item, "PART_NAME") or get_text(item, "DESCRIPTION")
        raw_lines.append(rules.RawLine(number, description, get_text(item, "LINE_TYPE")))

        if get_text(item, "PART_NUMBER") or get_text(item, "PART_COST"):
            details.append(
                rules.RawDetail(
                    number,
                    PartInfo(
                        part_number=get_text(item, "PART_NUMBER"),
                        price=extract_decimal(item.get("PART_COST")),
                        part_type=get_text(item, "PART_TYPE"),
                    ),
                )
            )
        if get_text(item, "LABOR_HOURS"):
            details.append(
                rules.RawDetail(
                    number,
                    LaborInfo(
                        operation=get_text(item, "OPERATION_TYPE"),
                        hours=extract_decimal(item.get("LABOR_HOURS")),
                        rate=extract_decimal(item.get("LABOR_RATE")),
                    ),
                )
            )
    return raw_lines, details


def normalize_totals(root: Dict[str, Any], tracker: UnknownElementTracker) -> Totals:
    """Read declared totals; category containers take precedence over summaries."""

    entries: List[Tuple[str, Decimal]] = []
    repair = get_node(root, "RepairTotalsInfo")
    if isinstance(repair, list):
        repair = repair[0] if repair else None

    for container, field_name in REPAIR_TOTAL_CONTAINERS:
        for node in as_list(get_node(repair, container)):
            entries.append((field_name, extract_decimal(get_node(node, "TotalAmt"))))
    from_containers = {name for name, _ in entries}

    for node in as_list(get_node(repair, "SummaryTotalsInfo")):
        total_type = get_text(node, "TotalType")
        subtype = get_text(node, "TotalSubType")
        field_name = rules.resolve_total_field(total_type, subtype)
        if field_name is None:
            tracker.track(f"total_type:{total_type}:{subtype}" if subtype else f"total_type:{total_type}")
            continue
        if field_name in from_containers:
            continue
        entries.append((field_name, extract_decimal(get_node(node, "TotalAmt"))))

    declared = {name for name, _ in entries}
    if "tax_total" not in declared:
        for adjustment in as_list(get_node(repair, "Adjustments")):
            if get_text(adjustment, "AdjustmentType").lower() == "tax":
                entries.append(("tax_total", extract_decimal(get_node(adjustment, "AdjustmentAmt"))))

    for path, mapping in SECTION_TOTALS:
        section = get_node(root, *path)
        if not isinstance(section, dict):
            continue
        for tag, field_name in mapping.items():
            if get_text(section, tag):
                entries.append((field_name, extract_decimal(section.get(tag))))

    return rules.build_totals(entries)


def _source_system(root: Dict[str, Any]) -> str:
    vendor = get_text(root, "DocumentInfo", "VendorCode")
    applications = [app for app in as_list(root.get("ApplicationInfo")) if isinstance(app, dict)]
    estimating = [app for app in applications if get_text(app, "ApplicationType") == "Estimating"]
    app_name = get_text((estimating or applications or [None])[0], "ApplicationName")
    return resolve_source_system(BMS, vendor, app_name)


def _track_sections(root: Dict[str, Any], tracker: UnknownElementTracker) -> None:
    for key in root:
        if key.startswith(ATTRIBUTE_PREFIX) or key == TEXT_KEY:
            continue
        if key not in KNOWN_MARKUP_SECTIONS:
            tracker.track(f"section:{key}")


def normalize(
    document: MarkupDocument,
    tracker: UnknownElementTracker,
    settings: ParserSettings,
) -> NormalizedEstimate:
    """Map a :class:`MarkupDocument` onto the vendor-neutral sections."""

    root = document.root
    _track_sections(root, tracker)

    claim_number = first_text(root, CLAIM_NUMBER_PATHS, skip=NOT_AVAILABLE)
    identities = Identities(
        document_number=first_text(root, DOCUMENT_NUMBER_PATHS),
        claim_number=claim_number,
        vin=first_text(root, VEHICLE_PATHS["vin"]),
    )

    raw_lines, details = _damage_lines(root, tracker)
    for reader in (_simple_line_items, _generic_line_items):
        extra_lines, extra_details = reader(root)
        raw_lines.extend(extra_lines)
        details.extend(extra_details)

    return NormalizedEstimate(
        identities=identities,
        customer=normalize_customer(root),
        vehicle=normalize_vehicle(root, settings),
        claim=normalize_claim(root, claim_number),
        lines=rules.link_lines(raw_lines, details, tracker),
        totals=normalize_totals(root, tracker),
        source_system=_source_system(root),
        source_format=BMS,
        document_type=document.document_type,
        created_at=extract_timestamp(first_text(root, CREATED_AT_PATHS)),
    )
