"""Record normalizer for EMS flat-record documents."""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from estimate_import.core.config import ParserSettings
from estimate_import.core.models import (
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
    extract_bool,
    extract_date,
    extract_datetime,
    extract_decimal,
    extract_int,
    format_phone,
)
from estimate_import.ingestion.flat import FlatDocument, Record
from estimate_import.ingestion.tracker import UnknownElementTracker
from estimate_import.ingestion.vendors import EMS, FLAT_RECORD_LAYOUTS, resolve_source_system
from estimate_import.processing import rules
from estimate_import.processing.assembler import NormalizedEstimate

logger = logging.getLogger(__name__)

# EMS mileage carries no unit of its own.
EMS_ODOMETER_UNIT = "miles"
EST_TOTAL_FIELDS = ("parts_total", "labor_total", "materials_total", "gross_total")
DETAIL_RECORDS = ("PRT", "LAB", "MTL")


def fields_of(record_type: str, values: Optional[Record]) -> Dict[str, str]:
    """Name the positional values of a record, padding missing ones with ``""``."""

    layout = FLAT_RECORD_LAYOUTS[record_type]
    values = values or ()
    padded = tuple(values) + ("",) * (len(layout.fields) - len(values))
    return dict(zip(layout.fields, padded))


def _check_records(document: FlatDocument, tracker: UnknownElementTracker) -> None:
    for record_type, records in document.records.items():
        layout = FLAT_RECORD_LAYOUTS.get(record_type)
        if layout is None:
            tracker.track(f"record_type:{record_type}")
            continue
        if any(len(values) > len(layout.fields) for values in records):
            tracker.track(f"extra_fields:{record_type}")


def normalize_customer(document: FlatDocument) -> Customer:
    record = document.first("CST")
    if record is None:
        return rules.classify_customer()

    cst = fields_of("CST", record)
    return rules.classify_customer(
        first_name=cst["first_name"],
        last_name=cst["last_name"],
        company_name=cst["company"],
        gst_exempt=rules.parse_flag(cst["gst_exempt"]),
        email=cst["email"],
        phone=format_phone(cst["phone"]),
        address=Address(
            address1=cst["address"],
            city=cst["city"],
            state_province=cst["state"],
            postal_code=cst["zip"],
        ),
    )


def normalize_vehicle(document: FlatDocument, settings: ParserSettings) -> Vehicle:
    veh = fields_of("VEH", document.first("VEH"))
    reading = extract_int(veh["mileage"], 0) or 0
    return Vehicle(
        vin=veh["vin"],
        year=extract_int(veh["year"], settings.unknown_vehicle_year),
        make=veh["make"],
        model=veh["model"],
        trim=veh["trim"],
        odometer=rules.convert_odometer(reading, EMS_ODOMETER_UNIT, settings.odometer_unit),
        odometer_unit=settings.odometer_unit,
        drivable=settings.default_drivable,
        body_style=veh["body_style"],
        engine=veh["engine"],
        transmission=veh["transmission"],
        fuel_type=veh["fuel_type"],
        exterior_color=veh["color"],
        license_plate=veh["license_plate"],
    )


def normalize_claim(document: FlatDocument) -> ClaimInfo:
    clm = fields_of("CLM", document.first("CLM"))
    claim_number = clm["claim_number"]
    return ClaimInfo(
        claim_number="" if claim_number.upper() == "N/A" else claim_number,
        policy_number=clm["policy_number"],
        insurance_company=clm["insurer"],
        deductible=extract_decimal(clm["deductible"]),
        loss_date=extract_date(clm["loss_date"]),
        adjuster_name=clm["adjuster"],
    )


def _details(document: FlatDocument) -> List[Tuple[rules.RawDetail, str]]:
    """Return detail records paired with the description they carry."""

    details: List[Tuple[rules.RawDetail, str]] = []
    for values in document.all("PRT"):
        prt = fields_of("PRT", values)
        info = PartInfo(
            part_number=prt["part_number"],
            oem_part_number=prt["oem_part_number"],
            price=extract_decimal(prt["price"]),
            quantity=extract_int(prt["quantity"], 1),
            part_type=prt["part_type"],
            source_code=prt["source"],
            taxable=extract_bool(prt["taxable"]),
        )
        details.append((rules.RawDetail(extract_int(prt["line_number"], None), info), prt["description"]))

    for values in document.all("LAB"):
        lab = fields_of("LAB", values)
        info = LaborInfo(
            operation=lab["operation"],
            hours=extract_decimal(lab["hours"]),
            rate=extract_decimal(lab["rate"]),
            labor_type=lab["labor_type"],
            paint_stages=extract_int(lab["paint_stages"], None),
            taxable=extract_bool(lab["taxable"]),
        )
        details.append((rules.RawDetail(extract_int(lab["line_number"], None), info), lab["operation"]))

    for values in document.all("MTL"):
        mtl = fields_of("MTL", values)
        info = OtherChargesInfo(
            price=extract_decimal(mtl["price"]),
            taxable=extract_bool(mtl["taxable"]),
            charge_type=mtl["material_type"],
        )
        details.append((rules.RawDetail(extract_int(mtl["line_number"], None), info), mtl["description"]))
    return details


def _raw_lines(document: FlatDocument, details: List[Tuple[rules.RawDetail, str]]) -> List[rules.RawLine]:
    lines = []
    for values in document.all("LIN"):
        lin = fields_of("LIN", values)
        lines.append(rules.RawLine(extract_int(lin["line_number"], None), lin["description"], lin["type"]))
    if lines or not details:
        return lines

    # Some exports omit LIN headers; build one line per numbered detail record instead.
    logger.debug("No LIN records; deriving lines from %d detail record(s)", len(details))
    seen = set()
    for detail, description in details:
        if detail.line_number is None or detail.line_number in seen:
            continue
        seen.add(detail.line_number)
        lines.append(rules.RawLine(detail.line_number, description, detail.kind))
    # Detail records are grouped by type, so line numbers are the only order left.
    return sorted(lines, key=lambda line: line.line_number)


def normalize_totals(document: FlatDocument, tracker: UnknownElementTracker) -> Totals:
    """Use TOT records, falling back to the totals declared on EST."""

    entries: List[Tuple[str, Decimal]] = []
    for values in document.all("TOT"):
        tot = fields_of("TOT", values)
        field_name = rules.resolve_total_field(tot["total_type"], tot["subtype"])
        if field_name is None:
            label = f"{tot['total_type']}:{tot['subtype']}" if tot["subtype"] else tot["total_type"]
            tracker.track(f"total_type:{label}")
            continue
        entries.append((field_name, extract_decimal(tot["amount"])))

    if not entries:
        est = fields_of("EST", document.first("EST"))
        entries = [(name, extract_decimal(est[name])) for name in EST_TOTAL_FIELDS if est[name]]
    return rules.build_totals(entries)


def normalize(
    document: FlatDocument,
    tracker: UnknownElementTracker,
    settings: ParserSettings,
) -> NormalizedEstimate:
    """Map a :class:`FlatDocument` onto the vendor-neutral sections."""

    _check_records(document, tracker)

    hdr = fields_of("HDR", document.first("HDR"))
    est = fields_of("EST", document.first("EST"))
    claim = normalize_claim(document)
    vehicle = normalize_vehicle(document, settings)

    details = _details(document)
    lines = rules.link_lines(_raw_lines(document, details), [detail for detail, _ in details], tracker)

    return NormalizedEstimate(
        identities=Identities(
            document_number=est["estimate_number"],
            claim_number=claim.claim_number,
            vin=vehicle.vin,
        ),
        customer=normalize_customer(document),
        vehicle=vehicle,
        claim=claim,
        lines=lines,
        totals=normalize_totals(document, tracker),
        source_system=resolve_source_system(EMS, hdr["vendor"], hdr["system"]),
        source_format=EMS,
        document_type="ems",
        created_at=extract_datetime(hdr["date"], hdr["time"]) or extract_datetime(est["date"]),
    )
