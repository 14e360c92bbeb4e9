"""Read-only vendor lookup tables shared by both estimate formats.

The tables are plain data wrapped in ``MappingProxyType`` / ``frozenset`` so
they can be shared across concurrent parses without copying.
"""
from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Tuple

from estimate_import.core.models import LINE_LABOR, LINE_OTHER_CHARGE, LINE_PART

BMS = "BMS"
EMS = "EMS"
UNKNOWN_SOURCE = "Unknown"
UNKNOWN_DOCUMENT_TYPE = "unknown"

MARKUP_ROOTS: Mapping[str, str] = MappingProxyType(
    {
        "VehicleDamageEstimateAddRq": "mitchell_bms",
        "BMS_ESTIMATE": "generic_bms",
        "Estimate": "simple_estimate",
        "estimate": "simple_estimate",
        "estimateData": "estimate_data",
        "estimateInfo": "estimate_info",
    }
)

SOURCE_SYSTEMS: Mapping[str, Mapping[str, str]] = MappingProxyType(
    {
        BMS: MappingProxyType(
            {
                "M": "Mitchell",
                "Mitchell": "Mitchell",
                "MITCHELL": "Mitchell",
                "mitchell": "Mitchell",
                "UltraMate": "Mitchell",
                "C": "CCC ONE",
                "CCC": "CCC ONE",
                "CCC ONE": "CCC ONE",
                "ccc": "CCC ONE",
                "A": "Audatex",
                "Audatex": "Audatex",
                "AUDATEX": "Audatex",
                "audatex": "Audatex",
                "Qapter": "Qapter",
                "QAPTER": "Qapter",
            }
        ),
        EMS: MappingProxyType(
            {
                "Mitchell": "Mitchell EMS",
                "MITCHELL": "Mitchell EMS",
                "mitchell": "Mitchell EMS",
                "UltraMate": "Mitchell EMS",
                "CCC": "CCC ONE EMS",
                "CCC ONE": "CCC ONE EMS",
                "ccc": "CCC ONE EMS",
                "Audatex": "Audatex EMS",
                "AUDATEX": "Audatex EMS",
                "audatex": "Audatex EMS",
            }
        ),
    }
)


@dataclass(frozen=True)
class RecordLayout:
    """Field names of an EMS record, after the record type code."""

    fields: Tuple[str, ...]
    min_fields: int


FLAT_RECORD_LAYOUTS: Mapping[str, RecordLayout] = MappingProxyType(
    {
        "HDR": RecordLayout(("version", "vendor", "system", "date", "time"), 3),
        "CLM": RecordLayout(
            ("claim_number", "policy_number", "deductible", "loss_date", "adjuster", "insurer"), 2
        ),
        "CST": RecordLayout(
            (
                "first_name",
                "last_name",
                "company",
                "address",
                "city",
                "state",
                "zip",
                "phone",
                "email",
                "gst_exempt",
            ),
            2,
        ),
        "VEH": RecordLayout(
            (
                "vin",
                "year",
                "make",
                "model",
                "trim",
                "body_style",
                "color",
                "license_plate",
                "mileage",
                "engine",
                "transmission",
                "fuel_type",
            ),
            2,
        ),
        "EST": RecordLayout(
            ("estimate_number", "date", "status", "labor_total", "parts_total", "materials_total", "gross_total"),
            2,
        ),
        "LIN": RecordLayout(("line_number", "description", "type", "amount", "taxable", "parent_line"), 3),
        "PRT": RecordLayout(
            ("line_number", "part_number", "description", "oem_part_number", "quantity", "price", "part_type",
             "source", "taxable"),
            3,
        ),
        "LAB": RecordLayout(
            ("line_number", "operation", "hours", "rate", "labor_type", "taxable", "paint_stages"), 3
        ),
        "MTL": RecordLayout(("line_number", "material_type", "description", "price", "taxable"), 3),
        "TOT": RecordLayout(("total_type", "subtype", "amount", "taxable_amount", "tax_amount"), 4),
    }
)

LINE_TYPE_ALIASES: Mapping[str, str] = MappingProxyType(
    {
        "part": LINE_PART,
        "parts": LINE_PART,
        "p": LINE_PART,
        "labor": LINE_LABOR,
        "labour": LINE_LABOR,
        "l": LINE_LABOR,
        "paint": LINE_LABOR,
        "refinish": LINE_LABOR,
        "body": LINE_LABOR,
        "frame": LINE_LABOR,
        "mechanical": LINE_LABOR,
        "material": LINE_OTHER_CHARGE,
        "materials": LINE_OTHER_CHARGE,
        "m": LINE_OTHER_CHARGE,
        "sublet": LINE_OTHER_CHARGE,
        "other": LINE_OTHER_CHARGE,
        "other_charge": LINE_OTHER_CHARGE,
        "misc": LINE_OTHER_CHARGE,
        "towing": LINE_OTHER_CHARGE,
        "storage": LINE_OTHER_CHARGE,
    }
)

TOTAL_TYPE_KEYWORDS: Mapping[str, str] = MappingProxyType(
    {
        "parts": "parts_total",
        "part": "parts_total",
        "labor": "labor_total",
        "labour": "labor_total",
        "materials": "materials_total",
        "material": "materials_total",
        "paint materials": "materials_total",
        "other": "materials_total",
        "othercharges": "materials_total",
        "gross": "gross_total",
        "grosstotal": "gross_total",
        "tot:ce": "gross_total",
        "tax": "tax_total",
        "taxes": "tax_total",
        "gst": "tax_total",
        "pst": "tax_total",
        "hst": "tax_total",
        "net": "net_total",
        "nettotal": "net_total",
        "tot:tt": "net_total",
    }
)

GST_EXEMPT_ELEMENT_IDS = frozenset({"GST_EXEMPT", "GSTEXEMPT", "GST_EXEMPT_IND"})

KNOWN_MARKUP_SECTIONS = frozenset(
    {
        "DocumentInfo",
        "ApplicationInfo",
        "EventInfo",
        "AdminInfo",
        "ClaimInfo",
        "VehicleInfo",
        "DamageLineInfo",
        "RepairTotalsInfo",
        "ProfileInfo",
        "RefClaimNum",
        "RqUID",
        "RepairOrderNum",
        "DocumentVer",
        "CustomElement",
        "Customer",
        "customer",
        "Vehicle",
        "vehicle",
        "EstimateInfo",
        "estimateInfo",
        "Insurance",
        "LineItems",
        "Totals",
        "totals",
        "CUSTOMER_INFO",
        "VEHICLE_INFO",
        "CLAIM_INFO",
        "DAMAGE_ASSESSMENT",
    }
)

KNOWN_DAMAGE_LINE_CHILDREN = frozenset(
    {
        "LineNum",
        "UniqueSequenceNum",
        "ParentLineNum",
        "LineDesc",
        "LineType",
        "LineStatusCode",
        "LineMemo",
        "ManualLineInd",
        "PartInfo",
        "LaborInfo",
        "RefinishLaborInfo",
        "OtherChargesInfo",
        "MaterialType",
    }
)


def resolve_source_system(fmt: str, *candidates: str) -> str:
    """Map the first non-empty vendor string to its canonical label.

    Candidates are tried in order; a mapped value wins immediately, otherwise
    the first non-empty candidate passes through unchanged.
    """

    table = SOURCE_SYSTEMS.get(fmt, MappingProxyType({}))
    present = [candidate.strip() for candidate in candidates if candidate and candidate.strip()]
    for candidate in present:
        if candidate in table:
            return table[candidate]
    return present[0] if present else UNKNOWN_SOURCE
