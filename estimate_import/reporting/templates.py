"""Flatten reviewed estimates into spreadsheet rows, one per estimate line."""
from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from estimate_import.core.models import EstimateLine
from estimate_import.quality import ReviewedEstimate

LINE_HEADERS = [
    "Source_File",
    "Format",
    "Source_System",
    "Document_Number",
    "Claim_Number",
    "VIN",
    "Customer",
    "Customer_Type",
    "GST_Payable",
    "Vehicle",
    "Line_Number",
    "Line_Type",
    "Description",
    "Part_Number",
    "Quantity",
    "Hours",
    "Rate",
    "Price",
    "Taxable",
    "Linked",
    "Parts_Total",
    "Labor_Total",
    "Materials_Total",
    "Gross_Total",
    "Status",
    "Notes",
]


def _clean_text(value: Optional[str]) -> str:
    if not value:
        return ""
    return " ".join(value.split())


def _format_amount(value: Optional[Decimal]) -> str:
    if value is None:
        return ""
    return f"{value:.2f}"


def _line_columns(line: Optional[EstimateLine]) -> Dict[str, Any]:
    if line is None:
        return {}

    columns: Dict[str, Any] = {
        "Line_Number": line.line_number,
        "Line_Type": line.line_type,
        "Description": _clean_text(line.description),
        "Taxable": "Y" if line.detail.taxable else "N",
        "Linked": "Y" if line.linked else "N",
    }
    if line.part_info is not None:
        columns["Part_Number"] = line.part_info.part_number
        columns["Quantity"] = line.part_info.quantity
        columns["Price"] = _format_amount(line.part_info.price)
    elif line.labor_info is not None:
        columns["Hours"] = str(line.labor_info.hours)
        columns["Rate"] = _format_amount(line.labor_info.rate)
    elif line.other_charges_info is not None:
        columns["Price"] = _format_amount(line.other_charges_info.price)
    return columns


def estimate_to_rows(reviewed: ReviewedEstimate) -> List[Dict[str, Any]]:
    """Convert one reviewed estimate into template rows.

    An estimate without lines still yields a single summary row so that it
    shows up in the export.
    """

    result = reviewed.result
    vehicle = result.vehicle
    vehicle_label = " ".join(
        part for part in (str(vehicle.year) if vehicle.year else "", vehicle.make, vehicle.model) if part
    )
    base = {header: "" for header in LINE_HEADERS}
    base.update(
        {
            "Source_File": reviewed.loaded.source_name,
            "Format": result.meta.source_format,
            "Source_System": result.meta.source_system,
            "Document_Number": result.identities.document_number,
            "Claim_Number": result.identities.claim_number,
            "VIN": result.identities.vin,
            "Customer": _clean_text(result.customer.display_name),
            "Customer_Type": result.customer.type,
            "GST_Payable": "Y" if result.customer.gst_payable else "N",
            "Vehicle": vehicle_label,
            "Parts_Total": _format_amount(result.totals.parts_total),
            "Labor_Total": _format_amount(result.totals.labor_total),
            "Materials_Total": _format_amount(result.totals.materials_total),
            "Gross_Total": _format_amount(result.totals.gross_total),
            "Status": reviewed.status,
            "Notes": _clean_text(reviewed.notes),
        }
    )

    lines = list(result.lines) or [None]
    rows = []
    for line in lines:
        row = dict(base)
        row.update(_line_columns(line))
        rows.append(row)
    return rows


def estimates_to_rows(reviewed: Iterable[ReviewedEstimate]) -> List[Dict[str, Any]]:
    """Convert reviewed estimates into template-aligned rows."""

    rows: List[Dict[str, Any]] = []
    for item in reviewed:
        rows.extend(estimate_to_rows(item))
    return rows
