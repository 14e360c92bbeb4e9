"""EMS (pipe-delimited) estimates normalize into the shared estimate model."""
from datetime import date, datetime
from decimal import Decimal

import pytest

from estimate_import.core.errors import MalformedDocumentError
from estimate_import.parsers import EMSParser, parse_flat_document

THREE_LINE_EMS = "\n".join(
    [
        "EST|E-3|20250115|Open|262.50|450.00|50.00|762.50",
        "LIN|1|Front Bumper|Part",
        "PRT|1|B-100|Front Bumper||1|450.00|OEM|OEM|Y",
        "LIN|2|Refinish Bumper|Labor",
        "LAB|2|Refinish|3.5|75.00|Paint|Y|",
        "LIN|3|Paint Materials|Material",
        "MTL|3|Paint|Paint Materials|50.00|Y",
    ]
)


def test_sample_document(ccc_ems: str, fixed_clock):
    result = EMSParser(clock=fixed_clock).parse(ccc_ems)

    assert result.identities.document_number == "EMS-1001"
    assert result.identities.claim_number == "CLM-2025-001"
    assert result.identities.vin == "2T1BURHE0JC123456"
    assert result.meta.source_system == "CCC ONE EMS"
    assert result.meta.source_format == "EMS"
    assert result.meta.document_type == "ems"
    assert result.meta.created_at == datetime(2025, 1, 15, 10, 30)
    assert result.meta.import_timestamp == fixed_clock()
    assert result.meta.unknown_tags == ()


def test_sample_customer_vehicle_and_claim(ccc_ems: str):
    result = parse_flat_document(ccc_ems)

    assert result.customer.display_name == "Sarah Lee"
    assert result.customer.type == "person"
    assert result.customer.gst_payable is False
    assert result.customer.phone == "(416) 555-0199"
    assert result.customer.address.city == "Toronto"

    assert (result.vehicle.year, result.vehicle.make, result.vehicle.model) == (2018, "Toyota", "Corolla")
    assert result.vehicle.odometer == 42000
    assert result.vehicle.exterior_color == "Blue"
    assert result.vehicle.license_plate == "XYZ789"

    assert result.claim.deductible == Decimal("500.00")
    assert result.claim.loss_date == date(2025, 1, 10)
    assert result.claim.adjuster_name == "Jane Adjuster"
    assert result.claim.insurance_company == "Acme Insurance"


def test_sample_totals_come_from_tot_records(ccc_ems: str):
    totals = parse_flat_document(ccc_ems).totals

    assert totals.parts_total == Decimal("450.00")
    assert totals.labor_total == Decimal("262.50")
    assert totals.materials_total == Decimal("50.00")
    assert totals.gross_total == Decimal("762.50")


def test_three_line_estimate_keeps_declared_totals():
    result = parse_flat_document(THREE_LINE_EMS)

    assert len(result.lines) == 3
    assert [line.line_type for line in result.lines] == ["part", "labor", "other_charge"]
    assert len(result.parts) == 1
    assert result.parts[0].part_number == "B-100"
    assert result.lines[1].labor_info.paint_stages is None
    assert result.totals.parts_total == Decimal("450.00")
    assert result.totals.labor_total == Decimal("262.50")
    assert result.totals.materials_total == Decimal("50.00")
    assert result.totals.gross_total == Decimal("762.50")


def test_none_input_is_malformed():
    with pytest.raises(MalformedDocumentError):
        parse_flat_document(None)


def test_undecodable_bytes_are_malformed():
    with pytest.raises(MalformedDocumentError):
        parse_flat_document(b"\xff\xfeHDR|1")


def test_empty_input_yields_full_defaults():
    result = parse_flat_document("")

    assert result.customer.display_name == "Unknown Customer"
    assert result.customer.gst_payable is False
    assert result.vehicle.year == 0
    assert result.vehicle.vin == ""
    assert result.identities.document_number == ""
    assert result.lines == ()
    assert result.parts == ()
    assert result.totals.gross_total == Decimal("0")
    assert result.meta.source_system == "Unknown"
    assert result.meta.unknown_tags == ()


def test_unknown_records_and_extra_fields_are_tracked():
    parser = EMSParser()
    result = parser.parse(THREE_LINE_EMS + "\nZZZ|telemetry|42\nLIN|4|Clips|Part|0|Y|0|extra\nPRT|9")

    assert "record_type:ZZZ" in result.meta.unknown_tags
    assert "extra_fields:LIN" in result.meta.unknown_tags
    assert "short_record:PRT:PRT|9" in result.meta.unknown_tags
    assert len(result.lines) == 4
    assert result.lines[3].linked is False

    parser.parse(THREE_LINE_EMS)
    assert parser.get_unknown_tags() == []


def test_lines_are_derived_from_details_without_lin_records():
    result = parse_flat_document(
        "PRT|1|B-1|Bumper Cover||2|100.00|OEM|OEM|Y\nLAB|2|Repair Quarter Panel|2.0|80.00|Body|N|"
    )

    assert [(line.line_number, line.line_type) for line in result.lines] == [(1, "part"), (2, "labor")]
    assert result.lines[0].description == "Bumper Cover"
    assert result.lines[0].part_info.quantity == 2
    assert result.lines[1].description == "Repair Quarter Panel"


def test_lines_follow_document_order():
    result = parse_flat_document("LIN|3|Third|Part\nLIN|1|First|Labor\nLIN|2|Second|Material")

    assert [(line.line_number, line.description) for line in result.lines] == [
        (3, "Third"),
        (1, "First"),
        (2, "Second"),
    ]
    assert [part.line_number for part in result.parts] == [3]


def test_lines_derived_from_details_are_numbered_in_order():
    result = parse_flat_document("PRT|2|B-1|Bumper Cover||1|100.00|OEM|OEM|Y\nLAB|1|Repair Quarter Panel|2.0|80.00|Body|N|")

    assert [(line.line_number, line.line_type) for line in result.lines] == [(1, "labor"), (2, "part")]


def test_failed_parse_clears_previous_unknown_tags():
    parser = EMSParser()
    parser.parse("ZZZ|x\nLIN|1|A|Part")
    assert parser.get_unknown_tags() == ["record_type:ZZZ"]

    with pytest.raises(MalformedDocumentError):
        parser.parse(None)

    assert parser.get_unknown_tags() == []


def test_oversized_numeric_fields_fall_back_to_defaults():
    result = parse_flat_document(
        "VEH|VIN1|1E+2000000|Honda|Civic|||||1E+300000\n"
        "LIN|1E+2000000|Hood|Part\n"
        "PRT|1E+2000000|H-1|Hood||1|100.00|OEM|OEM|Y"
    )

    assert (result.vehicle.year, result.vehicle.odometer) == (0, 0)
    assert [line.line_number for line in result.lines] == [1]
    assert result.lines[0].linked is False
    assert "orphan_detail:part:?" in result.meta.unknown_tags


def test_orphan_details_are_tracked():
    result = parse_flat_document("LIN|1|Bumper|Part\nPRT|1|B-1|Bumper||1|10.00|||\nLAB|5|Orphan|1.0|50.00|Body|N|")

    assert len(result.lines) == 1
    assert "orphan_detail:labor:5" in result.meta.unknown_tags


def test_company_customer_and_exemption_flag():
    organization = parse_flat_document("CST|||Acme Fleet|1 Bay St|Toronto|ON|M5J 2N8|4165550100|ops@acme.test|")
    exempt = parse_flat_document("CST|||Band Office|||||||Y")

    assert organization.customer.type == "organization"
    assert organization.customer.company_name == "Acme Fleet"
    assert organization.customer.gst_payable is True
    assert exempt.customer.type == "organization"
    assert exempt.customer.gst_payable is False


def test_bom_bytes_and_escaped_delimiters():
    raw = "\ufeffHDR|1.0|Mitchell|UltraMate\nLIN|1|Door \\| handle|Part\n".encode("utf-8")
    result = parse_flat_document(raw)

    assert result.meta.source_system == "Mitchell EMS"
    assert result.lines[0].description == "Door | handle"
    assert result.lines[0].linked is False
