"""Shared normalization rules: customer classification, line linkage and totals."""
from decimal import Decimal

import pytest

from estimate_import.core.models import EstimateLine, LaborInfo, OtherChargesInfo, PartInfo
from estimate_import.ingestion.tracker import UnknownElementTracker
from estimate_import.processing import rules
from estimate_import.processing.rules import RawDetail, RawLine


def _payload_count(line: EstimateLine) -> int:
    return sum(info is not None for info in (line.part_info, line.labor_info, line.other_charges_info))


def test_company_only_party_is_gst_paying_organization():
    customer = rules.classify_customer(company_name="Acme Body Shop")

    assert customer.type == "organization"
    assert customer.company_name == "Acme Body Shop"
    assert customer.gst_payable is True
    assert (customer.first_name, customer.last_name) == ("Business", "Acme Body Shop")


def test_missing_party_defaults_to_unknown_person():
    customer = rules.classify_customer()

    assert (customer.first_name, customer.last_name) == ("Unknown", "Customer")
    assert customer.type == "person"
    assert customer.gst_payable is False


def test_exemption_flag_overrides_classification():
    assert rules.classify_customer(company_name="Acme", gst_exempt=True).gst_payable is False
    assert rules.classify_customer(first_name="Ann", gst_exempt=True).gst_payable is False
    assert rules.classify_customer(first_name="Ann", gst_exempt=False).gst_payable is True


def test_link_lines_keeps_document_order_and_unlinked_lines():
    tracker = UnknownElementTracker()
    lines = rules.link_lines(
        [RawLine(2, "Paint", "Labor"), RawLine(1, "Bumper", "Part"), RawLine(None, "Misc", "")],
        [
            RawDetail(1, PartInfo(price=Decimal("10.00"))),
            RawDetail(2, LaborInfo(hours=Decimal("1.5"))),
            RawDetail(9, OtherChargesInfo()),
        ],
        tracker,
    )

    assert [line.line_number for line in lines] == [2, 1, 3]
    assert [line.line_type for line in lines] == ["labor", "part", "other_charge"]
    assert lines[1].part_info.price == Decimal("10.00")
    assert lines[2].linked is False
    assert lines[2].other_charges_info.price == Decimal("0")
    assert all(_payload_count(line) == 1 for line in lines)
    assert tracker.as_list() == ["orphan_detail:other_charge:9"]


def test_link_lines_drops_duplicate_numbers():
    tracker = UnknownElementTracker()
    lines = rules.link_lines([RawLine(1, "First", "Part"), RawLine(1, "Second", "Part")], [], tracker)

    assert [line.description for line in lines] == ["First"]
    assert "duplicate_line:1" in tracker


def test_link_lines_prefers_detail_matching_line_type():
    tracker = UnknownElementTracker()
    lines = rules.link_lines(
        [RawLine(1, "Bumper", "Part")],
        [RawDetail(1, LaborInfo(hours=Decimal("2"))), RawDetail(1, PartInfo(part_number="B-1"))],
        tracker,
    )

    assert lines[0].part_info.part_number == "B-1"
    assert "secondary_detail:1:labor" in tracker


def test_unmapped_line_type_falls_back_to_detail_kind():
    tracker = UnknownElementTracker()
    lines = rules.link_lines(
        [RawLine(1, "Windshield", "Glass"), RawLine(2, "Mystery", "Glass")],
        [RawDetail(1, LaborInfo(hours=Decimal("1")))],
        tracker,
    )

    assert [line.line_type for line in lines] == ["labor", "other_charge"]
    assert "line_type:Glass" in tracker


def test_estimate_line_rejects_mismatched_payload():
    with pytest.raises(TypeError):
        EstimateLine(1, "Bumper", "part", LaborInfo())
    with pytest.raises(ValueError):
        EstimateLine(1, "Bumper", "glass", PartInfo())


def test_derive_parts_copies_part_lines_only():
    lines = (
        EstimateLine(1, "Bumper", "part", PartInfo(part_number="B-1", price=Decimal("450.00"))),
        EstimateLine(2, "Paint", "labor", LaborInfo()),
    )

    parts = rules.derive_parts(lines)

    assert len(parts) == 1
    assert (parts[0].line_number, parts[0].description, parts[0].part_number) == (1, "Bumper", "B-1")


def test_resolve_total_field_keywords():
    assert rules.resolve_total_field("Parts") == "parts_total"
    assert rules.resolve_total_field("TOT", "CE") == "gross_total"
    assert rules.resolve_total_field("TOT", "TT") == "net_total"
    assert rules.resolve_total_field("Storage") is None


def test_build_totals_sums_categories_and_keeps_last_gross():
    totals = rules.build_totals(
        [
            ("parts_total", Decimal("10.00")),
            ("parts_total", Decimal("5.00")),
            ("gross_total", Decimal("1.00")),
            ("gross_total", Decimal("2.00")),
        ]
    )

    assert totals.parts_total == Decimal("15.00")
    assert totals.gross_total == Decimal("2.00")
    assert totals.labor_total == Decimal("0")


def test_convert_odometer_between_units():
    assert rules.convert_odometer(100, "km", "miles") == 62
    assert rules.convert_odometer(62, "miles", "km") == 100
    assert rules.convert_odometer(500, "", "miles") == 500
    assert rules.convert_odometer(-5, "miles", "miles") == 0
