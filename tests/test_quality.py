"""Quality rules flag imported estimates that need a human look."""
from pathlib import Path

from estimate_import.ingestion.loader import LoadedEstimate
from estimate_import.parsers import parse_flat_document, parse_markup_document
from estimate_import.quality import AUTO_VALID, NEEDS_REVIEW, review_estimates, validate_result

EMS_LINES = "\n".join(
    [
        "VEH|2T1BURHE0JC123456|2018|Toyota|Corolla",
        "LIN|1|Rear Bumper Cover|Part",
        "PRT|1|52159-02902|Rear Bumper Cover||1|450.00|OEM|OEM|Y",
        "LIN|2|Refinish Rear Bumper|Labor",
        "LAB|2|Refinish|3.5|75.00|Paint|Y|",
        "LIN|3|Paint Materials|Material",
        "MTL|3|Paint|Paint Materials|50.00|Y",
    ]
)


def _with_totals(parts: str, labor: str, materials: str, gross: str) -> str:
    return f"EST|EMS-2000|20250115|Open|{labor}|{parts}|{materials}|{gross}\n{EMS_LINES}"


def test_matching_totals_pass(mitchell_xml: bytes):
    assert validate_result(parse_markup_document(mitchell_xml)) == []
    assert validate_result(parse_flat_document(_with_totals("450.00", "262.50", "50.00", "762.50"))) == []


def test_gross_total_mismatch_is_flagged():
    result = parse_flat_document(_with_totals("450.00", "262.50", "50.00", "900.00"))

    assert validate_result(result) == ["gross_total 900.00 does not match category totals 762.50"]


def test_category_total_mismatch_is_flagged():
    result = parse_flat_document(_with_totals("500.00", "262.50", "50.00", "812.50"))

    assert validate_result(result) == ["parts_total 500.00 does not match line sum 450.00"]


def test_missing_identity_and_lines_are_flagged():
    result = parse_markup_document("<Estimate><Telematics/></Estimate>")
    issues = validate_result(result)

    assert "missing VIN" in issues
    assert "missing document number" in issues
    assert "no estimate lines" in issues
    assert "1 unknown element(s)" in issues


def test_review_estimates_sets_status_and_notes(mitchell_xml: bytes):
    good = LoadedEstimate(Path("good.xml"), parse_markup_document(mitchell_xml))
    bad = LoadedEstimate(Path("bad.ems"), parse_flat_document(""))

    reviewed = review_estimates([good, bad])

    assert [item.status for item in reviewed] == [AUTO_VALID, NEEDS_REVIEW]
    assert reviewed[0].notes == ""
    assert reviewed[1].notes.startswith("missing VIN; missing document number")
    assert reviewed[1].result is bad.result
