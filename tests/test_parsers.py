"""Format detection, dispatch and JSON rendering of parse results."""
import json

import pytest

from estimate_import.parsers import BMSParser, detect_format, parse_document


def test_detect_format_by_leading_markup():
    assert detect_format("<VehicleDamageEstimateAddRq/>") == "BMS"
    assert detect_format(b"\xef\xbb\xbf\n  <?xml version='1.0'?><Estimate/>") == "BMS"
    assert detect_format("HDR|1.0|CCC") == "EMS"
    assert detect_format("") == "EMS"
    assert detect_format(None) == "EMS"


def test_parse_document_dispatches_by_content(mitchell_xml: bytes, ccc_ems: str):
    assert parse_document(mitchell_xml).meta.source_format == "BMS"
    assert parse_document(ccc_ems).meta.source_format == "EMS"
    assert parse_document(ccc_ems, fmt="ems").identities.document_number == "EMS-1001"


def test_parse_document_rejects_unknown_format(ccc_ems: str):
    with pytest.raises(ValueError, match="Unsupported estimate format"):
        parse_document(ccc_ems, fmt="csv")


def test_parsers_can_be_reused_between_documents(mitchell_xml: bytes):
    parser = BMSParser()

    first = parser.parse(mitchell_xml)
    second = parser.parse(mitchell_xml)

    assert first.identities == second.identities
    assert first.lines == second.lines


def test_to_dict_is_json_ready(mitchell_xml: bytes, fixed_clock):
    data = BMSParser(clock=fixed_clock).parse(mitchell_xml).to_dict()

    encoded = json.loads(json.dumps(data))
    assert encoded["identities"]["document_number"] == "EST123456"
    assert encoded["totals"]["parts_total"] == "450.00"
    assert encoded["lines"][0]["detail_kind"] == "PartInfo"
    assert encoded["lines"][1]["detail"]["hours"] == "3.5"
    assert encoded["meta"]["import_timestamp"] == "2025-02-01T09:00:00+00:00"
    assert encoded["claim"]["loss_date"] is None
