"""Tests for running the pipeline end-to-end into CSV outputs."""
import csv
from pathlib import Path

import pytest

from estimate_import.ingestion.loader import LoadedEstimate, estimate_files, load_estimates
from estimate_import.parsers import parse_flat_document
from estimate_import.pipeline import run_pipeline
from estimate_import.quality import review_estimates
from estimate_import.reporting.templates import LINE_HEADERS, estimate_to_rows

VIN_ONLY_XML = (
    "<VehicleDamageEstimateAddRq><VehicleInfo><VINInfo><VIN><VINNum>1FTFW1ET5DFC10312</VINNum>"
    "</VIN></VINInfo></VehicleInfo></VehicleDamageEstimateAddRq>"
)


def _read_rows(path: Path) -> list[dict[str, str]]:
    return list(csv.DictReader(path.read_text(encoding="utf-8").splitlines()))


def test_run_pipeline_writes_one_row_per_line(tmp_path: Path, sample_data_dir: Path):
    output_path = tmp_path / "lines.csv"

    run_pipeline(sample_data_dir, output_path)

    rows = _read_rows(output_path)
    assert list(rows[0].keys()) == LINE_HEADERS
    assert [row["Source_File"] for row in rows] == ["ccc_estimate.ems"] * 3 + ["mitchell_estimate.xml"] * 2
    assert {row["Status"] for row in rows} == {"auto_valid"}

    bumper = rows[3]
    assert bumper["Format"] == "BMS"
    assert bumper["Document_Number"] == "EST123456"
    assert bumper["Customer"] == "John Doe"
    assert bumper["Vehicle"] == "2020 Honda Civic"
    assert bumper["Line_Type"] == "part"
    assert bumper["Price"] == "450.00"
    assert bumper["Gross_Total"] == "712.50"


def test_run_pipeline_errors_when_no_estimates(tmp_path: Path) -> None:
    missing_data_dir = tmp_path / "missing"
    output_path = tmp_path / "lines.csv"

    with pytest.raises(ValueError, match="No estimates found"):
        run_pipeline(missing_data_dir, output_path)

    assert not output_path.exists()


def test_run_pipeline_rejects_unknown_sink(tmp_path: Path, sample_data_dir: Path) -> None:
    with pytest.raises(ValueError, match="Unsupported sink"):
        run_pipeline(sample_data_dir, tmp_path / "lines.csv", sink="sheets")


def test_estimate_without_lines_exports_summary_row(tmp_path: Path):
    (tmp_path / "vin_only.xml").write_text(VIN_ONLY_XML, encoding="utf-8")
    output_path = tmp_path / "out" / "lines.csv"

    run_pipeline(tmp_path, output_path)

    rows = _read_rows(output_path)
    assert len(rows) == 1
    assert rows[0]["VIN"] == "1FTFW1ET5DFC10312"
    assert rows[0]["Line_Number"] == ""
    assert rows[0]["Status"] == "needs_review"
    assert "no estimate lines" in rows[0]["Notes"]


def test_loader_skips_unsupported_and_broken_files(tmp_path: Path, sample_data_dir: Path):
    (tmp_path / "good.ems").write_text((sample_data_dir / "ccc_estimate.ems").read_text(encoding="utf-8"))
    (tmp_path / "broken.xml").write_text("<VehicleDamageEstimateAddRq>", encoding="utf-8")
    (tmp_path / "notes.pdf").write_bytes(b"%PDF-1.4")

    assert [path.name for path in estimate_files(tmp_path)] == ["broken.xml", "good.ems"]

    loaded, alerts = load_estimates(tmp_path)

    assert [item.source_name for item in loaded] == ["good.ems"]
    assert alerts == ["Failed to parse BMS estimate broken.xml"]


def test_estimate_to_rows_formats_line_columns():
    result = parse_flat_document(
        "EST|E-9|20250115\nCST|||Acme Fleet\nLIN|1|Repair  quarter   panel|Labor\nLAB|1|Repair|2.5|80.00|Body|N|"
    )
    reviewed = review_estimates([LoadedEstimate(Path("acme.ems"), result)])[0]

    rows = estimate_to_rows(reviewed)

    assert len(rows) == 1
    row = rows[0]
    assert row["Customer"] == "Acme Fleet"
    assert row["Customer_Type"] == "organization"
    assert row["Description"] == "Repair quarter panel"
    assert row["GST_Payable"] == "Y"
    assert row["Hours"] == "2.5"
    assert row["Rate"] == "80.00"
    assert row["Price"] == ""
    assert row["Taxable"] == "N"
    assert row["Linked"] == "Y"
