"""Environment-driven parser settings."""
import os
from pathlib import Path

import pytest

from estimate_import.core.config import ParserSettings, load_env_file, load_settings


def test_defaults_without_environment():
    assert load_settings() == ParserSettings(unknown_vehicle_year=0, odometer_unit="miles", default_drivable=True)


def test_settings_read_from_environment(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("ESTIMATE_UNKNOWN_VEHICLE_YEAR", "1900")
    monkeypatch.setenv("ESTIMATE_ODOMETER_UNIT", "KM")
    monkeypatch.setenv("ESTIMATE_DEFAULT_DRIVABLE", "no")

    assert load_settings() == ParserSettings(unknown_vehicle_year=1900, odometer_unit="km", default_drivable=False)


def test_invalid_values_fall_back_with_warning(monkeypatch: pytest.MonkeyPatch, caplog):
    monkeypatch.setenv("ESTIMATE_UNKNOWN_VEHICLE_YEAR", "unknown")
    monkeypatch.setenv("ESTIMATE_ODOMETER_UNIT", "furlongs")
    monkeypatch.setenv("ESTIMATE_DEFAULT_DRIVABLE", "maybe")
    caplog.set_level("WARNING")

    assert load_settings() == ParserSettings()
    assert "ESTIMATE_ODOMETER_UNIT" in caplog.text
    assert "ESTIMATE_DEFAULT_DRIVABLE" in caplog.text


def test_env_file_fills_unset_variables_only(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    env_file = tmp_path / ".env"
    env_file.write_text(
        "# parser defaults\n"
        "export ESTIMATE_UNKNOWN_VEHICLE_YEAR=1901\n"
        "ESTIMATE_ODOMETER_UNIT='km'\n"
        "ESTIMATE_DEFAULT_DRIVABLE=false\n"
        "not a setting\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("ESTIMATE_DEFAULT_DRIVABLE", "true")

    settings = load_settings(env_file)

    assert settings == ParserSettings(unknown_vehicle_year=1901, odometer_unit="km", default_drivable=True)
    assert os.environ["ESTIMATE_ODOMETER_UNIT"] == "km"


def test_missing_env_file_is_ignored(tmp_path: Path):
    assert load_env_file(tmp_path / "absent.env") == 0
