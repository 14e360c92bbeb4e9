"""Pytest configuration to make the local package importable without installation."""
import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

# Ensure repository root is on sys.path for module resolution
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from estimate_import.cli import main as cli_main

FIXED_NOW = datetime(2025, 2, 1, 9, 0, tzinfo=timezone.utc)

SETTINGS_ENV = ("ESTIMATE_UNKNOWN_VEHICLE_YEAR", "ESTIMATE_ODOMETER_UNIT", "ESTIMATE_DEFAULT_DRIVABLE")


@pytest.fixture(autouse=True)
def clean_settings_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Start every test without ESTIMATE_* variables and restore them afterwards."""

    for key in SETTINGS_ENV:
        # setenv first so monkeypatch remembers the original state even if code under test sets it
        monkeypatch.setenv(key, "")
        monkeypatch.delenv(key)


@pytest.fixture
def sample_data_dir() -> Path:
    """Return the built-in sample estimates directory for tests."""

    return ROOT / "sample_data" / "estimates"


@pytest.fixture
def mitchell_xml(sample_data_dir: Path) -> bytes:
    return (sample_data_dir / "mitchell_estimate.xml").read_bytes()


@pytest.fixture
def ccc_ems(sample_data_dir: Path) -> str:
    return (sample_data_dir / "ccc_estimate.ems").read_text(encoding="utf-8")


@pytest.fixture
def fixed_clock():
    """Clock returning a constant import timestamp."""

    return lambda: FIXED_NOW


@pytest.fixture
def run_cli(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    """Helper to invoke the CLI with custom arguments inside tests."""

    def _run(args: list[str]) -> None:
        env_file = tmp_path / "missing.env"
        monkeypatch.setattr(sys, "argv", ["estimate_import.cli", "--env-file", str(env_file), *args])
        cli_main()

    return _run
