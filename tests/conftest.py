"""Pytest configuration and shared fixtures."""

from pathlib import Path

import pytest

from steadykit.models import default_calibration

FIXTURES_DIR = Path(__file__).parent / "fixtures"
CONFIGS_DIR = FIXTURES_DIR / "configs"


@pytest.fixture
def fixtures_dir() -> Path:
    """Return path to fixtures directory."""
    return FIXTURES_DIR


@pytest.fixture
def configs_dir() -> Path:
    """Return path to calibration file fixtures."""
    return CONFIGS_DIR


@pytest.fixture
def rbc_targets() -> dict[str, float]:
    """Default RBC/CRRA calibration."""
    return default_calibration("rbc_crra")


@pytest.fixture
def fiscal_targets() -> dict[str, float]:
    """Default fiscal growth targets."""
    return default_calibration("fiscal_growth")
