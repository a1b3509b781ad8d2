"""Calibration file formats."""

from steadykit.io.formats.yaml_format import (
    CalibrationSpec,
    load_yaml,
    steady_state_to_yaml,
    yaml_to_calibration,
)

__all__ = [
    "CalibrationSpec",
    "load_yaml",
    "steady_state_to_yaml",
    "yaml_to_calibration",
]
