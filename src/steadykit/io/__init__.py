"""Loading calibrations and exporting steady states."""

from steadykit.io.formats.yaml_format import CalibrationSpec, steady_state_to_yaml
from steadykit.io.load import load_calibration, solve_calibration

__all__ = [
    "CalibrationSpec",
    "load_calibration",
    "solve_calibration",
    "steady_state_to_yaml",
]
