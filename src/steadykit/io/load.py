"""Unified calibration loading interface.

Provides a single entry point for loading and solving calibrations from any
supported source.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from steadykit.io.formats.yaml_format import CalibrationSpec
    from steadykit.model.steady_state import SteadyState
    from steadykit.solvers.config import SolverConfig


def load_calibration(
    source: str | Path | dict,
    format: str | None = None,
) -> CalibrationSpec:
    """Load a calibration from file or dict.

    Detects the format from the file extension:
    - .yaml, .yml: YAML format
    - dict: Python dictionary (YAML-like structure)

    Args:
        source: File path or dictionary
        format: Override format detection ('yaml', 'dict')

    Returns:
        CalibrationSpec

    Raises:
        ValueError: If format cannot be determined
        FileNotFoundError: If file does not exist
        ParseError: If parsing fails

    Examples:
        spec = load_calibration("rbc.yaml")

        spec = load_calibration({
            "model": "rbc_crra",
            "options": {"labor": "analytical"},
            "targets": {"alpha": 0.35, "beta": 0.9901, ...},
        })
    """
    if isinstance(source, dict):
        if format and format != "dict":
            raise ValueError(f"Dict input but format='{format}' specified")
        from steadykit.io.formats.yaml_format import _parse_yaml_content
        return _parse_yaml_content(source)

    path = Path(source)

    if not path.exists():
        raise FileNotFoundError(f"Calibration file not found: {path}")

    if format is None:
        suffix = path.suffix.lower()
        if suffix in (".yaml", ".yml"):
            format = "yaml"
        else:
            raise ValueError(
                f"Cannot determine format from extension '{suffix}'. "
                "Use format='yaml' explicitly."
            )

    if format == "yaml":
        from steadykit.io.formats.yaml_format import load_yaml
        return load_yaml(path)

    raise ValueError(f"Unknown format: '{format}'. Supported: 'yaml'")


def solve_calibration(
    source: str | Path | dict | CalibrationSpec,
    config: SolverConfig | None = None,
) -> SteadyState:
    """Load a calibration and compute its steady state.

    Args:
        source: File path, dictionary or already loaded CalibrationSpec
        config: Solver options overriding the file's ``solver`` section

    Returns:
        Validated SteadyState
    """
    from steadykit.io.formats.yaml_format import CalibrationSpec
    from steadykit.solvers.steady_state import compute_steady_state

    spec = source if isinstance(source, CalibrationSpec) else load_calibration(source)
    return compute_steady_state(
        spec.build_model(),
        spec.targets,
        initial_guess=spec.initial_guess or None,
        config=config or spec.config,
    )
