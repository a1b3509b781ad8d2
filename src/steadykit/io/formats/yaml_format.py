"""YAML format for steady-state calibrations.

A calibration file names a built-in model and supplies its targets:

```yaml
model: rbc_crra

options:
  labor: numerical

targets:
  alpha: 0.35
  beta: 0.9901
  delta: 0.025
  gamma: 1.0
  psi: 1.7333
  rhoa: 0.9
  etac: 2.0
  etal: 1.5

initial_guess:
  n: 0.3

solver:
  tol: 1.0e-10
  max_iter: 50
```
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from steadykit.exceptions import ParseError, SolverError
from steadykit.model.parameters import ParameterSet
from steadykit.solvers.config import SolverConfig

if TYPE_CHECKING:
    from steadykit.model.definition import SteadyStateModel
    from steadykit.model.steady_state import SteadyState

_SECTIONS = ("model", "options", "targets", "initial_guess", "solver")


@dataclass(frozen=True)
class CalibrationSpec:
    """Parsed calibration file.

    Attributes:
        model: Built-in model name
        options: Keyword options for the model factory
        targets: Exogenous parameters and targets
        initial_guess: Starting values overriding the model's guess
        config: Solver options
    """

    model: str
    targets: ParameterSet
    options: Mapping[str, Any] = field(default_factory=dict)
    initial_guess: Mapping[str, float] = field(default_factory=dict)
    config: SolverConfig = field(default_factory=SolverConfig)

    def build_model(self) -> SteadyStateModel:
        from steadykit.models import get_model

        return get_model(self.model, **dict(self.options))


def _number_section(data: Any, section: str) -> dict[str, float]:
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ParseError(f"Section '{section}' must be a mapping, got {type(data).__name__}")
    out: dict[str, float] = {}
    for name, value in data.items():
        if isinstance(value, bool):
            raise ParseError(f"Invalid value for '{name}' in '{section}': {value!r}")
        try:
            out[str(name)] = float(value)
        except (TypeError, ValueError) as exc:
            raise ParseError(
                f"Invalid value for '{name}' in '{section}': {value!r}"
            ) from exc
    return out


def _parse_yaml_content(data: Any) -> CalibrationSpec:
    """Parse a YAML-like dict into a CalibrationSpec."""
    if not isinstance(data, dict):
        raise ParseError("Calibration must be a mapping at the top level")

    unknown = sorted(set(data) - set(_SECTIONS))
    if unknown:
        raise ParseError(f"Unknown sections {unknown}. Supported: {list(_SECTIONS)}")

    model = data.get("model")
    if not isinstance(model, str) or not model:
        raise ParseError("Calibration must name a model, e.g. 'model: rbc_crra'")

    options = data.get("options") or {}
    if not isinstance(options, dict):
        raise ParseError("Section 'options' must be a mapping")

    if "targets" not in data:
        raise ParseError("Calibration must have a 'targets' section")
    targets = _number_section(data["targets"], "targets")
    initial_guess = _number_section(data.get("initial_guess"), "initial_guess")

    solver = data.get("solver") or {}
    if not isinstance(solver, dict):
        raise ParseError("Section 'solver' must be a mapping")
    try:
        config = SolverConfig.from_dict(solver)
    except (SolverError, TypeError, ValueError) as exc:
        raise ParseError(f"Invalid solver options: {exc}") from exc

    return CalibrationSpec(
        model=model,
        targets=ParameterSet(targets),
        options=dict(options),
        initial_guess=initial_guess,
        config=config,
    )


def load_yaml(path: str | Path) -> CalibrationSpec:
    """Load a calibration from a YAML file.

    Args:
        path: Path to YAML file

    Returns:
        CalibrationSpec
    """
    import yaml

    path = Path(path)
    with open(path) as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as exc:
            raise ParseError(f"Invalid YAML in {path}: {exc}") from exc

    return _parse_yaml_content(data)


def yaml_to_calibration(content: str) -> CalibrationSpec:
    """Parse a YAML string into a CalibrationSpec."""
    import yaml

    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as exc:
        raise ParseError(f"Invalid YAML: {exc}") from exc
    return _parse_yaml_content(data)


def steady_state_to_yaml(steady_state: SteadyState) -> str:
    """Export a steady state to YAML.

    Args:
        steady_state: Computed SteadyState

    Returns:
        YAML string with values, parameters and residual diagnostics
    """
    import yaml

    params = steady_state.parameters
    data: dict[str, Any] = {"model": steady_state.model_name}
    data["method"] = steady_state.method
    data["steady_state"] = {name: float(v) for name, v in steady_state.values.items()}

    exogenous = sorted(params.exogenous_names)
    if exogenous:
        data["parameters"] = {name: float(params[name]) for name in exogenous}
    derived = sorted(params.derived_names)
    if derived:
        data["derived_parameters"] = {name: float(params[name]) for name in derived}

    if steady_state.numerical:
        data["numerical"] = list(steady_state.numerical)
        data["iterations"] = steady_state.n_iterations
    data["max_residual"] = float(steady_state.max_residual())

    return yaml.dump(data, default_flow_style=False, sort_keys=False)
