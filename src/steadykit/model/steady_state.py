"""Steady state result and validation.

The steady state is the fixed point where every model equation holds:
    f_i(x_ss; θ) = 0  for all equations i

A SteadyState is only created once the merged analytical and numerical
values have been re-validated against every equation.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING

import numpy as np
import pandas as pd
from numpy.typing import NDArray

from steadykit.exceptions import InvalidDomainError, SteadyStateValidationError
from steadykit.model.residuals import InvalidResidual, ResidualFunction
from steadykit.model.variables import VariableVector

if TYPE_CHECKING:
    from steadykit.model.equations import EquationSystem
    from steadykit.model.parameters import ParameterSet


@dataclass(frozen=True)
class SteadyState:
    """Steady state values for a model.

    Attributes:
        variables: Steady-state values in system order
        parameters: Parameter set used (exogenous plus derived)
        residuals: Mapping eq_name -> residual at the steady state
        analytical: Variables pinned by the analytical resolver
        numerical: Variables found by the root finder
        model_name: Name of the model
        n_iterations: Newton iterations used (0 if the numerical stage was skipped)
        method: Root-finding method used, or "analytical"
    """

    variables: VariableVector
    parameters: ParameterSet
    residuals: Mapping[str, float] = field(default_factory=dict)
    analytical: tuple[str, ...] = ()
    numerical: tuple[str, ...] = ()
    model_name: str = ""
    n_iterations: int = 0
    method: str = "analytical"

    def __post_init__(self) -> None:
        if not self.variables.is_finite():
            bad = [n for n, v in self.variables.items() if not np.isfinite(v)]
            raise InvalidDomainError(
                f"Steady state contains non-finite values: {bad}",
                last_iterate=self.variables.as_dict(),
            )
        object.__setattr__(self, "residuals", MappingProxyType(dict(self.residuals)))
        object.__setattr__(self, "analytical", tuple(self.analytical))
        object.__setattr__(self, "numerical", tuple(self.numerical))

    def __getitem__(self, name: str) -> float:
        """Get steady state value for a variable."""
        return self.variables[name]

    def __contains__(self, name: object) -> bool:
        return name in self.variables

    def get(self, name: str, default: float | None = None) -> float | None:
        """Get steady state value with default."""
        if name in self.variables:
            return self.variables[name]
        return default

    @property
    def values(self) -> dict[str, float]:
        """Mapping var_name -> steady state value."""
        return self.variables.as_dict()

    @property
    def names(self) -> tuple[str, ...]:
        return self.variables.names

    def to_array(self, var_names: Sequence[str] | None = None) -> NDArray[np.float64]:
        """Convert to array in given variable order (default: system order)."""
        if var_names is None:
            return self.variables.to_array()
        return np.array([self.variables[name] for name in var_names])

    def max_residual(self) -> float:
        """Maximum absolute residual."""
        if not self.residuals:
            return 0.0
        return max(abs(r) for r in self.residuals.values())

    def is_valid(self, tol: float = 1e-8) -> bool:
        """Check if steady state is valid (residuals below tolerance)."""
        return self.max_residual() <= tol

    def source_of(self, name: str) -> str:
        """'analytical' or 'numerical'."""
        if name in self.analytical:
            return "analytical"
        if name in self.numerical:
            return "numerical"
        raise KeyError(f"Variable '{name}' not in steady state")

    def to_frame(self) -> pd.DataFrame:
        """Variables as a DataFrame with value and source columns."""
        return pd.DataFrame(
            {
                "value": self.variables.values,
                "source": [self.source_of(n) for n in self.names],
            },
            index=pd.Index(self.names, name="variable"),
        )

    def __str__(self) -> str:
        title = f"Steady State ({self.model_name}):" if self.model_name else "Steady State:"
        lines = [title]
        for name, val in self.variables.items():
            tag = "*" if name in self.numerical else " "
            lines.append(f" {tag}{name} = {val:.6g}")
        derived = sorted(self.parameters.derived_names)
        if derived:
            lines.append("  Derived parameters:")
            for name in derived:
                lines.append(f"    {name} = {self.parameters[name]:.6g}")
        if self.residuals:
            lines.append(f"  Max residual: {self.max_residual():.2e}")
        if self.numerical:
            lines.append(f"  (* solved numerically, {self.n_iterations} iterations)")
        return "\n".join(lines)


def equation_residuals(
    system: EquationSystem,
    values: Mapping[str, float],
    parameters: ParameterSet,
) -> dict[str, float]:
    """Evaluate every equation of ``system`` at ``values``.

    Raises:
        InvalidDomainError: If any equation is outside its domain
    """
    residual_fn = ResidualFunction(system, parameters, fixed=values, unknowns=())
    result = residual_fn(np.empty(0))
    if isinstance(result, InvalidResidual):
        raise InvalidDomainError(
            f"Steady state outside the domain of {result}",
            equation=result.equation,
            last_iterate=values,
        )
    return dict(zip(residual_fn.equation_names, (float(r) for r in result), strict=True))


def validate_steady_state(
    system: EquationSystem,
    values: Mapping[str, float],
    parameters: ParameterSet,
    tol: float = 1e-8,
) -> dict[str, float]:
    """Validate that steady state values satisfy every model equation.

    Args:
        system: The equation system
        values: Steady state values for every variable
        parameters: Parameter set
        tol: Tolerance for residuals

    Returns:
        Mapping eq_name -> residual

    Raises:
        SteadyStateValidationError: If any residual exceeds tolerance
    """
    residual_dict = equation_residuals(system, values, parameters)

    violations = {name: res for name, res in residual_dict.items() if not abs(res) <= tol}
    if violations:
        raise SteadyStateValidationError(
            residual_dict,
            tol,
            last_iterate=values,
            residual_norm=max(abs(r) for r in residual_dict.values()),
        )
    return residual_dict
