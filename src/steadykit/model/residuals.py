"""Residual evaluation for steady-state equation systems.

``ResidualFunction`` maps a candidate vector of unknowns to the ordered
residuals of (a subset of) the model equations, holding any remaining
variables fixed. Candidates outside an equation's domain produce an
``InvalidResidual`` sentinel instead of NaN so the root finder can reject
the step.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from types import MappingProxyType

import numpy as np
from numpy.typing import NDArray

from steadykit.exceptions import (
    MissingInputError,
    ModelSpecError,
    UndeclaredSymbolError,
)
from steadykit.model.equations import Equation, EquationSystem
from steadykit.model.functions import DomainViolation
from steadykit.model.parameters import ParameterSet
from steadykit.model.variables import VariableVector

# Arithmetic failures that mean "outside the domain" rather than a bug.
_DOMAIN_ERRORS = (DomainViolation, ZeroDivisionError, OverflowError, ValueError)


@dataclass(frozen=True, slots=True)
class InvalidResidual:
    """Sentinel for a candidate outside an equation's domain.

    Attributes:
        equation: Name of the first equation that could not be evaluated
        reason: Description of the domain violation
    """

    equation: str
    reason: str

    def __str__(self) -> str:
        return f"equation '{self.equation}': {self.reason}"


ResidualOutcome = NDArray[np.float64] | InvalidResidual


def evaluate_equation(
    equation: Equation,
    variables: Mapping[str, float],
    parameters: Mapping[str, float],
) -> float | InvalidResidual:
    """Evaluate one equation, mapping domain failures to InvalidResidual."""
    try:
        with np.errstate(all="raise"):
            value = equation.residual(variables, parameters)
    except (*_DOMAIN_ERRORS, FloatingPointError) as exc:
        return InvalidResidual(equation.name, str(exc) or type(exc).__name__)

    if isinstance(value, complex):
        return InvalidResidual(equation.name, f"complex residual {value!r}")
    value = float(value)
    if not math.isfinite(value):
        return InvalidResidual(equation.name, f"non-finite residual {value!r}")
    return value


class ResidualFunction:
    """Residuals of selected equations as a function of selected unknowns.

    Args:
        system: Equation registry (validated on construction)
        parameters: Parameter values; every parameter the selected equations
            read must be present
        unknowns: Variables the candidate vector assigns (default: all)
        fixed: Values of the variables held fixed
        equations: Names of equations to evaluate (default: all), kept in
            system order

    Raises:
        MissingInputError: If a parameter or a non-unknown variable is absent
        UndeclaredSymbolError: If an unknown or equation name is not declared
    """

    def __init__(
        self,
        system: EquationSystem,
        parameters: ParameterSet | Mapping[str, float],
        *,
        unknowns: Sequence[str] | None = None,
        fixed: Mapping[str, float] | None = None,
        equations: Iterable[str] | None = None,
    ) -> None:
        if not system.is_validated:
            system.validate()
        self.system = system
        self.parameters = ParameterSet.coerce(parameters)

        self.unknowns: tuple[str, ...] = tuple(
            system.variables if unknowns is None else unknowns
        )
        for name in self.unknowns:
            if name not in system.variables:
                raise UndeclaredSymbolError(name, context=f"unknowns of '{system.name}'")
        if len(set(self.unknowns)) != len(self.unknowns):
            raise ModelSpecError(f"Duplicate unknowns: {list(self.unknowns)}")

        fixed_values = {k: float(v) for k, v in (fixed or {}).items()}
        for name in fixed_values:
            if name not in system.variables:
                raise UndeclaredSymbolError(name, context=f"fixed values of '{system.name}'")
        overlap = sorted(set(fixed_values) & set(self.unknowns))
        if overlap:
            raise ModelSpecError(f"Variables both fixed and unknown: {overlap}")
        self._fixed = MappingProxyType(fixed_values)

        if equations is None:
            self.equations: tuple[Equation, ...] = tuple(system.equations)
        else:
            wanted = set(equations)
            unknown_eqs = sorted(wanted - set(system.equation_names))
            if unknown_eqs:
                raise UndeclaredSymbolError(
                    unknown_eqs[0], context=f"equations of '{system.name}'"
                )
            self.equations = tuple(eq for eq in system.equations if eq.name in wanted)

        # Fail fast on anything an equation will read but nobody supplies.
        available = set(self.unknowns) | set(fixed_values)
        needed_vars: set[str] = set()
        needed_params: set[str] = set()
        for eq in self.equations:
            needed_vars |= eq.variables
            needed_params |= eq.parameters
        missing_vars = sorted(needed_vars - available)
        if missing_vars:
            raise MissingInputError(missing_vars, context="residual variables")
        self.parameters.require(*sorted(needed_params), context=f"model '{system.name}'")

    @property
    def fixed(self) -> Mapping[str, float]:
        return self._fixed

    @property
    def equation_names(self) -> list[str]:
        return [eq.name for eq in self.equations]

    @property
    def n_equations(self) -> int:
        return len(self.equations)

    @property
    def n_unknowns(self) -> int:
        return len(self.unknowns)

    @property
    def is_square(self) -> bool:
        return self.n_equations == self.n_unknowns

    def assignment(self, x: NDArray[np.float64] | Sequence[float]) -> dict[str, float]:
        """Full variable assignment for candidate ``x``."""
        arr = np.asarray(x, dtype=np.float64).reshape(-1)
        if arr.shape[0] != self.n_unknowns:
            raise ValueError(
                f"Candidate must have length {self.n_unknowns}, got {arr.shape[0]}"
            )
        values = dict(self._fixed)
        values.update(zip(self.unknowns, (float(v) for v in arr), strict=True))
        return values

    def __call__(self, x: NDArray[np.float64] | Sequence[float]) -> ResidualOutcome:
        """Evaluate residuals at candidate ``x`` (ordered like ``unknowns``)."""
        values = self.assignment(x)
        out = np.empty(self.n_equations, dtype=np.float64)
        for i, eq in enumerate(self.equations):
            value = evaluate_equation(eq, values, self.parameters)
            if isinstance(value, InvalidResidual):
                return value
            out[i] = value
        return out

    def evaluate(self, vector: VariableVector) -> ResidualOutcome:
        """Evaluate at a VariableVector whose names match ``unknowns``."""
        if vector.names != self.unknowns:
            raise ValueError(
                f"Vector ordering {list(vector.names)} does not match "
                f"unknowns {list(self.unknowns)}"
            )
        return self(vector.values)

    def residual_dict(
        self, x: NDArray[np.float64] | Sequence[float]
    ) -> dict[str, float] | InvalidResidual:
        """Residuals keyed by equation name."""
        result = self(x)
        if isinstance(result, InvalidResidual):
            return result
        return dict(zip(self.equation_names, (float(r) for r in result), strict=True))

    def vector(self, x: NDArray[np.float64] | Sequence[float]) -> VariableVector:
        """Wrap candidate ``x`` as a VariableVector."""
        return VariableVector(self.unknowns, np.asarray(x, dtype=np.float64))
