"""Model definition bundle consumed by the steady-state orchestrator."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass

from steadykit.model.calibration import AnalyticalResolver
from steadykit.model.equations import EquationSystem
from steadykit.model.parameters import ParameterSet

GuessFunction = Callable[[ParameterSet, Mapping[str, float]], Mapping[str, float]]


@dataclass(frozen=True)
class SteadyStateModel:
    """Everything needed to compute one model's steady state.

    Attributes:
        name: Model name
        system: Equation registry (fixes variable and equation order)
        resolver: Optional closed-form resolver run before any iteration
        guess: Optional ``guess(parameters, pinned) -> {name: value}`` that
            builds default starting values for the numerically solved
            variables from the calibrated parameters and pinned values
        description: Human-readable description
    """

    name: str
    system: EquationSystem
    resolver: AnalyticalResolver | None = None
    guess: GuessFunction | None = None
    description: str = ""

    @property
    def variable_names(self) -> list[str]:
        return list(self.system.variables)

    @property
    def equation_names(self) -> list[str]:
        return self.system.equation_names

    def __str__(self) -> str:
        return self.system.summary()
