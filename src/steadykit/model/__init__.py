"""Model representation: parameters, variables, equations, steady states."""

from steadykit.model.calibration import (
    AnalyticalResolver,
    DerivationStep,
    Resolution,
    SubstitutionResolver,
)
from steadykit.model.definition import SteadyStateModel
from steadykit.model.equations import Equation, EquationSystem
from steadykit.model.functions import DomainViolation, div, exp, log, power, sqrt
from steadykit.model.parameters import ParameterSet
from steadykit.model.residuals import InvalidResidual, ResidualFunction
from steadykit.model.steady_state import (
    SteadyState,
    equation_residuals,
    validate_steady_state,
)
from steadykit.model.variables import VariableVector

__all__ = [
    "AnalyticalResolver",
    "DerivationStep",
    "Resolution",
    "SubstitutionResolver",
    "SteadyStateModel",
    "Equation",
    "EquationSystem",
    "DomainViolation",
    "div",
    "exp",
    "log",
    "power",
    "sqrt",
    "ParameterSet",
    "InvalidResidual",
    "ResidualFunction",
    "SteadyState",
    "equation_residuals",
    "validate_steady_state",
    "VariableVector",
]
