"""steadykit: steady states of calibrated macroeconomic models.

Combines closed-form calibration-by-targeting with Newton root finding for
the unknowns that cannot be isolated algebraically.

Example:
    from steadykit import compute_steady_state
    from steadykit.models import default_calibration, get_model

    model = get_model("rbc_crra")
    ss = compute_steady_state(model, default_calibration("rbc_crra"))
    print(ss)
"""

import logging

from steadykit._version import __version__
from steadykit.exceptions import (
    DerivationError,
    EquationCountError,
    InvalidDomainError,
    MissingInputError,
    ModelSpecError,
    NoConvergenceError,
    SingularJacobianError,
    SteadyKitError,
    SteadyStateError,
    SteadyStateValidationError,
)
from steadykit.io import load_calibration, solve_calibration, steady_state_to_yaml
from steadykit.model import (
    EquationSystem,
    ParameterSet,
    ResidualFunction,
    SteadyState,
    SteadyStateModel,
    SubstitutionResolver,
    VariableVector,
)
from steadykit.solvers import (
    RootResult,
    SolverConfig,
    compute_steady_state,
    solve_root,
    sweep_steady_state,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "__version__",
    "DerivationError",
    "EquationCountError",
    "InvalidDomainError",
    "MissingInputError",
    "ModelSpecError",
    "NoConvergenceError",
    "SingularJacobianError",
    "SteadyKitError",
    "SteadyStateError",
    "SteadyStateValidationError",
    "load_calibration",
    "solve_calibration",
    "steady_state_to_yaml",
    "EquationSystem",
    "ParameterSet",
    "ResidualFunction",
    "SteadyState",
    "SteadyStateModel",
    "SubstitutionResolver",
    "VariableVector",
    "RootResult",
    "SolverConfig",
    "compute_steady_state",
    "solve_root",
    "sweep_steady_state",
]
