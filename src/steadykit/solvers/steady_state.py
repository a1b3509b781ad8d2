"""Steady-state orchestrator.

Runs the two solution stages of a steady-state computation in order:

1. Analytical: the model's resolver derives parameters from targets and
   pins the variables it can express in closed form.
2. Numerical: the remaining unknowns are found by the root finder on the
   equations the substitutions did not satisfy.

The merged values are re-validated against every equation before a
SteadyState is returned.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from steadykit.exceptions import (
    EquationCountError,
    InvalidDomainError,
    UndeclaredSymbolError,
)
from steadykit.model.calibration import Resolution
from steadykit.model.definition import SteadyStateModel
from steadykit.model.parameters import ParameterSet
from steadykit.model.residuals import ResidualFunction
from steadykit.model.steady_state import SteadyState, validate_steady_state
from steadykit.model.variables import VariableVector
from steadykit.solvers.config import SolverConfig
from steadykit.solvers.newton import RootResult, solve_root

logger = logging.getLogger(__name__)

DEFAULT_GUESS = 1.0


def resolve_analytical(
    model: SteadyStateModel,
    targets: ParameterSet | Mapping[str, float],
) -> Resolution:
    """Run the model's analytical resolver (or pass targets through)."""
    targets = ParameterSet.coerce(targets)
    if model.resolver is None:
        return Resolution(parameters=targets)
    resolution = model.resolver.resolve(targets)
    for name in resolution.values:
        if name not in model.system.variables:
            raise UndeclaredSymbolError(name, context=f"resolver of '{model.name}'")
    for name in resolution.equations:
        if name not in model.system.equation_names:
            raise UndeclaredSymbolError(
                name, context=f"equations satisfied by resolver of '{model.name}'"
            )
    return resolution


def build_initial_guess(
    model: SteadyStateModel,
    parameters: ParameterSet,
    pinned: Mapping[str, float],
    unknowns: tuple[str, ...],
    overrides: Mapping[str, float] | None = None,
) -> VariableVector:
    """Starting values for the numerically solved unknowns.

    The model's guess function is evaluated first, then caller overrides are
    laid on top. Overrides of analytically pinned variables are ignored.
    Any unknown still without a value starts at ``DEFAULT_GUESS``.

    Raises:
        UndeclaredSymbolError: If an override names an undeclared variable
        InvalidDomainError: If the model's guess function leaves its domain
    """
    guess: dict[str, float] = {}
    if model.guess is not None and unknowns:
        try:
            guess.update(model.guess(parameters, pinned))
        except (ArithmeticError, ValueError) as exc:
            raise InvalidDomainError(
                f"Default initial guess for '{model.name}' is undefined: "
                f"{str(exc) or type(exc).__name__}",
                last_iterate=pinned,
            ) from exc

    for name, value in (overrides or {}).items():
        if name not in model.system.variables:
            raise UndeclaredSymbolError(name, context=f"initial guess for '{model.name}'")
        if name in pinned:
            logger.warning(
                "Ignoring initial guess for '%s': pinned analytically at %.6g",
                name,
                pinned[name],
            )
            continue
        guess[name] = float(value)

    return VariableVector.from_mapping(unknowns, guess, default=DEFAULT_GUESS)


def compute_steady_state(
    model: SteadyStateModel,
    targets: ParameterSet | Mapping[str, float],
    initial_guess: Mapping[str, float] | None = None,
    config: SolverConfig | None = None,
) -> SteadyState:
    """Compute the steady state of ``model`` for the given calibration.

    Args:
        model: Model definition (equations, resolver, default guess)
        targets: Exogenous parameters and steady-state targets
        initial_guess: Optional starting values overriding the model's guess
        config: Solver options (defaults to SolverConfig())

    Returns:
        Validated SteadyState

    Raises:
        ModelSpecError: If the model is ill-formed or the unresolved part is
            not square
        MissingInputError: If a target or parameter is absent
        InvalidDomainError: If a derivation or the initial guess is outside
            its domain
        SingularJacobianError: If the Newton linear system is singular
        NoConvergenceError: If the root finder exhausts its budget
        SteadyStateValidationError: If the merged values miss any equation
    """
    config = config or SolverConfig()
    system = model.system
    system.validate()

    resolution = resolve_analytical(model, targets)
    parameters = resolution.parameters
    pinned = dict(resolution.values)
    logger.debug(
        "%s: analytical stage pinned %d variable(s), satisfied %d equation(s)",
        model.name,
        len(pinned),
        len(resolution.equations),
    )

    unknowns = tuple(v for v in system.variables if v not in pinned)
    remaining = [eq for eq in system.equation_names if eq not in resolution.equations]
    if len(remaining) != len(unknowns):
        raise EquationCountError(
            len(remaining), len(unknowns), context=f"numerical stage of '{model.name}'"
        )

    guess = build_initial_guess(model, parameters, pinned, unknowns, initial_guess)

    root: RootResult | None = None
    merged = dict(pinned)
    if unknowns:
        residual_fn = ResidualFunction(
            system,
            parameters,
            unknowns=unknowns,
            fixed=pinned,
            equations=remaining,
        )
        logger.debug(
            "%s: solving %d unknown(s) numerically: %s",
            model.name,
            len(unknowns),
            ", ".join(unknowns),
        )
        root = solve_root(residual_fn, guess, config)
        merged.update(root.x.as_dict())
    else:
        logger.debug("%s: fully analytical, numerical stage skipped", model.name)

    residuals = validate_steady_state(system, merged, parameters, tol=config.validation_tol)

    values = VariableVector.from_mapping(system.variables, merged)
    return SteadyState(
        variables=values,
        parameters=parameters,
        residuals=residuals,
        analytical=tuple(v for v in system.variables if v in pinned),
        numerical=unknowns,
        model_name=model.name,
        n_iterations=root.n_iterations if root is not None else 0,
        method=root.method if root is not None else "analytical",
    )
