"""Newton-type root finder for steady-state residual systems.

Solves F(x) = 0 for a square residual function:

    J(x_k) Δx = -F(x_k),   x_{k+1} = x_k + damping * Δx

with a finite-difference (or supplied analytic) Jacobian, step halving when
a trial point leaves the residual's domain, and explicit failure on singular
Jacobians or an exhausted iteration budget.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field

import numpy as np
import pandas as pd
from numpy.typing import NDArray
from scipy import optimize

from steadykit.exceptions import (
    InvalidDomainError,
    ModelSpecError,
    NoConvergenceError,
    SingularJacobianError,
    SteadyStateError,
)
from steadykit.model.residuals import InvalidResidual, ResidualFunction
from steadykit.model.variables import VariableVector
from steadykit.solvers._newton_linear import (
    JacobianEvaluation,
    condition_number,
    finite_difference_jacobian,
    solve_newton_step,
)
from steadykit.solvers.config import SolverConfig

logger = logging.getLogger(__name__)

JacobianFunction = Callable[[NDArray[np.float64]], NDArray[np.float64]]


@dataclass(slots=True)
class RootResult:
    """Output of the numerical root finder.

    ``converged`` is only True when both the residual and the step norms met
    their tolerances. A non-converged result is only ever returned when
    ``raise_on_fail=False``; ``cause`` then holds the failure code.
    """

    x: VariableVector
    residual: NDArray[np.float64]
    residual_norm: float
    step_norm: float
    converged: bool
    n_iterations: int
    n_evaluations: int
    method: str
    cause: str | None = None
    message: str = ""
    equation_names: list[str] = field(default_factory=list)
    residual_history: list[float] = field(default_factory=list)
    step_history: list[float] = field(default_factory=list)
    n_backtracks: int = 0

    def __getitem__(self, name: str) -> float:
        return self.x[name]

    def residual_dict(self) -> dict[str, float]:
        return dict(zip(self.equation_names, (float(r) for r in self.residual), strict=True))

    def history_frame(self) -> pd.DataFrame:
        """Residual and step norms per iteration."""
        n = len(self.residual_history)
        steps = list(self.step_history) + [np.nan] * (n - len(self.step_history))
        return pd.DataFrame(
            {"residual_norm": self.residual_history, "step_norm": steps[:n]},
            index=pd.RangeIndex(start=0, stop=n, name="iteration"),
        )

    def summary(self) -> str:
        lines = [
            "Root Finder",
            "=" * 50,
            f"  Method:           {self.method}",
            f"  Converged:        {self.converged}",
            f"  Iterations:       {self.n_iterations}",
            f"  Evaluations:      {self.n_evaluations}",
            f"  Backtracks:       {self.n_backtracks}",
            f"  Max |residual|:   {self.residual_norm:.3e}",
            f"  Max |step|:       {self.step_norm:.3e}",
        ]
        if self.cause:
            lines.append(f"  Failure:          {self.cause} ({self.message})")
        return "\n".join(lines)


def _inf_norm(values: NDArray[np.float64]) -> float:
    if values.size == 0:
        return 0.0
    return float(np.max(np.abs(values)))


def _resolve_initial_guess(
    residual_fn: ResidualFunction,
    x0: VariableVector | Mapping[str, float] | NDArray[np.float64] | Sequence[float],
) -> NDArray[np.float64]:
    names = residual_fn.unknowns
    if isinstance(x0, VariableVector):
        if x0.names != names:
            x0 = VariableVector.from_mapping(names, x0.as_dict())
        arr = x0.to_array()
    elif isinstance(x0, Mapping):
        arr = VariableVector.from_mapping(names, x0).to_array()
    else:
        arr = np.asarray(x0, dtype=np.float64).reshape(-1)
        if arr.shape[0] != len(names):
            raise ValueError(f"x0 must have length {len(names)}, got {arr.shape[0]}")
    if not np.all(np.isfinite(arr)):
        raise InvalidDomainError(
            "Initial guess contains non-finite values",
            last_iterate=dict(zip(names, arr.tolist(), strict=True)),
        )
    return arr


def solve_root(
    residual_fn: ResidualFunction,
    x0: VariableVector | Mapping[str, float] | NDArray[np.float64] | Sequence[float],
    config: SolverConfig | None = None,
    *,
    jacobian: JacobianFunction | None = None,
    raise_on_fail: bool = True,
) -> RootResult:
    """Find x with residual_fn(x) = 0 starting from x0.

    Args:
        residual_fn: Square residual function over its ``unknowns``
        x0: Initial guess (VariableVector, name mapping, or array in
            ``residual_fn.unknowns`` order)
        config: Solver options (defaults to SolverConfig())
        jacobian: Optional analytic Jacobian ``J(x) -> (n_eq, n_unknowns)``;
            finite differences are used when omitted
        raise_on_fail: If False, failures are returned as a RootResult with
            ``converged=False`` and ``cause`` set instead of raised

    Returns:
        RootResult

    Raises:
        InvalidDomainError: Initial guess outside the domain, or a step that
            stayed outside it after all backtracks (cause ``domain_violation``)
        SingularJacobianError: Singular or ill-conditioned Jacobian
        NoConvergenceError: Iteration budget exhausted
    """
    config = config or SolverConfig()
    if not residual_fn.is_square:
        raise ModelSpecError(
            f"Root finder needs a square system: {residual_fn.n_equations} equations "
            f"vs {residual_fn.n_unknowns} unknowns"
        )
    x = _resolve_initial_guess(residual_fn, x0)

    if config.method == "newton":
        solve = _solve_newton
    else:
        solve = _solve_scipy

    try:
        return solve(residual_fn, x, config, jacobian)
    except SteadyStateError as exc:
        if raise_on_fail:
            raise
        logger.debug("Root finder failed (%s): %s", exc.cause, exc)
        return _failed_result(residual_fn, exc, config)


def _failed_result(
    residual_fn: ResidualFunction,
    exc: SteadyStateError,
    config: SolverConfig,
) -> RootResult:
    names = residual_fn.unknowns
    iterate = exc.last_iterate or {}
    values = np.array([iterate.get(n, np.nan) for n in names], dtype=np.float64)
    residual = np.array(
        [exc.residuals.get(n, np.nan) for n in residual_fn.equation_names],
        dtype=np.float64,
    )
    return RootResult(
        x=VariableVector(names, values),
        residual=residual,
        residual_norm=float("nan") if exc.residual_norm is None else exc.residual_norm,
        step_norm=float("nan"),
        converged=False,
        n_iterations=getattr(exc, "iterations", None) or 0,
        n_evaluations=0,
        method=config.method,
        cause=exc.cause,
        message=str(exc),
        equation_names=residual_fn.equation_names,
    )


def _diagnostics(
    residual_fn: ResidualFunction,
    x: NDArray[np.float64],
    f: NDArray[np.float64] | None,
) -> dict[str, object]:
    out: dict[str, object] = {
        "last_iterate": dict(zip(residual_fn.unknowns, x.tolist(), strict=True)),
    }
    if f is not None:
        out["residual_norm"] = _inf_norm(f)
        out["residuals"] = dict(
            zip(residual_fn.equation_names, f.tolist(), strict=True)
        )
    return out


def _newton_jacobian(
    residual_fn: ResidualFunction,
    x: NDArray[np.float64],
    f: NDArray[np.float64],
    config: SolverConfig,
    jacobian: JacobianFunction | None,
) -> JacobianEvaluation:
    if jacobian is not None:
        matrix = np.asarray(jacobian(x.copy()), dtype=np.float64)
        expected = (residual_fn.n_equations, residual_fn.n_unknowns)
        if matrix.shape != expected:
            raise ModelSpecError(
                f"Analytic Jacobian must have shape {expected}, got {matrix.shape}"
            )
        return JacobianEvaluation(matrix=matrix, n_evaluations=0)

    evaluation = finite_difference_jacobian(residual_fn, x, fd_step=config.fd_step, f0=f)
    if isinstance(evaluation, InvalidResidual):
        raise InvalidDomainError(
            f"Jacobian stencil left the domain of {evaluation}",
            equation=evaluation.equation,
            **_diagnostics(residual_fn, x, f),
        )
    return evaluation


def _newton_direction(
    residual_fn: ResidualFunction,
    x: NDArray[np.float64],
    f: NDArray[np.float64],
    config: SolverConfig,
    jacobian: JacobianFunction | None,
    it: int,
) -> tuple[NDArray[np.float64], float, int]:
    """Full Newton step, Jacobian condition number and residual evaluations used."""
    jac = _newton_jacobian(residual_fn, x, f, config, jacobian)
    cond = condition_number(jac.matrix)
    if cond > config.max_condition:
        raise SingularJacobianError(
            f"Jacobian is singular or ill-conditioned at iteration {it} "
            f"(condition number {cond:.3e} > {config.max_condition:.1e})",
            condition_number=cond,
            **_diagnostics(residual_fn, x, f),
        )
    try:
        delta = solve_newton_step(jac.matrix, -f)
    except np.linalg.LinAlgError as exc:
        raise SingularJacobianError(
            f"Newton linear solve failed at iteration {it}: {exc}",
            condition_number=cond,
            **_diagnostics(residual_fn, x, f),
        ) from exc
    return delta, cond, jac.n_evaluations


def _solve_newton(
    residual_fn: ResidualFunction,
    x: NDArray[np.float64],
    config: SolverConfig,
    jacobian: JacobianFunction | None,
) -> RootResult:
    f = residual_fn(x)
    n_evals = 1
    if isinstance(f, InvalidResidual):
        raise InvalidDomainError(
            f"Initial guess outside the domain of {f}",
            equation=f.equation,
            **_diagnostics(residual_fn, x, None),
        )

    step_tol = config.effective_step_tol
    residual_history: list[float] = []
    step_history: list[float] = []
    n_backtracks = 0
    step_norm = float("inf")

    for it in range(config.max_iter + 1):
        norm = _inf_norm(f)
        residual_history.append(norm)

        if norm == 0.0:
            # Exact root: the Newton step is zero whatever the Jacobian
            delta = np.zeros_like(x)
            cond = 0.0
        else:
            delta, cond, n_jac = _newton_direction(residual_fn, x, f, config, jacobian, it)
            n_evals += n_jac

        step_norm = _inf_norm(delta)
        scale = 1.0 + _inf_norm(x)
        logger.debug(
            "newton it=%d |F|=%.3e |dx|=%.3e cond=%.2e", it, norm, step_norm, cond
        )
        if norm < config.tol and step_norm <= step_tol * scale:
            return RootResult(
                x=residual_fn.vector(x),
                residual=f,
                residual_norm=norm,
                step_norm=step_norm,
                converged=True,
                n_iterations=it,
                n_evaluations=n_evals,
                method="newton",
                equation_names=residual_fn.equation_names,
                residual_history=residual_history,
                step_history=step_history,
                n_backtracks=n_backtracks,
            )
        if it == config.max_iter:
            break

        alpha = config.damping
        for attempt in range(config.max_backtracks + 1):
            x_trial = x + alpha * delta
            f_trial = residual_fn(x_trial)
            n_evals += 1
            if not isinstance(f_trial, InvalidResidual):
                break
            if attempt == config.max_backtracks:
                raise InvalidDomainError(
                    f"Newton step stayed outside the domain of {f_trial} "
                    f"after {config.max_backtracks} backtracks",
                    cause="domain_violation",
                    equation=f_trial.equation,
                    **_diagnostics(residual_fn, x, f),
                )
            n_backtracks += 1
            logger.debug("newton it=%d backtrack: %s", it, f_trial)
            alpha *= 0.5

        step_history.append(alpha * step_norm)
        x, f = x_trial, f_trial

    raise NoConvergenceError(
        f"Newton solver did not converge in {config.max_iter} iterations "
        f"(max_abs_residual={_inf_norm(f):.3e}, last step={step_norm:.3e})",
        iterations=config.max_iter,
        **_diagnostics(residual_fn, x, f),
    )


class _DomainExit(Exception):
    """Internal: stops scipy.optimize.root on an invalid residual."""

    def __init__(self, x: NDArray[np.float64], invalid: InvalidResidual) -> None:
        self.x = x
        self.invalid = invalid
        super().__init__(str(invalid))


def _solve_scipy(
    residual_fn: ResidualFunction,
    x: NDArray[np.float64],
    config: SolverConfig,
    jacobian: JacobianFunction | None,
) -> RootResult:
    f0 = residual_fn(x)
    if isinstance(f0, InvalidResidual):
        raise InvalidDomainError(
            f"Initial guess outside the domain of {f0}",
            equation=f0.equation,
            **_diagnostics(residual_fn, x, None),
        )

    n_evals = 1

    def func(z: NDArray[np.float64]) -> NDArray[np.float64]:
        nonlocal n_evals
        n_evals += 1
        out = residual_fn(z)
        if isinstance(out, InvalidResidual):
            raise _DomainExit(np.array(z, dtype=np.float64), out)
        return out

    options: dict[str, float | int] = {}
    if config.method == "hybr":
        options["maxfev"] = config.max_iter * (residual_fn.n_unknowns + 1)
    else:
        options["maxiter"] = config.max_iter * (residual_fn.n_unknowns + 1)

    try:
        result = optimize.root(
            func,
            x,
            method=config.method,
            jac=jacobian,
            tol=config.tol,
            options=options,
        )
    except _DomainExit as exc:
        raise InvalidDomainError(
            f"{config.method} iterate left the domain of {exc.invalid}",
            cause="domain_violation",
            equation=exc.invalid.equation,
            **_diagnostics(residual_fn, exc.x, None),
        ) from exc

    x_final = np.asarray(result.x, dtype=np.float64)
    f_final = residual_fn(x_final)
    if isinstance(f_final, InvalidResidual):
        raise InvalidDomainError(
            f"{config.method} solution outside the domain of {f_final}",
            equation=f_final.equation,
            **_diagnostics(residual_fn, x_final, None),
        )
    norm = _inf_norm(f_final)
    n_iterations = int(getattr(result, "nit", 0) or getattr(result, "nfev", 0))
    if norm >= config.tol:
        raise NoConvergenceError(
            f"scipy.optimize.root ({config.method}) did not converge: {result.message} "
            f"(max_abs_residual={norm:.3e})",
            iterations=n_iterations,
            **_diagnostics(residual_fn, x_final, f_final),
        )

    return RootResult(
        x=residual_fn.vector(x_final),
        residual=f_final,
        residual_norm=norm,
        step_norm=_inf_norm(x_final - x),
        converged=True,
        n_iterations=n_iterations,
        n_evaluations=n_evals,
        method=config.method,
        message=str(result.message),
        equation_names=residual_fn.equation_names,
        residual_history=[_inf_norm(f0), norm],
    )
