"""Linear-algebra helpers for the Newton steady-state solver."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

import numpy as np
import scipy.linalg
from numpy.typing import NDArray

from steadykit.model.residuals import InvalidResidual, ResidualOutcome

ResidualCallable = Callable[[NDArray[np.float64]], ResidualOutcome]


@dataclass(slots=True)
class JacobianEvaluation:
    """Finite-difference Jacobian and evaluation count."""

    matrix: NDArray[np.float64]
    n_evaluations: int
    one_sided: tuple[int, ...] = ()


def finite_difference_jacobian(
    residual_fn: ResidualCallable,
    x: NDArray[np.float64],
    *,
    fd_step: float,
    f0: NDArray[np.float64] | None = None,
) -> JacobianEvaluation | InvalidResidual:
    """Symmetric finite-difference Jacobian of ``residual_fn`` at ``x``.

    Column ``j`` uses step ``h_j = fd_step * max(1, |x_j|)``. Where one side
    of the stencil leaves the residual's domain, the other side is used as a
    one-sided difference (this needs ``f0``). If both sides are invalid the
    sentinel of the forward side is returned.
    """
    x = np.asarray(x, dtype=np.float64)
    n = x.shape[0]
    columns: list[NDArray[np.float64]] = []
    one_sided: list[int] = []
    n_evals = 0

    for j in range(n):
        h = fd_step * max(1.0, abs(float(x[j])))
        x_fwd = x.copy()
        x_bwd = x.copy()
        x_fwd[j] += h
        x_bwd[j] -= h
        f_fwd = residual_fn(x_fwd)
        f_bwd = residual_fn(x_bwd)
        n_evals += 2

        fwd_ok = not isinstance(f_fwd, InvalidResidual)
        bwd_ok = not isinstance(f_bwd, InvalidResidual)
        if fwd_ok and bwd_ok:
            columns.append((f_fwd - f_bwd) / (2.0 * h))
        elif f0 is not None and fwd_ok:
            columns.append((f_fwd - f0) / h)
            one_sided.append(j)
        elif f0 is not None and bwd_ok:
            columns.append((f0 - f_bwd) / h)
            one_sided.append(j)
        else:
            return f_fwd if not fwd_ok else f_bwd

    if n == 0:
        m = 0 if f0 is None else f0.shape[0]
        return JacobianEvaluation(matrix=np.zeros((m, 0)), n_evaluations=0)
    return JacobianEvaluation(
        matrix=np.column_stack(columns),
        n_evaluations=n_evals,
        one_sided=tuple(one_sided),
    )


def condition_number(jacobian: NDArray[np.float64]) -> float:
    """2-norm condition number; ``inf`` for singular or non-finite matrices."""
    jac = np.asarray(jacobian, dtype=np.float64)
    if jac.size == 0 or not np.all(np.isfinite(jac)):
        return float("inf")
    with np.errstate(all="ignore"):
        cond = float(np.linalg.cond(jac))
    return cond if np.isfinite(cond) else float("inf")


def solve_newton_step(
    jacobian: NDArray[np.float64],
    rhs: NDArray[np.float64],
) -> NDArray[np.float64]:
    """Solve ``J @ delta = rhs`` by LU factorization.

    Raises:
        numpy.linalg.LinAlgError: If the matrix is singular or the solution
            is not finite. No least-squares fallback is attempted.
    """
    jac = np.asarray(jacobian, dtype=np.float64)
    rhs_vec = np.asarray(rhs, dtype=np.float64).reshape(-1)
    if jac.ndim != 2 or jac.shape[0] != jac.shape[1]:
        raise np.linalg.LinAlgError(f"Jacobian must be square, got shape {jac.shape}")
    delta = scipy.linalg.solve(jac, rhs_vec, check_finite=True)
    delta = np.asarray(delta, dtype=np.float64).reshape(-1)
    if not np.all(np.isfinite(delta)):
        raise np.linalg.LinAlgError("Newton step is not finite")
    return delta
