"""Steady-state solvers: numerical root finding and orchestration."""

from steadykit.solvers.config import SolverConfig
from steadykit.solvers.newton import RootResult, solve_root
from steadykit.solvers.steady_state import (
    build_initial_guess,
    compute_steady_state,
    resolve_analytical,
)
from steadykit.solvers.sweep import sweep_steady_state

__all__ = [
    "SolverConfig",
    "RootResult",
    "solve_root",
    "build_initial_guess",
    "compute_steady_state",
    "resolve_analytical",
    "sweep_steady_state",
]
