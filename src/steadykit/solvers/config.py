"""Numeric options for the steady-state solvers."""

from __future__ import annotations

import dataclasses
import math
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Literal

from steadykit.exceptions import SolverError

RootMethod = Literal["newton", "hybr", "lm"]
ROOT_METHODS: tuple[str, ...] = ("newton", "hybr", "lm")


@dataclass(frozen=True, slots=True)
class SolverConfig:
    """Options for one steady-state solve.

    Attributes:
        tol: Convergence tolerance on the residual infinity-norm.
        step_tol: Tolerance on the Newton step infinity-norm, relative to
            ``1 + ||x||``. Defaults to ``tol``.
        max_iter: Maximum number of Newton iterations.
        damping: Fraction of the Newton step applied (1 = full step).
        fd_step: Relative finite-difference step for the Jacobian.
        max_backtracks: How many times a step leaving the domain is halved
            before giving up.
        max_condition: Largest admissible Jacobian condition number.
        method: "newton" (built-in damped Newton) or a
            ``scipy.optimize.root`` method ("hybr", "lm").
        validation_tol: Tolerance used when re-validating the merged steady
            state against every equation.
    """

    tol: float = 1e-10
    step_tol: float | None = None
    max_iter: int = 50
    damping: float = 1.0
    fd_step: float = 1e-6
    max_backtracks: int = 20
    max_condition: float = 1e12
    method: RootMethod = "newton"
    validation_tol: float = 1e-8

    def __post_init__(self) -> None:
        if not (math.isfinite(self.tol) and self.tol > 0.0):
            raise SolverError(f"tol must be finite and > 0, got {self.tol}")
        if self.step_tol is not None and not (
            math.isfinite(self.step_tol) and self.step_tol > 0.0
        ):
            raise SolverError(f"step_tol must be finite and > 0, got {self.step_tol}")
        if self.max_iter < 1:
            raise SolverError(f"max_iter must be >= 1, got {self.max_iter}")
        if not (0.0 < self.damping <= 1.0):
            raise SolverError(f"damping must be in (0, 1], got {self.damping}")
        if not (0.0 < self.fd_step < 1.0):
            raise SolverError(f"fd_step must be in (0, 1), got {self.fd_step}")
        if self.max_backtracks < 0:
            raise SolverError(f"max_backtracks must be >= 0, got {self.max_backtracks}")
        if not self.max_condition > 1.0:
            raise SolverError(f"max_condition must be > 1, got {self.max_condition}")
        if self.method not in ROOT_METHODS:
            raise SolverError(
                f"method must be one of {set(ROOT_METHODS)}, got '{self.method}'"
            )
        if not (math.isfinite(self.validation_tol) and self.validation_tol > 0.0):
            raise SolverError(
                f"validation_tol must be finite and > 0, got {self.validation_tol}"
            )

    @property
    def effective_step_tol(self) -> float:
        return self.tol if self.step_tol is None else self.step_tol

    def replace(self, **changes: Any) -> SolverConfig:
        """Copy with some options changed."""
        return dataclasses.replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> SolverConfig:
        """Create from a mapping, rejecting unknown keys."""
        if not data:
            return cls()
        known = {f.name for f in dataclasses.fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise SolverError(
                f"Unknown solver options: {unknown}. Supported: {sorted(known)}"
            )
        kwargs: dict[str, Any] = dict(data)
        for name in ("tol", "step_tol", "damping", "fd_step", "max_condition", "validation_tol"):
            if kwargs.get(name) is not None:
                kwargs[name] = float(kwargs[name])
        for name in ("max_iter", "max_backtracks"):
            if name in kwargs:
                kwargs[name] = int(kwargs[name])
        return cls(**kwargs)
