"""Exception hierarchy for steadykit.

Model-definition problems (undeclared names, non-square systems) are
``ModelSpecError``. Everything that can go wrong while computing a steady
state is a ``SteadyStateError`` carrying a machine-readable ``cause`` code
plus whatever diagnostics were available when the solve stopped.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping


class SteadyKitError(Exception):
    """Base class for all steadykit errors."""


# =============================================================================
# Model specification
# =============================================================================


class ModelSpecError(SteadyKitError):
    """Invalid model definition."""


class UndeclaredSymbolError(ModelSpecError):
    """A name is referenced but was never declared."""

    def __init__(self, name: str, context: str = "") -> None:
        self.name = name
        self.context = context
        where = f" in {context}" if context else ""
        super().__init__(f"Undeclared symbol '{name}'{where}")


class DuplicateSymbolError(ModelSpecError):
    """A name is declared (or derived) more than once."""

    def __init__(self, name: str, kind: str = "symbol") -> None:
        self.name = name
        self.kind = kind
        super().__init__(f"Duplicate {kind} '{name}'")


class EquationCountError(ModelSpecError):
    """Number of equations does not match number of unknowns."""

    def __init__(self, n_equations: int, n_unknowns: int, context: str = "") -> None:
        self.n_equations = n_equations
        self.n_unknowns = n_unknowns
        where = f" ({context})" if context else ""
        super().__init__(
            f"System is not square{where}: "
            f"{n_equations} equations vs {n_unknowns} unknowns"
        )


class ParseError(SteadyKitError):
    """Calibration file could not be parsed."""


class SolverError(SteadyKitError):
    """Invalid solver options."""


# =============================================================================
# Steady-state failures
# =============================================================================


class SteadyStateError(SteadyKitError):
    """A steady-state computation failed.

    Attributes:
        cause: Failure code (``missing_target``, ``invalid_domain``,
            ``domain_violation``, ``singular_jacobian``, ``no_convergence``,
            ``validation_failed``).
        last_iterate: Variable values at the point of failure, if any.
        residual_norm: Infinity-norm of the residual at ``last_iterate``.
        equation: Name of the offending equation, if identifiable.
        residuals: Per-equation residuals at ``last_iterate``, if computed.
    """

    cause = "steady_state_error"

    def __init__(
        self,
        message: str,
        *,
        cause: str | None = None,
        last_iterate: Mapping[str, float] | None = None,
        residual_norm: float | None = None,
        equation: str | None = None,
        residuals: Mapping[str, float] | None = None,
    ) -> None:
        if cause is not None:
            self.cause = cause
        self.last_iterate = dict(last_iterate) if last_iterate is not None else None
        self.residual_norm = residual_norm
        self.equation = equation
        self.residuals = dict(residuals) if residuals is not None else {}
        super().__init__(message)

    def diagnostics(self) -> dict[str, object]:
        """Diagnostic fields as a plain dict."""
        return {
            "cause": self.cause,
            "message": str(self),
            "equation": self.equation,
            "residual_norm": self.residual_norm,
            "last_iterate": self.last_iterate,
            "residuals": self.residuals,
        }


class MissingInputError(SteadyStateError):
    """A required target, parameter or variable value is absent."""

    cause = "missing_target"

    def __init__(self, names: Iterable[str], context: str = "", **kwargs) -> None:
        self.names = tuple(names)
        where = f" for {context}" if context else ""
        listed = ", ".join(f"'{n}'" for n in self.names)
        super().__init__(f"Missing input{where}: {listed}", **kwargs)


class InvalidDomainError(SteadyStateError):
    """A formula or equation was evaluated outside its mathematical domain."""

    cause = "invalid_domain"


class DerivationError(InvalidDomainError):
    """An analytical derivation step produced an inadmissible value."""

    def __init__(self, quantity: str, reason: str, **kwargs) -> None:
        self.quantity = quantity
        self.reason = reason
        super().__init__(f"Cannot derive '{quantity}': {reason}", **kwargs)


class SingularJacobianError(SteadyStateError):
    """Newton linear system is singular or too ill-conditioned."""

    cause = "singular_jacobian"

    def __init__(
        self, message: str, *, condition_number: float | None = None, **kwargs
    ) -> None:
        self.condition_number = condition_number
        super().__init__(message, **kwargs)


class NoConvergenceError(SteadyStateError):
    """Iteration budget exhausted without meeting the tolerances."""

    cause = "no_convergence"

    def __init__(self, message: str, *, iterations: int | None = None, **kwargs) -> None:
        self.iterations = iterations
        super().__init__(message, **kwargs)


class SteadyStateValidationError(SteadyStateError):
    """Merged steady state does not satisfy every equation."""

    cause = "validation_failed"

    def __init__(self, residuals: Mapping[str, float], tol: float, **kwargs) -> None:
        self.tol = tol
        violations = {k: v for k, v in residuals.items() if not abs(v) <= tol}
        worst = max(violations, key=lambda k: abs(violations[k])) if violations else None
        msg = (
            f"Steady state validation failed: {len(violations)} equation(s) "
            f"exceed tolerance {tol:.1e}"
        )
        if worst is not None:
            msg += f" (worst: '{worst}' = {violations[worst]:.3e})"
        kwargs.setdefault("equation", worst)
        super().__init__(msg, residuals=residuals, **kwargs)
