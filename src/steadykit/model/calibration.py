"""Analytical calibration for steady-state models.

Calibration-by-targeting: some parameters are not supplied directly but
backed out from target steady-state levels. A SubstitutionResolver holds:
- The targets and primitive parameters it requires
- An ordered list of derivation steps, each computing one parameter or
  steady-state variable from quantities already known

Example:
    resolver = (
        SubstitutionResolver("rbc")
        .require("beta", "delta")
        .variable(
            "rk",
            lambda q: 1.0 / q["beta"] - 1.0 + q["delta"],
            inputs=("beta", "delta"),
            domain="positive",
            satisfies=("euler",),
        )
    )
    resolution = resolver.resolve(ParameterSet({"beta": 0.99, "delta": 0.025}))
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Literal, Protocol

import numpy as np

from steadykit.exceptions import (
    DerivationError,
    DuplicateSymbolError,
    MissingInputError,
    ModelSpecError,
)
from steadykit.model.functions import DomainViolation
from steadykit.model.parameters import ParameterSet

logger = logging.getLogger(__name__)

StepKind = Literal["parameter", "variable"]
Domain = Literal["real", "positive", "nonnegative", "fraction", "below_one"]

_DOMAINS: dict[str, tuple[Callable[[float], bool], str]] = {
    "real": (lambda v: True, "a real number"),
    "positive": (lambda v: v > 0.0, "positive"),
    "nonnegative": (lambda v: v >= 0.0, "non-negative"),
    "fraction": (lambda v: 0.0 <= v < 1.0, "in [0, 1)"),
    "below_one": (lambda v: v < 1.0, "below one"),
}


@dataclass(frozen=True, slots=True)
class Resolution:
    """Output of an analytical resolver.

    Attributes:
        parameters: Targets extended with the derived parameters
        values: Steady-state variables pinned in closed form
        equations: Names of equations the substitutions satisfy identically
        order: Derivation order (names of every step, as executed)
    """

    parameters: ParameterSet
    values: Mapping[str, float] = field(default_factory=dict)
    equations: frozenset[str] = frozenset()
    order: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "values", MappingProxyType(dict(self.values)))
        object.__setattr__(self, "equations", frozenset(self.equations))
        object.__setattr__(self, "order", tuple(self.order))


class AnalyticalResolver(Protocol):
    """Anything that maps targets to a Resolution."""

    def resolve(self, targets: ParameterSet) -> Resolution: ...


@dataclass(frozen=True, slots=True)
class DerivationStep:
    """One closed-form substitution.

    Attributes:
        name: Quantity computed by this step
        func: Callable receiving a read-only mapping of known quantities
        inputs: Names ``func`` reads (targets, derived parameters, pinned variables)
        kind: "parameter" (extends the ParameterSet) or "variable" (pins a
            steady-state value)
        domain: Admissible range for the result
        satisfies: Equations that hold identically once this value is set
        description: Optional human-readable description
    """

    name: str
    func: Callable[[Mapping[str, float]], float]
    inputs: frozenset[str]
    kind: StepKind = "variable"
    domain: Domain = "real"
    satisfies: frozenset[str] = frozenset()
    description: str = ""

    def __post_init__(self) -> None:
        if self.kind not in ("parameter", "variable"):
            raise ModelSpecError(f"Invalid derivation step kind '{self.kind}'")
        if self.domain not in _DOMAINS:
            raise ModelSpecError(
                f"Invalid domain '{self.domain}' for '{self.name}'. "
                f"Supported: {', '.join(_DOMAINS)}"
            )
        object.__setattr__(self, "inputs", frozenset(self.inputs))
        object.__setattr__(self, "satisfies", frozenset(self.satisfies))

    def evaluate(self, known: Mapping[str, float]) -> float:
        """Compute the step value, checking finiteness and domain.

        Raises:
            MissingInputError: If an input is not known yet
            DerivationError: If the formula or the result is inadmissible
        """
        missing = sorted(self.inputs - known.keys())
        if missing:
            raise MissingInputError(missing, context=f"derivation of '{self.name}'")

        scope = {name: known[name] for name in self.inputs}
        try:
            with np.errstate(all="raise"):
                value = self.func(MappingProxyType(scope))
        except (DomainViolation, ZeroDivisionError, OverflowError, ValueError,
                FloatingPointError) as exc:
            raise DerivationError(self.name, str(exc) or type(exc).__name__) from exc
        except KeyError as exc:
            raise ModelSpecError(
                f"Derivation of '{self.name}' reads undeclared input {exc}"
            ) from exc

        if isinstance(value, complex):
            raise DerivationError(self.name, f"complex value {value!r}")
        value = float(value)
        if not math.isfinite(value):
            raise DerivationError(self.name, f"non-finite value {value!r}")
        check, label = _DOMAINS[self.domain]
        if not check(value):
            raise DerivationError(self.name, f"value {value:.6g} is not {label}")
        return value


class SubstitutionResolver:
    """Closed-form resolver: a fixed, ordered sequence of substitutions.

    Steps run strictly in declaration order, each reading only exogenous
    targets and quantities produced by earlier steps. The resolver keeps no
    state between calls: the same targets always give the same Resolution.
    """

    def __init__(self, name: str = "resolver") -> None:
        self.name = name
        self._required: list[str] = []
        self._steps: list[DerivationStep] = []

    def require(self, *names: str) -> SubstitutionResolver:
        """Declare targets/primitive parameters that must be supplied."""
        for name in names:
            if name not in self._required:
                self._required.append(name)
        return self

    def add_step(self, step: DerivationStep) -> SubstitutionResolver:
        if step.name in self.step_names:
            raise DuplicateSymbolError(step.name, kind="derivation step")
        self._steps.append(step)
        return self

    def parameter(
        self,
        name: str,
        func: Callable[[Mapping[str, float]], float],
        *,
        inputs: Iterable[str],
        domain: Domain = "real",
        satisfies: Iterable[str] = (),
        description: str = "",
    ) -> SubstitutionResolver:
        """Add a step deriving a parameter."""
        return self.add_step(
            DerivationStep(
                name=name,
                func=func,
                inputs=frozenset(inputs),
                kind="parameter",
                domain=domain,
                satisfies=frozenset(satisfies),
                description=description,
            )
        )

    def variable(
        self,
        name: str,
        func: Callable[[Mapping[str, float]], float],
        *,
        inputs: Iterable[str],
        domain: Domain = "real",
        satisfies: Iterable[str] = (),
        description: str = "",
    ) -> SubstitutionResolver:
        """Add a step pinning a steady-state variable."""
        return self.add_step(
            DerivationStep(
                name=name,
                func=func,
                inputs=frozenset(inputs),
                kind="variable",
                domain=domain,
                satisfies=frozenset(satisfies),
                description=description,
            )
        )

    @property
    def required(self) -> tuple[str, ...]:
        return tuple(self._required)

    @property
    def steps(self) -> tuple[DerivationStep, ...]:
        return tuple(self._steps)

    @property
    def step_names(self) -> list[str]:
        return [s.name for s in self._steps]

    @property
    def derived_parameters(self) -> list[str]:
        return [s.name for s in self._steps if s.kind == "parameter"]

    @property
    def pinned_variables(self) -> list[str]:
        return [s.name for s in self._steps if s.kind == "variable"]

    def resolve(self, targets: ParameterSet | Mapping[str, float]) -> Resolution:
        """Run every substitution in order.

        Args:
            targets: Exogenous targets and primitive parameters

        Returns:
            Resolution with derived parameters and pinned variables

        Raises:
            MissingInputError: If a required target is absent
            DerivationError: If a step leaves its domain
            DuplicateSymbolError: If a target collides with a derived name
        """
        targets = ParameterSet.coerce(targets)
        targets.require(*self._required, context=f"calibration '{self.name}'")

        for name in self.derived_parameters:
            if name in targets:
                raise DuplicateSymbolError(name, kind="derived parameter supplied as target")

        known: dict[str, float] = dict(targets)
        derived: dict[str, float] = {}
        pinned: dict[str, float] = {}
        satisfied: set[str] = set()

        for step in self._steps:
            value = step.evaluate(known)
            if step.name in known:
                raise DuplicateSymbolError(step.name, kind="derived quantity")
            known[step.name] = value
            if step.kind == "parameter":
                derived[step.name] = value
            else:
                pinned[step.name] = value
            satisfied |= step.satisfies
            logger.debug("%s: %s = %.10g", self.name, step.name, value)

        return Resolution(
            parameters=targets.with_derived(derived),
            values=pinned,
            equations=frozenset(satisfied),
            order=tuple(self.step_names),
        )

    def __repr__(self) -> str:
        return (
            f"SubstitutionResolver({self.name!r}, required={self._required!r}, "
            f"steps={self.step_names!r})"
        )
