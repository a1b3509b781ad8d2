"""Equations and the equation registry for steady-state models.

This module provides:
- Equation: a named, pure residual function of (variables, parameters)
- EquationSystem: the ordered registry of variables and equations that
  fixes the ordering used everywhere else

Equations are plain Python callables that declare the names they read:

    system = EquationSystem("toy", variables=["k", "c"])

    @system.equation("resource", variables=("k", "c"), parameters=("delta",))
    def _resource(v, p):
        return v["c"] - (v["k"] ** 0.3 - p["delta"] * v["k"])
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Mapping
from dataclasses import dataclass, field

from steadykit.exceptions import (
    DuplicateSymbolError,
    EquationCountError,
    MissingInputError,
    ModelSpecError,
    UndeclaredSymbolError,
)

EquationFunc = Callable[[Mapping[str, float], Mapping[str, float]], float]


class _Scope(Mapping[str, float]):
    """Read-only view that only exposes declared names."""

    __slots__ = ("_values", "_declared", "_context")

    def __init__(
        self, values: Mapping[str, float], declared: frozenset[str], context: str
    ) -> None:
        self._values = values
        self._declared = declared
        self._context = context

    def __getitem__(self, name: str) -> float:
        if name not in self._declared:
            raise UndeclaredSymbolError(name, context=self._context)
        return self._values[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._declared)

    def __len__(self) -> int:
        return len(self._declared)


@dataclass(frozen=True, slots=True)
class Equation:
    """A single steady-state equation in residual form.

    Attributes:
        name: Identifier used in diagnostics.
        func: Callable ``f(variables, parameters) -> float`` returning
            LHS - RHS (zero when the equation holds).
        variables: Variable names the equation reads.
        parameters: Parameter names the equation reads.
        description: Optional human-readable description.
    """

    name: str
    func: EquationFunc
    variables: frozenset[str] = frozenset()
    parameters: frozenset[str] = frozenset()
    description: str = ""

    def __post_init__(self) -> None:
        if not self.name:
            raise ModelSpecError("Equation name cannot be empty")
        if not callable(self.func):
            raise ModelSpecError(f"Equation '{self.name}' function is not callable")
        object.__setattr__(self, "variables", frozenset(self.variables))
        object.__setattr__(self, "parameters", frozenset(self.parameters))

    def residual(
        self, variables: Mapping[str, float], parameters: Mapping[str, float]
    ) -> float:
        """Evaluate the raw residual.

        Only declared names are visible to ``func``; reading anything else
        raises UndeclaredSymbolError. Domain errors propagate to the caller.
        """
        context = f"equation '{self.name}'"
        return self.func(
            _Scope(variables, self.variables, context),
            _Scope(parameters, self.parameters, context),
        )

    def __str__(self) -> str:
        desc = f" {self.description}" if self.description else ""
        return f"[{self.name}]{desc}"


@dataclass
class EquationSystem:
    """Ordered registry of steady-state variables and equations.

    The variable order is the order of every VariableVector built for this
    system, and the equation order is the order of every residual vector.

    Attributes:
        name: Model name/identifier
        variables: Ordered variable names
        equations: Ordered equations
    """

    name: str = "unnamed"
    variables: list[str] = field(default_factory=list)
    equations: list[Equation] = field(default_factory=list)

    _validated: bool = field(default=False, repr=False)

    def __post_init__(self) -> None:
        names = list(self.variables)
        self.variables = []
        self.add_variables(*names)
        eqs = list(self.equations)
        self.equations = []
        for eq in eqs:
            self.add_equation(eq)

    def add_variables(self, *names: str) -> EquationSystem:
        """Declare endogenous variables (in order)."""
        for name in names:
            if name in self.variables:
                raise DuplicateSymbolError(name, kind="variable")
            self.variables.append(name)
        self._validated = False
        return self

    def add_equation(self, equation: Equation) -> EquationSystem:
        """Register an equation."""
        if equation.name in self.equation_names:
            raise DuplicateSymbolError(equation.name, kind="equation")
        self.equations.append(equation)
        self._validated = False
        return self

    def equation(
        self,
        name: str,
        *,
        variables: Iterable[str],
        parameters: Iterable[str] = (),
        description: str = "",
    ) -> Callable[[EquationFunc], EquationFunc]:
        """Decorator registering ``func`` as an equation."""

        def register(func: EquationFunc) -> EquationFunc:
            self.add_equation(
                Equation(
                    name=name,
                    func=func,
                    variables=frozenset(variables),
                    parameters=frozenset(parameters),
                    description=description,
                )
            )
            return func

        return register

    def validate(self) -> None:
        """Validate system consistency.

        Checks:
        - Every variable read by an equation is declared
        - Every declared variable appears in at least one equation
        - Number of equations equals number of variables

        Raises:
            ModelSpecError: If validation fails
        """
        used: set[str] = set()
        for eq in self.equations:
            for vname in sorted(eq.variables):
                if vname not in self.variables:
                    raise UndeclaredSymbolError(vname, context=f"equation '{eq.name}'")
            used |= eq.variables

        unused = [v for v in self.variables if v not in used]
        if unused:
            raise ModelSpecError(
                f"Variables do not appear in any equation: {unused}"
            )

        if len(self.equations) != len(self.variables):
            raise EquationCountError(
                len(self.equations), len(self.variables), context=self.name
            )
        self._validated = True

    def check_parameters(self, parameters: Mapping[str, float]) -> None:
        """Raise MissingInputError unless every referenced parameter is set."""
        missing = [p for p in self.parameter_names if p not in parameters]
        if missing:
            raise MissingInputError(missing, context=f"model '{self.name}'")

    def get_equation(self, name: str) -> Equation:
        for eq in self.equations:
            if eq.name == name:
                return eq
        raise UndeclaredSymbolError(name, context=f"model '{self.name}' equations")

    @property
    def is_validated(self) -> bool:
        return self._validated

    @property
    def n_equations(self) -> int:
        return len(self.equations)

    @property
    def n_variables(self) -> int:
        return len(self.variables)

    @property
    def equation_names(self) -> list[str]:
        return [eq.name for eq in self.equations]

    @property
    def parameter_names(self) -> list[str]:
        """Sorted names of all parameters referenced by any equation."""
        names: set[str] = set()
        for eq in self.equations:
            names |= eq.parameters
        return sorted(names)

    def summary(self) -> str:
        """Return a human-readable summary of the system."""
        lines = [
            f"Model: {self.name}",
            f"  Variables: {self.n_variables}",
            f"  Equations: {self.n_equations}",
            f"  Parameters: {len(self.parameter_names)}",
        ]
        for eq in self.equations:
            lines.append(f"    {eq}")
        return "\n".join(lines)

    def __str__(self) -> str:
        return self.summary()
