"""Parameter sets for steady-state calibration.

A ParameterSet holds:
- Exogenous values supplied by the calibration (structural coefficients
  and steady-state targets)
- Derived values written once by the analytical resolver
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Iterator, Mapping
from types import MappingProxyType

from steadykit.exceptions import (
    DuplicateSymbolError,
    InvalidDomainError,
    MissingInputError,
)


def _coerce_values(values: Mapping[str, float]) -> dict[str, float]:
    out: dict[str, float] = {}
    for name, value in values.items():
        if not isinstance(name, str) or not name:
            raise ValueError(f"Parameter names must be non-empty strings, got {name!r}")
        try:
            fval = float(value)
        except (TypeError, ValueError) as exc:
            raise InvalidDomainError(
                f"Parameter '{name}' must be a real number, got {value!r}"
            ) from exc
        if not math.isfinite(fval):
            raise InvalidDomainError(f"Parameter '{name}' must be finite, got {fval}")
        out[name] = fval
    return out


class ParameterSet(Mapping[str, float]):
    """Immutable mapping of parameter name to value.

    Example:
        params = ParameterSet({"alpha": 0.35, "beta": 0.99})
        params = params.with_derived({"rk": 1 / 0.99 - 1 + 0.025})
    """

    __slots__ = ("_values", "_derived")

    def __init__(
        self,
        values: Mapping[str, float] | None = None,
        *,
        derived: Iterable[str] = (),
    ) -> None:
        coerced = _coerce_values(values or {})
        derived_names = frozenset(derived)
        unknown = sorted(derived_names - coerced.keys())
        if unknown:
            raise MissingInputError(unknown, context="derived parameter names")
        self._values = MappingProxyType(coerced)
        self._derived = derived_names

    # Mapping protocol

    def __getitem__(self, name: str) -> float:
        return self._values[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"ParameterSet({dict(self._values)!r}, derived={sorted(self._derived)!r})"

    def __str__(self) -> str:
        lines = ["Parameters:"]
        for name, val in sorted(self._values.items()):
            tag = " (derived)" if name in self._derived else ""
            lines.append(f"  {name} = {val:.10g}{tag}")
        return "\n".join(lines)

    # Queries

    @property
    def derived_names(self) -> frozenset[str]:
        """Names written by the analytical resolver."""
        return self._derived

    @property
    def exogenous_names(self) -> frozenset[str]:
        """Names supplied by the calibration."""
        return frozenset(self._values) - self._derived

    def is_derived(self, name: str) -> bool:
        return name in self._derived

    def missing(self, names: Iterable[str]) -> list[str]:
        """Subset of ``names`` not present, in the given order."""
        return [name for name in names if name not in self._values]

    def require(self, *names: str, context: str = "") -> None:
        """Raise MissingInputError unless every name is present."""
        absent = self.missing(names)
        if absent:
            raise MissingInputError(absent, context=context)

    # Derivation

    def with_derived(self, values: Mapping[str, float]) -> ParameterSet:
        """Return a new set extended with derived parameters.

        Each derived name may be written only once.

        Raises:
            DuplicateSymbolError: If a name is already present
        """
        for name in values:
            if name in self._values:
                raise DuplicateSymbolError(name, kind="parameter")
        merged = dict(self._values)
        merged.update(_coerce_values(values))
        return ParameterSet(merged, derived=self._derived | frozenset(values))

    def updated(self, values: Mapping[str, float]) -> ParameterSet:
        """Return a new set with exogenous values replaced or added.

        Derived parameters are dropped: they are no longer consistent with
        the new inputs and must be re-derived.
        """
        for name in values:
            if name in self._derived:
                raise DuplicateSymbolError(name, kind="derived parameter")
        merged = {k: v for k, v in self._values.items() if k not in self._derived}
        merged.update(_coerce_values(values))
        return ParameterSet(merged)

    def exogenous(self) -> ParameterSet:
        """The calibration inputs only, without derived values."""
        return ParameterSet(
            {k: v for k, v in self._values.items() if k not in self._derived}
        )

    # Serialization

    def to_dict(self) -> dict[str, float]:
        return dict(self._values)

    @classmethod
    def from_dict(cls, data: Mapping[str, float]) -> ParameterSet:
        """Create from a plain mapping of exogenous values."""
        return cls(data)

    @classmethod
    def coerce(cls, value: ParameterSet | Mapping[str, float]) -> ParameterSet:
        """Return ``value`` as a ParameterSet (no copy if it already is one)."""
        if isinstance(value, ParameterSet):
            return value
        return cls(value)
