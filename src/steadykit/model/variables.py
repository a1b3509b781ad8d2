"""Ordered steady-state variable vectors."""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass

import numpy as np
import pandas as pd
from numpy.typing import NDArray

from steadykit.exceptions import DuplicateSymbolError, MissingInputError


@dataclass(frozen=True, slots=True, eq=False)
class VariableVector:
    """Ordered sequence of (name, value) pairs.

    The order is fixed by the equation system and must match the order the
    residual function expects. Values are stored in a read-only float64 array.

    Attributes:
        names: Variable names in system order
        values: Values aligned with ``names``
    """

    names: tuple[str, ...]
    values: NDArray[np.float64]

    def __post_init__(self) -> None:
        names = tuple(self.names)
        if len(set(names)) != len(names):
            dupes = sorted({n for n in names if names.count(n) > 1})
            raise DuplicateSymbolError(dupes[0], kind="variable")
        arr = np.array(self.values, dtype=np.float64).reshape(-1)
        if arr.shape[0] != len(names):
            raise ValueError(
                f"Expected {len(names)} values for {len(names)} names, got {arr.shape[0]}"
            )
        arr.flags.writeable = False
        object.__setattr__(self, "names", names)
        object.__setattr__(self, "values", arr)

    @classmethod
    def from_mapping(
        cls,
        names: Sequence[str],
        values: Mapping[str, float],
        default: float | None = None,
    ) -> VariableVector:
        """Align a name -> value mapping to ``names``.

        Raises:
            MissingInputError: If a name has no value and no default is given
        """
        if default is None:
            missing = [name for name in names if name not in values]
            if missing:
                raise MissingInputError(missing, context="variable vector")
            return cls(tuple(names), np.array([values[n] for n in names], dtype=np.float64))
        return cls(
            tuple(names),
            np.array([values.get(n, default) for n in names], dtype=np.float64),
        )

    def __len__(self) -> int:
        return len(self.names)

    def __iter__(self) -> Iterator[tuple[str, float]]:
        return self.items()

    def __getitem__(self, name: str) -> float:
        return float(self.values[self.index(name)])

    def __contains__(self, name: object) -> bool:
        return name in self.names

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, VariableVector):
            return NotImplemented
        return self.names == other.names and np.array_equal(self.values, other.values)

    def index(self, name: str) -> int:
        try:
            return self.names.index(name)
        except ValueError:
            raise KeyError(f"Variable '{name}' not in vector") from None

    def items(self) -> Iterator[tuple[str, float]]:
        return zip(self.names, (float(v) for v in self.values), strict=True)

    def as_dict(self) -> dict[str, float]:
        return dict(self.items())

    def to_array(self) -> NDArray[np.float64]:
        """Writable copy of the values."""
        return self.values.copy()

    def with_values(self, values: NDArray[np.float64] | Sequence[float]) -> VariableVector:
        """Same names, new values."""
        return VariableVector(self.names, np.asarray(values, dtype=np.float64))

    def is_finite(self) -> bool:
        return bool(np.all(np.isfinite(self.values)))

    def to_series(self, name: str = "value") -> pd.Series:
        return pd.Series(self.values, index=pd.Index(self.names, name="variable"), name=name)

    def __repr__(self) -> str:
        inner = ", ".join(f"{n}={v:.6g}" for n, v in self.items())
        return f"VariableVector({inner})"
