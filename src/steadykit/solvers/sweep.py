"""Steady states over a grid of one calibration input."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

import numpy as np
import pandas as pd

from steadykit.exceptions import SteadyStateError
from steadykit.model.definition import SteadyStateModel
from steadykit.model.parameters import ParameterSet
from steadykit.solvers.config import SolverConfig
from steadykit.solvers.steady_state import compute_steady_state

logger = logging.getLogger(__name__)


def sweep_steady_state(
    model: SteadyStateModel,
    targets: ParameterSet | Mapping[str, float],
    parameter: str,
    values: Iterable[float],
    *,
    config: SolverConfig | None = None,
    initial_guess: Mapping[str, float] | None = None,
    raise_on_fail: bool = False,
    continuation: bool = False,
) -> pd.DataFrame:
    """Solve the steady state for each value of one exogenous input.

    Each solve is independent unless ``continuation`` is set, in which case
    the last successful solution seeds the next initial guess.

    Args:
        model: Model definition
        targets: Base calibration
        parameter: Name of the exogenous input to vary
        values: Grid of values for ``parameter``
        config: Solver options
        initial_guess: Starting values for the first solve
        raise_on_fail: Re-raise the first failure instead of recording it
        continuation: Warm-start from the previous solution

    Returns:
        DataFrame indexed by ``parameter`` with one column per variable and
        derived parameter, plus ``converged`` and ``cause``. Failed rows hold
        NaN values.
    """
    base = ParameterSet.coerce(targets).exogenous()
    grid = [float(v) for v in values]
    guess = dict(initial_guess) if initial_guess else None

    columns = list(model.system.variables)
    rows: list[dict[str, object]] = []

    for value in grid:
        params = base.updated({parameter: value})
        try:
            ss = compute_steady_state(model, params, initial_guess=guess, config=config)
        except SteadyStateError as exc:
            if raise_on_fail:
                raise
            logger.warning("%s=%.6g: %s failure: %s", parameter, value, exc.cause, exc)
            row: dict[str, object] = {name: np.nan for name in columns}
            row.update(converged=False, cause=exc.cause)
            rows.append(row)
            continue

        row = dict(ss.values)
        for name in sorted(ss.parameters.derived_names):
            if name not in columns:
                columns.append(name)
            row[name] = ss.parameters[name]
        row.update(converged=True, cause=None)
        rows.append(row)
        if continuation:
            guess = {name: ss[name] for name in ss.numerical}

    frame = pd.DataFrame(rows, columns=[*columns, "converged", "cause"])
    frame.index = pd.Index(grid, name=parameter)
    return frame
