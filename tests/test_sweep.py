"""Tests for steady-state parameter sweeps."""

from __future__ import annotations

import logging

import numpy as np
import pandas as pd
import pytest

from steadykit import compute_steady_state, sweep_steady_state
from steadykit.exceptions import DerivationError
from steadykit.model import EquationSystem, SteadyStateModel, div, power
from steadykit.models import get_model


def test_rbc_sweep_over_labor_elasticity(rbc_targets):
    model = get_model("rbc_crra")
    grid = [1.0, 1.5, 2.0]
    frame = sweep_steady_state(model, rbc_targets, "etal", grid)

    assert isinstance(frame, pd.DataFrame)
    assert frame.index.name == "etal"
    assert list(frame.index) == grid
    assert frame["converged"].all()
    assert frame["cause"].isna().all()
    assert list(frame.columns[:12]) == list(model.variable_names)

    single = compute_steady_state(model, {**rbc_targets, "etal": 1.5})
    assert frame.loc[1.5, "n"] == pytest.approx(single["n"], abs=1e-9)
    # Capital-labor ratio does not depend on etal
    ratios = (frame["k"] / frame["n"]).to_numpy()
    np.testing.assert_allclose(ratios, ratios[0], rtol=1e-8)


def test_continuation_matches_independent_solves(rbc_targets):
    model = get_model("rbc_crra")
    grid = np.linspace(1.0, 3.0, 5)
    cold = sweep_steady_state(model, rbc_targets, "psi", grid)
    warm = sweep_steady_state(model, rbc_targets, "psi", grid, continuation=True)
    np.testing.assert_allclose(
        warm[list(model.variable_names)].to_numpy(),
        cold[list(model.variable_names)].to_numpy(),
        rtol=1e-8,
    )


def test_failures_recorded(fiscal_targets, caplog):
    model = get_model("fiscal_growth")
    with caplog.at_level(logging.WARNING, logger="steadykit"):
        frame = sweep_steady_state(model, fiscal_targets, "alpha", [0.30, 0.40])
    assert list(frame["converged"]) == [True, False]
    assert frame.loc[0.40, "cause"] == "invalid_domain"
    assert np.isnan(frame.loc[0.40, "y"])
    assert frame.loc[0.30, "z"] > 0.0
    assert "alpha=0.4" in caplog.text


def _growth_model() -> SteadyStateModel:
    system = EquationSystem("growth", variables=["k", "c"])

    @system.equation("capital", variables=("k",), parameters=("alpha", "beta"))
    def _capital(v, p):
        return p["alpha"] * p["beta"] * power(v["k"], p["alpha"] - 1.0) - 1.0

    @system.equation("consumption", variables=("k", "c"), parameters=("alpha", "delta"))
    def _consumption(v, p):
        return v["c"] - power(v["k"], p["alpha"]) + p["delta"] * v["k"]

    def _guess(p, pinned):
        return {"k": power(p["alpha"] * p["beta"], div(1.0, 1.0 - p["alpha"]))}

    return SteadyStateModel("growth", system, guess=_guess)


def test_undefined_default_guess_recorded(caplog):
    params = {"alpha": 0.3, "beta": 0.95, "delta": 0.1}
    with caplog.at_level(logging.WARNING, logger="steadykit"):
        frame = sweep_steady_state(_growth_model(), params, "alpha", [0.3, 1.0])
    assert list(frame["converged"]) == [True, False]
    assert frame.loc[1.0, "cause"] == "invalid_domain"
    assert np.isnan(frame.loc[1.0, "k"])
    assert frame.loc[0.3, "k"] == pytest.approx((0.3 * 0.95) ** (1.0 / 0.7), abs=1e-10)
    assert "alpha=1" in caplog.text


def test_failures_raised_on_request(fiscal_targets):
    model = get_model("fiscal_growth")
    with pytest.raises(DerivationError):
        sweep_steady_state(model, fiscal_targets, "alpha", [0.40], raise_on_fail=True)


def test_sweep_over_target(fiscal_targets):
    frame = sweep_steady_state(get_model("fiscal_growth"), fiscal_targets, "nbar", [0.25, 0.33])
    np.testing.assert_allclose(frame["n"].to_numpy(), [0.25, 0.33])
    # Same output target, more hours: lower wage
    assert frame.loc[0.33, "w"] < frame.loc[0.25, "w"]
