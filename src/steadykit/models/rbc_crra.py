"""RBC model with CRRA utility and separable disutility of labor.

Households maximize
    sum beta^t [gamma * c^(1-etac) / (1-etac) - psi * n^(1+etal) / (1+etal)]
subject to
    c + iv = rk * k + w * n,   k' = (1-delta) * k + iv
while firms produce y = a * k^alpha * n^(1-alpha) with log-AR(1) technology
    log(a') = rhoa * log(a) + eps.

Steady state (variable order):
    y c k n a rk w iv uc ul fn fk

The capital-labor ratio, the rental rate and the wage follow in closed form
from the Euler equation. Hours n solve

    psi * n^etal = gamma * c^(-etac) * w

which with c = (c/n) * n is explicit in n for this separable utility. The
``labor="numerical"`` variant pins only a, rk and fk analytically and hands
the remaining nine variables to the root finder, starting from n = 1/3.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Literal

from steadykit.exceptions import ModelSpecError
from steadykit.model.calibration import SubstitutionResolver
from steadykit.model.definition import SteadyStateModel
from steadykit.model.equations import EquationSystem
from steadykit.model.functions import div, log, power
from steadykit.model.parameters import ParameterSet

VARIABLES = ("y", "c", "k", "n", "a", "rk", "w", "iv", "uc", "ul", "fn", "fk")
PARAMETERS = ("alpha", "beta", "delta", "gamma", "psi", "rhoa", "etac", "etal")

DEFAULT_CALIBRATION: dict[str, float] = {
    "alpha": 0.35,
    "beta": 0.9901,
    "delta": 0.025,
    "gamma": 1.0,
    "psi": 1.7333,
    "rhoa": 0.9,
    "etac": 2.0,
    "etal": 1.5,
}

LABOR_GUESS = 1.0 / 3.0

LaborMode = Literal["numerical", "analytical"]


def build_system() -> EquationSystem:
    """Steady-state equations of the RBC model."""
    system = EquationSystem("rbc_crra", variables=list(VARIABLES))

    @system.equation(
        "utility_c",
        variables=("uc", "c"),
        parameters=("gamma", "etac"),
        description="marginal utility of consumption",
    )
    def _utility_c(v, p):
        return v["uc"] - p["gamma"] * power(v["c"], -p["etac"])

    @system.equation(
        "utility_n",
        variables=("ul", "n"),
        parameters=("psi", "etal"),
        description="marginal utility of labor",
    )
    def _utility_n(v, p):
        return v["ul"] + p["psi"] * power(v["n"], p["etal"])

    @system.equation(
        "mpk",
        variables=("fk", "a", "k", "n"),
        parameters=("alpha",),
        description="marginal product of capital",
    )
    def _mpk(v, p):
        return v["fk"] - p["alpha"] * v["a"] * power(div(v["k"], v["n"]), p["alpha"] - 1.0)

    @system.equation(
        "mpl",
        variables=("fn", "a", "k", "n"),
        parameters=("alpha",),
        description="marginal product of labor",
    )
    def _mpl(v, p):
        return v["fn"] - (1.0 - p["alpha"]) * v["a"] * power(div(v["k"], v["n"]), p["alpha"])

    @system.equation(
        "euler",
        variables=("rk",),
        parameters=("beta", "delta"),
        description="intertemporal optimality",
    )
    def _euler(v, p):
        return 1.0 - p["beta"] * (1.0 - p["delta"] + v["rk"])

    @system.equation("wage", variables=("w", "fn"))
    def _wage(v, p):
        return v["w"] - v["fn"]

    @system.equation("rental", variables=("rk", "fk"))
    def _rental(v, p):
        return v["rk"] - v["fk"]

    @system.equation(
        "labor_supply",
        variables=("ul", "uc", "w"),
        description="intratemporal optimality",
    )
    def _labor_supply(v, p):
        return -v["ul"] - v["uc"] * v["w"]

    @system.equation(
        "production",
        variables=("y", "a", "k", "n"),
        parameters=("alpha",),
    )
    def _production(v, p):
        alpha = p["alpha"]
        return v["y"] - v["a"] * power(v["k"], alpha) * power(v["n"], 1.0 - alpha)

    @system.equation(
        "capital",
        variables=("iv", "k"),
        parameters=("delta",),
        description="law of motion of capital",
    )
    def _capital(v, p):
        return v["iv"] - p["delta"] * v["k"]

    @system.equation("resource", variables=("y", "c", "iv"))
    def _resource(v, p):
        return v["y"] - v["c"] - v["iv"]

    @system.equation(
        "technology",
        variables=("a",),
        parameters=("rhoa",),
        description="log-AR(1) technology at its fixed point",
    )
    def _technology(v, p):
        return (1.0 - p["rhoa"]) * log(v["a"])

    return system


def _capital_labor_ratio(q: Mapping[str, float]) -> float:
    return power(div(q["alpha"] * q["a"], q["fk"]), div(1.0, 1.0 - q["alpha"]))


def _consumption_labor_ratio(q: Mapping[str, float]) -> float:
    k_n = _capital_labor_ratio(q)
    return q["a"] * power(k_n, q["alpha"]) - q["delta"] * k_n


def build_resolver(labor: LaborMode = "numerical") -> SubstitutionResolver:
    """Closed-form part of the steady state.

    Args:
        labor: "numerical" pins only technology and the rental rate;
            "analytical" pins every variable
    """
    resolver = (
        SubstitutionResolver(f"rbc_crra[{labor}]")
        .require(*PARAMETERS)
        .variable("a", lambda q: 1.0, inputs=(), domain="positive", satisfies=("technology",))
        .variable(
            "rk",
            lambda q: 1.0 / q["beta"] - 1.0 + q["delta"],
            inputs=("beta", "delta"),
            domain="positive",
            satisfies=("euler",),
        )
        .variable("fk", lambda q: q["rk"], inputs=("rk",), domain="positive", satisfies=("rental",))
    )
    if labor == "numerical":
        return resolver
    if labor != "analytical":
        raise ModelSpecError(f"labor must be 'numerical' or 'analytical', got '{labor}'")

    ratio_inputs = ("alpha", "delta", "a", "fk")
    return (
        resolver.variable(
            "fn",
            lambda q: (1.0 - q["alpha"]) * q["a"] * power(_capital_labor_ratio(q), q["alpha"]),
            inputs=ratio_inputs,
            domain="positive",
        )
        .variable("w", lambda q: q["fn"], inputs=("fn",), domain="positive", satisfies=("wage",))
        .variable(
            "n",
            lambda q: power(
                div(
                    q["gamma"] * q["w"] * power(_consumption_labor_ratio(q), -q["etac"]),
                    q["psi"],
                ),
                div(1.0, q["etal"] + q["etac"]),
            ),
            inputs=(*ratio_inputs, "gamma", "psi", "etac", "etal", "w"),
            domain="positive",
        )
        .variable(
            "k",
            lambda q: q["n"] * _capital_labor_ratio(q),
            inputs=(*ratio_inputs, "n"),
            domain="positive",
            satisfies=("mpk", "mpl"),
        )
        .variable(
            "y",
            lambda q: q["a"] * power(q["k"], q["alpha"]) * power(q["n"], 1.0 - q["alpha"]),
            inputs=("a", "k", "n", "alpha"),
            domain="positive",
            satisfies=("production",),
        )
        .variable(
            "iv",
            lambda q: q["delta"] * q["k"],
            inputs=("delta", "k"),
            domain="positive",
            satisfies=("capital",),
        )
        .variable(
            "c",
            lambda q: q["y"] - q["iv"],
            inputs=("y", "iv"),
            domain="positive",
            satisfies=("resource",),
        )
        .variable(
            "uc",
            lambda q: q["gamma"] * power(q["c"], -q["etac"]),
            inputs=("gamma", "c", "etac"),
            domain="positive",
            satisfies=("utility_c",),
        )
        .variable(
            "ul",
            lambda q: -q["psi"] * power(q["n"], q["etal"]),
            inputs=("psi", "n", "etal"),
            satisfies=("utility_n", "labor_supply"),
        )
    )


def initial_guess(
    parameters: ParameterSet, pinned: Mapping[str, float]
) -> dict[str, float]:
    """Starting values consistent with everything except labor supply.

    Uses the closed-form ratios at n = 1/3.
    """
    q = {**parameters, **pinned}
    alpha, delta = q["alpha"], q["delta"]
    n = LABOR_GUESS
    k_n = _capital_labor_ratio(q)
    k = k_n * n
    y = q["a"] * power(k, alpha) * power(n, 1.0 - alpha)
    iv = delta * k
    c = y - iv
    w = (1.0 - alpha) * q["a"] * power(k_n, alpha)
    return {
        "y": y,
        "c": c,
        "k": k,
        "n": n,
        "w": w,
        "iv": iv,
        "uc": q["gamma"] * power(c, -q["etac"]),
        "ul": -q["psi"] * power(n, q["etal"]),
        "fn": w,
    }


def rbc_crra(labor: LaborMode = "numerical") -> SteadyStateModel:
    """Build the RBC/CRRA steady-state model.

    Args:
        labor: How hours are determined, "numerical" (root finder) or
            "analytical" (closed form)

    Returns:
        SteadyStateModel
    """
    return SteadyStateModel(
        name="rbc_crra",
        system=build_system(),
        resolver=build_resolver(labor),
        guess=initial_guess,
        description=f"RBC with CRRA utility, labor solved {labor}ly",
    )
