"""Balanced-growth model with public capital, government debt and labor taxes.

All quantities are detrended by the growth factor (1 + gz). Output uses
private capital, public capital and hours:

    y = z * k^alpha * kg^theta_g * n^alpha_n

Government consumption, public investment and debt are fixed shares of
output; the labor tax rate tau_n balances the budget given the capital tax
rate tau_k.

Two ways to use it:
- ``calibrate=True``: calibration-by-targeting. Output ``ybar`` and hours
  ``nbar`` are targets; productivity ``z`` and the labor disutility weight
  ``psi`` are backed out. Every variable follows by substitution, so the
  numerical stage is skipped.
- ``calibrate=False``: ``z`` and ``psi`` are structural inputs. Only the
  rental rate and the interest rate are closed form; output, hours and the
  tax rate are found numerically.

Both modes derive the profit share 1 - alpha - theta_g - alpha_n and reject
a negative one before any iteration.
"""

from __future__ import annotations

from collections.abc import Mapping

from steadykit.model.calibration import SubstitutionResolver
from steadykit.model.definition import SteadyStateModel
from steadykit.model.equations import EquationSystem
from steadykit.model.functions import div, power
from steadykit.model.parameters import ParameterSet

VARIABLES = ("y", "c", "k", "i", "n", "w", "rk", "r", "g", "ig", "kg", "b", "tau_n")

SHARED_PARAMETERS = (
    "alpha", "theta_g", "alpha_n", "delta", "delta_g", "gz", "beta",
    "sigma", "eta", "tau_k", "gy", "igy", "by",
)

DEFAULT_TARGETS: dict[str, float] = {
    "alpha": 0.30,
    "theta_g": 0.05,
    "alpha_n": 0.60,
    "delta": 0.10,
    "delta_g": 0.05,
    "gz": 0.02,
    "beta": 0.98,
    "sigma": 1.0,
    "eta": 1.0,
    "tau_k": 0.20,
    "gy": 0.15,
    "igy": 0.03,
    "by": 0.50,
    "ybar": 1.0,
    "nbar": 0.30,
}

LABOR_GUESS = 0.33


def build_system() -> EquationSystem:
    """Detrended steady-state equations."""
    system = EquationSystem("fiscal_growth", variables=list(VARIABLES))

    @system.equation(
        "production",
        variables=("y", "k", "kg", "n"),
        parameters=("z", "alpha", "theta_g", "alpha_n"),
    )
    def _production(v, p):
        return v["y"] - p["z"] * (
            power(v["k"], p["alpha"])
            * power(v["kg"], p["theta_g"])
            * power(v["n"], p["alpha_n"])
        )

    @system.equation("capital_demand", variables=("rk", "k", "y"), parameters=("alpha",))
    def _capital_demand(v, p):
        return v["rk"] * v["k"] - p["alpha"] * v["y"]

    @system.equation("labor_demand", variables=("w", "n", "y"), parameters=("alpha_n",))
    def _labor_demand(v, p):
        return v["w"] * v["n"] - p["alpha_n"] * v["y"]

    @system.equation(
        "capital_euler",
        variables=("rk",),
        parameters=("gz", "sigma", "beta", "tau_k", "delta"),
        description="after-tax return on capital",
    )
    def _capital_euler(v, p):
        return power(1.0 + p["gz"], p["sigma"]) - p["beta"] * (
            (1.0 - p["tau_k"]) * v["rk"] + 1.0 - p["delta"]
        )

    @system.equation(
        "bond_euler",
        variables=("r",),
        parameters=("gz", "sigma", "beta"),
    )
    def _bond_euler(v, p):
        return power(1.0 + p["gz"], p["sigma"]) - p["beta"] * (1.0 + v["r"])

    @system.equation(
        "capital_accumulation", variables=("i", "k"), parameters=("gz", "delta")
    )
    def _capital_accumulation(v, p):
        return v["i"] - (p["gz"] + p["delta"]) * v["k"]

    @system.equation(
        "public_capital", variables=("ig", "kg"), parameters=("gz", "delta_g")
    )
    def _public_capital(v, p):
        return v["ig"] - (p["gz"] + p["delta_g"]) * v["kg"]

    @system.equation(
        "labor_supply",
        variables=("n", "c", "tau_n", "w"),
        parameters=("psi", "eta", "sigma"),
    )
    def _labor_supply(v, p):
        return p["psi"] * power(v["n"], p["eta"]) - (
            power(v["c"], -p["sigma"]) * (1.0 - v["tau_n"]) * v["w"]
        )

    @system.equation("resource", variables=("y", "c", "i", "g", "ig"))
    def _resource(v, p):
        return v["y"] - v["c"] - v["i"] - v["g"] - v["ig"]

    @system.equation("gov_consumption", variables=("g", "y"), parameters=("gy",))
    def _gov_consumption(v, p):
        return v["g"] - p["gy"] * v["y"]

    @system.equation("public_investment", variables=("ig", "y"), parameters=("igy",))
    def _public_investment(v, p):
        return v["ig"] - p["igy"] * v["y"]

    @system.equation("debt_target", variables=("b", "y"), parameters=("by",))
    def _debt_target(v, p):
        return v["b"] - p["by"] * v["y"]

    @system.equation(
        "gov_budget",
        variables=("tau_n", "w", "n", "rk", "k", "g", "ig", "r", "b"),
        parameters=("tau_k", "gz"),
        description="balanced budget with detrended debt service",
    )
    def _gov_budget(v, p):
        revenue = v["tau_n"] * v["w"] * v["n"] + p["tau_k"] * v["rk"] * v["k"]
        debt_service = div(v["r"] - p["gz"], 1.0 + p["gz"]) * v["b"]
        return revenue - v["g"] - v["ig"] - debt_service

    return system


def _gross_growth(q: Mapping[str, float]) -> float:
    return power(1.0 + q["gz"], q["sigma"])


def _factor_shares(resolver: SubstitutionResolver) -> SubstitutionResolver:
    # Shares above one imply increasing returns and no steady state
    return resolver.parameter(
        "profit_share",
        lambda q: 1.0 - q["alpha"] - q["theta_g"] - q["alpha_n"],
        inputs=("alpha", "theta_g", "alpha_n"),
        domain="nonnegative",
        description="output share not paid to private factors or public capital",
    )


def _prices(resolver: SubstitutionResolver) -> SubstitutionResolver:
    return resolver.variable(
        "rk",
        lambda q: div(div(_gross_growth(q), q["beta"]) - 1.0 + q["delta"], 1.0 - q["tau_k"]),
        inputs=("gz", "sigma", "beta", "delta", "tau_k"),
        domain="positive",
        satisfies=("capital_euler",),
    ).variable(
        "r",
        lambda q: div(_gross_growth(q), q["beta"]) - 1.0,
        inputs=("gz", "sigma", "beta"),
        satisfies=("bond_euler",),
    )


def build_calibration_resolver() -> SubstitutionResolver:
    """Calibration-by-targeting: everything from ``ybar`` and ``nbar``."""
    resolver = SubstitutionResolver("fiscal_growth[calibrate]").require(
        *SHARED_PARAMETERS, "ybar", "nbar"
    )
    resolver = (
        _factor_shares(resolver)
        .variable("y", lambda q: q["ybar"], inputs=("ybar",), domain="positive")
        .variable("n", lambda q: q["nbar"], inputs=("nbar",), domain="positive")
    )
    return (
        _prices(resolver)
        .variable(
            "k",
            lambda q: div(q["alpha"] * q["y"], q["rk"]),
            inputs=("alpha", "y", "rk"),
            domain="positive",
            satisfies=("capital_demand",),
        )
        .variable(
            "i",
            lambda q: (q["gz"] + q["delta"]) * q["k"],
            inputs=("gz", "delta", "k"),
            domain="positive",
            satisfies=("capital_accumulation",),
        )
        .variable(
            "g",
            lambda q: q["gy"] * q["y"],
            inputs=("gy", "y"),
            domain="nonnegative",
            satisfies=("gov_consumption",),
        )
        .variable(
            "ig",
            lambda q: q["igy"] * q["y"],
            inputs=("igy", "y"),
            domain="positive",
            satisfies=("public_investment",),
        )
        .variable(
            "kg",
            lambda q: div(q["ig"], q["gz"] + q["delta_g"]),
            inputs=("ig", "gz", "delta_g"),
            domain="positive",
            satisfies=("public_capital",),
        )
        .variable(
            "b",
            lambda q: q["by"] * q["y"],
            inputs=("by", "y"),
            satisfies=("debt_target",),
        )
        .variable(
            "c",
            lambda q: q["y"] - q["i"] - q["g"] - q["ig"],
            inputs=("y", "i", "g", "ig"),
            domain="positive",
            satisfies=("resource",),
        )
        .variable(
            "w",
            lambda q: div(q["alpha_n"] * q["y"], q["n"]),
            inputs=("alpha_n", "y", "n"),
            domain="positive",
            satisfies=("labor_demand",),
        )
        .parameter(
            "z",
            lambda q: div(
                q["y"],
                power(q["k"], q["alpha"])
                * power(q["kg"], q["theta_g"])
                * power(q["n"], q["alpha_n"]),
            ),
            inputs=("y", "k", "kg", "n", "alpha", "theta_g", "alpha_n"),
            domain="positive",
            satisfies=("production",),
            description="total factor productivity",
        )
        .variable(
            "tau_n",
            lambda q: div(
                q["g"] + q["ig"]
                + div(q["r"] - q["gz"], 1.0 + q["gz"]) * q["b"]
                - q["tau_k"] * q["rk"] * q["k"],
                q["w"] * q["n"],
            ),
            inputs=("g", "ig", "r", "gz", "b", "tau_k", "rk", "k", "w", "n"),
            domain="below_one",
            satisfies=("gov_budget",),
        )
        .parameter(
            "psi",
            lambda q: div(
                power(q["c"], -q["sigma"]) * (1.0 - q["tau_n"]) * q["w"],
                power(q["n"], q["eta"]),
            ),
            inputs=("c", "sigma", "tau_n", "w", "n", "eta"),
            domain="positive",
            satisfies=("labor_supply",),
            description="labor disutility weight",
        )
    )


def build_structural_resolver() -> SubstitutionResolver:
    """Closed-form prices only; quantities are left to the root finder."""
    resolver = SubstitutionResolver("fiscal_growth[structural]").require(
        *SHARED_PARAMETERS, "z", "psi"
    )
    return _prices(_factor_shares(resolver))


def initial_guess(
    parameters: ParameterSet, pinned: Mapping[str, float]
) -> dict[str, float]:
    """Closed-form ratios at n = 0.33; only labor supply is violated."""
    q = {**parameters, **pinned}
    alpha, theta_g = q["alpha"], q["theta_g"]
    n = LABOR_GUESS
    k_y = div(alpha, q["rk"])
    kg_y = div(q["igy"], q["gz"] + q["delta_g"])
    y = power(
        q["z"] * power(k_y, alpha) * power(kg_y, theta_g) * power(n, q["alpha_n"]),
        div(1.0, 1.0 - alpha - theta_g),
    )
    k = k_y * y
    i = (q["gz"] + q["delta"]) * k
    g = q["gy"] * y
    ig = q["igy"] * y
    b = q["by"] * y
    w = div(q["alpha_n"] * y, n)
    debt_service = div(q["r"] - q["gz"], 1.0 + q["gz"]) * b
    tau_n = div(g + ig + debt_service - q["tau_k"] * alpha * y, w * n)
    return {
        "y": y,
        "c": y - i - g - ig,
        "k": k,
        "i": i,
        "n": n,
        "w": w,
        "g": g,
        "ig": ig,
        "kg": kg_y * y,
        "b": b,
        "tau_n": tau_n,
    }


def fiscal_growth(calibrate: bool = True) -> SteadyStateModel:
    """Build the fiscal growth steady-state model.

    Args:
        calibrate: Back out ``z`` and ``psi`` from ``ybar``/``nbar`` targets
            (True) or take them as given and solve numerically (False)
    """
    if calibrate:
        resolver = build_calibration_resolver()
        description = "Fiscal growth model, calibrated to output and hours targets"
    else:
        resolver = build_structural_resolver()
        description = "Fiscal growth model, structural parameters given"
    return SteadyStateModel(
        name="fiscal_growth",
        system=build_system(),
        resolver=resolver,
        guess=None if calibrate else initial_guess,
        description=description,
    )
