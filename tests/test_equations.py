"""Tests for equations, guarded math and the residual function."""

from __future__ import annotations

import math

import numpy as np
import pytest

from steadykit.exceptions import (
    DuplicateSymbolError,
    EquationCountError,
    MissingInputError,
    ModelSpecError,
    UndeclaredSymbolError,
)
from steadykit.model import (
    DomainViolation,
    Equation,
    EquationSystem,
    InvalidResidual,
    ParameterSet,
    ResidualFunction,
    VariableVector,
    div,
    exp,
    log,
    power,
    sqrt,
)


def _toy_system() -> EquationSystem:
    """Two-equation growth toy: k = (alpha*beta)^(1/(1-alpha)), c = k^alpha - delta*k."""
    system = EquationSystem("toy", variables=["k", "c"])

    @system.equation("capital", variables=("k",), parameters=("alpha", "beta"))
    def _capital(v, p):
        return p["alpha"] * p["beta"] * power(v["k"], p["alpha"] - 1.0) - 1.0

    @system.equation("consumption", variables=("k", "c"), parameters=("alpha", "delta"))
    def _consumption(v, p):
        return v["c"] - power(v["k"], p["alpha"]) + p["delta"] * v["k"]

    return system


TOY_PARAMS = {"alpha": 0.3, "beta": 0.95, "delta": 0.1}


class TestGuardedMath:
    def test_log(self):
        assert log(math.e) == pytest.approx(1.0)
        with pytest.raises(DomainViolation):
            log(0.0)
        with pytest.raises(DomainViolation):
            log(-1.0)

    def test_power(self):
        assert power(4.0, 0.5) == pytest.approx(2.0)
        assert power(0.0, 2.0) == 0.0
        with pytest.raises(DomainViolation, match="negative base"):
            power(-8.0, 1.0 / 3.0)
        with pytest.raises(DomainViolation, match="zero base"):
            power(0.0, -2.0)

    def test_sqrt_exp_div(self):
        assert sqrt(9.0) == 3.0
        with pytest.raises(DomainViolation):
            sqrt(-1.0)
        with pytest.raises(DomainViolation, match="overflow"):
            exp(1e6)
        assert div(1.0, 4.0) == 0.25
        with pytest.raises(DomainViolation):
            div(1.0, 0.0)

    def test_domain_violation_is_arithmetic_error(self):
        assert issubclass(DomainViolation, ArithmeticError)


class TestEquationSystem:
    def test_validate_ok(self):
        system = _toy_system()
        system.validate()
        assert system.is_validated
        assert system.equation_names == ["capital", "consumption"]
        assert system.parameter_names == ["alpha", "beta", "delta"]

    def test_not_square(self):
        system = EquationSystem("bad", variables=["x", "y"])
        system.add_equation(Equation("e1", lambda v, p: v["x"] + v["y"], variables={"x", "y"}))
        with pytest.raises(EquationCountError) as exc_info:
            system.validate()
        assert exc_info.value.n_equations == 1
        assert exc_info.value.n_unknowns == 2

    def test_undeclared_variable(self):
        system = EquationSystem("bad", variables=["x"])
        system.add_equation(Equation("e1", lambda v, p: v["z"], variables={"z"}))
        with pytest.raises(UndeclaredSymbolError, match="z"):
            system.validate()

    def test_unused_variable(self):
        system = EquationSystem("bad", variables=["x", "y"])
        system.add_equation(Equation("e1", lambda v, p: v["x"], variables={"x"}))
        system.add_equation(Equation("e2", lambda v, p: v["x"] - 1.0, variables={"x"}))
        with pytest.raises(ModelSpecError, match="y"):
            system.validate()

    def test_duplicates(self):
        with pytest.raises(DuplicateSymbolError):
            EquationSystem("bad", variables=["x", "x"])
        system = _toy_system()
        with pytest.raises(DuplicateSymbolError):
            system.add_equation(Equation("capital", lambda v, p: 0.0))

    def test_adding_equation_invalidates(self):
        system = _toy_system()
        system.validate()
        system.add_variables("n")
        assert not system.is_validated

    def test_check_parameters(self):
        system = _toy_system()
        system.check_parameters(TOY_PARAMS)
        with pytest.raises(MissingInputError) as exc_info:
            system.check_parameters({"alpha": 0.3})
        assert exc_info.value.names == ("beta", "delta")

    def test_undeclared_read_inside_equation(self):
        eq = Equation("sneaky", lambda v, p: v["x"] + p["hidden"], variables={"x"})
        with pytest.raises(UndeclaredSymbolError, match="hidden"):
            eq.residual({"x": 1.0}, {"hidden": 2.0})

    def test_get_equation(self):
        system = _toy_system()
        assert system.get_equation("capital").name == "capital"
        with pytest.raises(UndeclaredSymbolError):
            system.get_equation("nope")


class TestResidualFunction:
    def test_zero_at_closed_form(self):
        alpha, beta, delta = TOY_PARAMS["alpha"], TOY_PARAMS["beta"], TOY_PARAMS["delta"]
        k = (alpha * beta) ** (1.0 / (1.0 - alpha))
        c = k**alpha - delta * k
        fn = ResidualFunction(_toy_system(), TOY_PARAMS)
        np.testing.assert_allclose(fn([k, c]), [0.0, 0.0], atol=1e-12)

    def test_idempotent_and_pure(self):
        fn = ResidualFunction(_toy_system(), TOY_PARAMS)
        x = np.array([0.2, 0.5])
        first = fn(x)
        second = fn(x)
        np.testing.assert_array_equal(first, second)
        np.testing.assert_array_equal(x, [0.2, 0.5])

    def test_invalid_residual_sentinel(self):
        fn = ResidualFunction(_toy_system(), TOY_PARAMS)
        result = fn([-1.0, 0.5])
        assert isinstance(result, InvalidResidual)
        assert result.equation == "capital"
        assert "negative base" in result.reason

    def test_zero_division_becomes_sentinel(self):
        system = EquationSystem("ratio", variables=["x"])
        system.add_equation(Equation("ratio", lambda v, p: 1.0 / v["x"] - 2.0, variables={"x"}))
        result = ResidualFunction(system, {})([0.0])
        assert isinstance(result, InvalidResidual)
        assert result.equation == "ratio"

    def test_non_finite_becomes_sentinel(self):
        system = EquationSystem("nan", variables=["x"])
        system.add_equation(Equation("nan", lambda v, p: v["x"] * float("inf"), variables={"x"}))
        result = ResidualFunction(system, {})([0.0])
        assert isinstance(result, InvalidResidual)

    def test_subset_with_fixed_values(self):
        fn = ResidualFunction(
            _toy_system(),
            TOY_PARAMS,
            unknowns=("c",),
            fixed={"k": 1.0},
            equations=["consumption"],
        )
        assert fn.is_square
        assert fn.equation_names == ["consumption"]
        assert dict(fn.fixed) == {"k": 1.0}
        # c - 1 + 0.1 = 0 at c = 0.9
        np.testing.assert_allclose(fn([0.9]), [0.0], atol=1e-15)
        assert fn.assignment([0.9]) == {"k": 1.0, "c": 0.9}

    def test_missing_parameter_fails_at_construction(self):
        with pytest.raises(MissingInputError) as exc_info:
            ResidualFunction(_toy_system(), {"alpha": 0.3})
        assert set(exc_info.value.names) == {"beta", "delta"}

    def test_missing_fixed_variable_fails_at_construction(self):
        with pytest.raises(MissingInputError, match="k"):
            ResidualFunction(_toy_system(), TOY_PARAMS, unknowns=("c",))

    def test_undeclared_unknown_or_equation(self):
        with pytest.raises(UndeclaredSymbolError):
            ResidualFunction(_toy_system(), TOY_PARAMS, unknowns=("k", "zzz"))
        with pytest.raises(UndeclaredSymbolError):
            ResidualFunction(_toy_system(), TOY_PARAMS, equations=["capital", "nope"])

    def test_overlap_fixed_and_unknown(self):
        with pytest.raises(ModelSpecError):
            ResidualFunction(_toy_system(), TOY_PARAMS, unknowns=("k", "c"), fixed={"k": 1.0})

    def test_residual_dict_and_vector(self):
        fn = ResidualFunction(_toy_system(), ParameterSet(TOY_PARAMS))
        res = fn.residual_dict([0.2, 0.5])
        assert list(res) == ["capital", "consumption"]
        vec = fn.vector([0.2, 0.5])
        assert isinstance(vec, VariableVector)
        np.testing.assert_array_equal(fn.evaluate(vec), fn([0.2, 0.5]))

    def test_evaluate_rejects_wrong_order(self):
        fn = ResidualFunction(_toy_system(), TOY_PARAMS)
        with pytest.raises(ValueError):
            fn.evaluate(VariableVector(("c", "k"), np.array([0.5, 0.2])))

    def test_wrong_length(self):
        fn = ResidualFunction(_toy_system(), TOY_PARAMS)
        with pytest.raises(ValueError):
            fn([1.0])
