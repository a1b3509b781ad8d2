"""Tests for the analytical resolver."""

from __future__ import annotations

import pytest

from steadykit.exceptions import (
    DerivationError,
    DuplicateSymbolError,
    InvalidDomainError,
    MissingInputError,
    ModelSpecError,
)
from steadykit.model import DerivationStep, ParameterSet, SubstitutionResolver, div, log


def _rbc_prices() -> SubstitutionResolver:
    return (
        SubstitutionResolver("prices")
        .require("beta", "delta", "alpha")
        .variable(
            "rk",
            lambda q: 1.0 / q["beta"] - 1.0 + q["delta"],
            inputs=("beta", "delta"),
            domain="positive",
            satisfies=("euler",),
        )
        .parameter(
            "k_y",
            lambda q: div(q["alpha"], q["rk"]),
            inputs=("alpha", "rk"),
            domain="positive",
        )
    )


TARGETS = {"beta": 0.99, "delta": 0.025, "alpha": 0.33}


def test_resolve_in_order():
    resolution = _rbc_prices().resolve(ParameterSet(TARGETS))
    rk = 1.0 / 0.99 - 1.0 + 0.025
    assert resolution.values["rk"] == pytest.approx(rk, abs=1e-15)
    assert resolution.parameters["k_y"] == pytest.approx(0.33 / rk, abs=1e-12)
    assert resolution.parameters.derived_names == frozenset({"k_y"})
    assert resolution.equations == frozenset({"euler"})
    assert resolution.order == ("rk", "k_y")


def test_resolve_accepts_plain_mapping():
    resolution = _rbc_prices().resolve(TARGETS)
    assert "k_y" in resolution.parameters


def test_referentially_transparent():
    resolver = _rbc_prices()
    first = resolver.resolve(TARGETS)
    second = resolver.resolve(TARGETS)
    assert dict(first.values) == dict(second.values)
    assert first.parameters.to_dict() == second.parameters.to_dict()


def test_missing_target_names_all():
    with pytest.raises(MissingInputError) as exc_info:
        _rbc_prices().resolve({"beta": 0.99})
    assert exc_info.value.names == ("delta", "alpha")
    assert exc_info.value.cause == "missing_target"


def test_step_reads_undeclared_input():
    resolver = SubstitutionResolver().variable("x", lambda q: q["hidden"], inputs=())
    with pytest.raises(ModelSpecError, match="hidden"):
        resolver.resolve({"hidden": 1.0})


def test_step_input_not_yet_known():
    resolver = SubstitutionResolver().variable("x", lambda q: q["y"], inputs=("y",))
    with pytest.raises(MissingInputError, match="derivation of 'x'"):
        resolver.resolve({})


def test_domain_violation_in_formula():
    resolver = SubstitutionResolver().parameter(
        "ratio", lambda q: div(q["a"], q["b"]), inputs=("a", "b")
    )
    with pytest.raises(DerivationError) as exc_info:
        resolver.resolve({"a": 1.0, "b": 0.0})
    exc = exc_info.value
    assert exc.quantity == "ratio"
    assert exc.cause == "invalid_domain"
    assert isinstance(exc, InvalidDomainError)


def test_log_outside_domain():
    resolver = SubstitutionResolver().variable("la", lambda q: log(q["a"]), inputs=("a",))
    with pytest.raises(DerivationError, match="la"):
        resolver.resolve({"a": -1.0})


@pytest.mark.parametrize(
    ("domain", "value"),
    [
        ("positive", 0.0),
        ("nonnegative", -0.1),
        ("fraction", 1.0),
        ("below_one", 1.5),
    ],
)
def test_declared_domain_enforced(domain, value):
    resolver = SubstitutionResolver().variable(
        "x", lambda q: q["v"], inputs=("v",), domain=domain
    )
    with pytest.raises(DerivationError, match="x"):
        resolver.resolve({"v": value})


def test_non_finite_result():
    resolver = SubstitutionResolver().variable("x", lambda q: q["v"] * float("inf"), inputs=("v",))
    with pytest.raises(DerivationError, match="non-finite"):
        resolver.resolve({"v": 1.0})


def test_derived_parameter_collides_with_target():
    with pytest.raises(DuplicateSymbolError, match="k_y"):
        _rbc_prices().resolve({**TARGETS, "k_y": 10.0})


def test_duplicate_step():
    resolver = SubstitutionResolver().variable("x", lambda q: 1.0, inputs=())
    with pytest.raises(DuplicateSymbolError):
        resolver.variable("x", lambda q: 2.0, inputs=())


def test_invalid_step_definition():
    with pytest.raises(ModelSpecError):
        DerivationStep("x", lambda q: 1.0, frozenset(), domain="imaginary")
    with pytest.raises(ModelSpecError):
        DerivationStep("x", lambda q: 1.0, frozenset(), kind="shock")


def test_introspection():
    resolver = _rbc_prices()
    assert resolver.required == ("beta", "delta", "alpha")
    assert resolver.step_names == ["rk", "k_y"]
    assert resolver.derived_parameters == ["k_y"]
    assert resolver.pinned_variables == ["rk"]
    assert "prices" in repr(resolver)
