"""Tests for ParameterSet and VariableVector."""

from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from steadykit.exceptions import (
    DuplicateSymbolError,
    InvalidDomainError,
    MissingInputError,
)
from steadykit.model import ParameterSet, VariableVector


class TestParameterSet:
    def test_mapping_protocol(self):
        params = ParameterSet({"alpha": 0.35, "beta": 0.99})
        assert params["alpha"] == 0.35
        assert set(params) == {"alpha", "beta"}
        assert len(params) == 2
        assert "beta" in params

    def test_values_coerced_to_float(self):
        params = ParameterSet({"n": 1})
        assert isinstance(params["n"], float)

    @pytest.mark.parametrize("value", [float("nan"), float("inf"), "abc", None])
    def test_rejects_non_finite_or_non_numeric(self, value):
        with pytest.raises(InvalidDomainError, match="alpha"):
            ParameterSet({"alpha": value})

    def test_require_lists_every_missing_name(self):
        params = ParameterSet({"alpha": 0.35})
        with pytest.raises(MissingInputError) as exc_info:
            params.require("alpha", "beta", "delta", context="rbc")
        assert exc_info.value.names == ("beta", "delta")
        assert exc_info.value.cause == "missing_target"
        assert "rbc" in str(exc_info.value)

    def test_with_derived_extends_and_tags(self):
        params = ParameterSet({"beta": 0.99}).with_derived({"rk": 0.035})
        assert params["rk"] == 0.035
        assert params.derived_names == frozenset({"rk"})
        assert params.exogenous_names == frozenset({"beta"})
        assert params.is_derived("rk")
        assert not params.is_derived("beta")

    def test_derived_written_once(self):
        params = ParameterSet({"beta": 0.99}).with_derived({"rk": 0.035})
        with pytest.raises(DuplicateSymbolError, match="rk"):
            params.with_derived({"rk": 0.04})
        with pytest.raises(DuplicateSymbolError, match="beta"):
            params.with_derived({"beta": 0.98})

    def test_updated_drops_derived(self):
        params = ParameterSet({"beta": 0.99}).with_derived({"rk": 0.035})
        new = params.updated({"beta": 0.98})
        assert new["beta"] == 0.98
        assert "rk" not in new
        assert new.derived_names == frozenset()
        # Original untouched
        assert params["beta"] == 0.99

    def test_updated_refuses_derived_name(self):
        params = ParameterSet({"beta": 0.99}).with_derived({"rk": 0.035})
        with pytest.raises(DuplicateSymbolError):
            params.updated({"rk": 0.04})

    def test_exogenous_and_dict_round_trip(self):
        params = ParameterSet({"a": 1.0, "b": 2.0}).with_derived({"c": 3.0})
        assert params.exogenous().to_dict() == {"a": 1.0, "b": 2.0}
        assert ParameterSet.from_dict(params.to_dict()) == params.to_dict()

    def test_coerce_is_identity_for_parameter_sets(self):
        params = ParameterSet({"a": 1.0})
        assert ParameterSet.coerce(params) is params
        assert isinstance(ParameterSet.coerce({"a": 1.0}), ParameterSet)

    def test_derived_names_must_exist(self):
        with pytest.raises(MissingInputError):
            ParameterSet({"a": 1.0}, derived=["b"])

    def test_str_marks_derived(self):
        text = str(ParameterSet({"a": 1.0}).with_derived({"b": 2.0}))
        assert "b = 2 (derived)" in text


class TestVariableVector:
    def test_from_mapping_follows_name_order(self):
        vec = VariableVector.from_mapping(["k", "c"], {"c": 2.0, "k": 10.0})
        assert vec.names == ("k", "c")
        np.testing.assert_array_equal(vec.to_array(), [10.0, 2.0])
        assert vec["c"] == 2.0

    def test_from_mapping_missing_without_default(self):
        with pytest.raises(MissingInputError) as exc_info:
            VariableVector.from_mapping(["k", "c", "n"], {"k": 1.0})
        assert exc_info.value.names == ("c", "n")

    def test_from_mapping_default(self):
        vec = VariableVector.from_mapping(["k", "c"], {"k": 5.0}, default=1.0)
        assert vec.as_dict() == {"k": 5.0, "c": 1.0}

    def test_values_read_only(self):
        vec = VariableVector(("x",), np.array([1.0]))
        with pytest.raises(ValueError):
            vec.values[0] = 2.0

    def test_input_array_not_aliased(self):
        arr = np.array([1.0, 2.0])
        vec = VariableVector(("a", "b"), arr)
        arr[0] = 99.0
        assert vec["a"] == 1.0

    def test_duplicate_names(self):
        with pytest.raises(DuplicateSymbolError):
            VariableVector(("a", "a"), np.array([1.0, 2.0]))

    def test_length_mismatch(self):
        with pytest.raises(ValueError):
            VariableVector(("a", "b"), np.array([1.0]))

    def test_with_values_and_equality(self):
        vec = VariableVector(("a", "b"), np.array([1.0, 2.0]))
        other = vec.with_values(np.array([3.0, 4.0]))
        assert other.names == vec.names
        assert other["b"] == 4.0
        assert vec == VariableVector(("a", "b"), np.array([1.0, 2.0]))
        assert vec != other

    def test_is_finite(self):
        assert VariableVector(("a",), np.array([1.0])).is_finite()
        assert not VariableVector(("a",), np.array([np.nan])).is_finite()

    def test_to_series(self):
        series = VariableVector(("a", "b"), np.array([1.0, 2.0])).to_series()
        assert isinstance(series, pd.Series)
        assert list(series.index) == ["a", "b"]
        assert series["b"] == 2.0
