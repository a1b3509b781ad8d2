"""Tests for calibration file loading and steady-state export."""

from __future__ import annotations

import pytest
import yaml

from steadykit import load_calibration, solve_calibration, steady_state_to_yaml
from steadykit.exceptions import DerivationError, ParseError
from steadykit.io import CalibrationSpec
from steadykit.io.formats import yaml_to_calibration
from steadykit.solvers import SolverConfig


def test_load_yaml_file(configs_dir):
    spec = load_calibration(configs_dir / "rbc_numerical.yaml")
    assert isinstance(spec, CalibrationSpec)
    assert spec.model == "rbc_crra"
    assert spec.options == {"labor": "numerical"}
    assert spec.targets["beta"] == 0.9901
    assert spec.initial_guess == {"n": 0.5}
    assert spec.config.tol == 1e-11
    assert spec.config.max_iter == 40


def test_solve_yaml_file(configs_dir):
    numerical = solve_calibration(configs_dir / "rbc_numerical.yaml")
    analytical = solve_calibration(configs_dir / "rbc_analytical.yaml")
    assert numerical.method == "newton"
    assert analytical.method == "analytical"
    assert numerical["n"] == pytest.approx(analytical["n"], abs=1e-9)


def test_solve_fiscal_file(configs_dir):
    ss = solve_calibration(configs_dir / "fiscal_calibrate.yaml")
    assert ss["y"] == 1.0
    assert ss["n"] == 0.30
    assert "z" in ss.parameters.derived_names


def test_bad_shares_file_fails_in_resolver(configs_dir):
    with pytest.raises(DerivationError, match="profit_share"):
        solve_calibration(configs_dir / "fiscal_bad_shares.yaml")


def test_unknown_solver_option(configs_dir):
    with pytest.raises(ParseError, match="line_search"):
        load_calibration(configs_dir / "invalid_solver.yaml")


def test_load_from_dict():
    spec = load_calibration(
        {
            "model": "rbc_crra",
            "options": {"labor": "analytical"},
            "targets": {"alpha": 0.35, "beta": 0.9901},
        }
    )
    assert spec.config == SolverConfig()
    assert dict(spec.initial_guess) == {}
    assert spec.build_model().name == "rbc_crra"


def test_dict_with_wrong_format():
    with pytest.raises(ValueError, match="format"):
        load_calibration({"model": "rbc_crra", "targets": {}}, format="yaml")


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_calibration(tmp_path / "nope.yaml")


def test_unknown_extension(tmp_path):
    path = tmp_path / "calibration.toml"
    path.write_text("model = 'rbc_crra'\n")
    with pytest.raises(ValueError, match="extension"):
        load_calibration(path)


@pytest.mark.parametrize(
    ("content", "message"),
    [
        ("- just\n- a list\n", "top level"),
        ("targets: {alpha: 0.3}\n", "name a model"),
        ("model: rbc_crra\n", "targets"),
        ("model: rbc_crra\ntargets: {alpha: high}\n", "alpha"),
        ("model: rbc_crra\ntargets: {alpha: true}\n", "alpha"),
        ("model: rbc_crra\ntargets: [0.3]\n", "mapping"),
        ("model: rbc_crra\ntargets: {}\nshocks: {e: 0.01}\n", "Unknown sections"),
        ("model: rbc_crra\ntargets: {}\nsolver: {max_iter: 0}\n", "max_iter"),
        ("model: [unclosed\n", "Invalid YAML"),
    ],
)
def test_parse_errors(content, message):
    with pytest.raises(ParseError, match=message):
        yaml_to_calibration(content)


def test_export_fiscal(fiscal_targets):
    ss = solve_calibration({"model": "fiscal_growth", "targets": fiscal_targets})
    text = steady_state_to_yaml(ss)
    data = yaml.safe_load(text)
    assert data["model"] == "fiscal_growth"
    assert data["method"] == "analytical"
    assert data["steady_state"]["y"] == pytest.approx(1.0)
    assert set(data["derived_parameters"]) == {"profit_share", "psi", "z"}
    assert "ybar" in data["parameters"]
    assert data["max_residual"] <= 1e-8
    assert "numerical" not in data


def test_export_numerical(configs_dir):
    ss = solve_calibration(configs_dir / "rbc_numerical.yaml")
    data = yaml.safe_load(steady_state_to_yaml(ss))
    assert data["method"] == "newton"
    assert "n" in data["numerical"]
    assert data["iterations"] == ss.n_iterations
    assert list(data["steady_state"]) == list(ss.names)
