"""Steady state of the RBC/CRRA model, numerically and in closed form.

Run from repository root:
    python examples/rbc_crra_steady_state.py
"""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np

from steadykit import compute_steady_state, solve_calibration, sweep_steady_state
from steadykit.models import default_calibration, get_model


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    targets = default_calibration("rbc_crra")

    numerical = compute_steady_state(get_model("rbc_crra"), targets)
    analytical = compute_steady_state(get_model("rbc_crra", labor="analytical"), targets)
    print(numerical)
    print()
    gap = np.max(np.abs(numerical.to_array() - analytical.to_array()))
    print(f"Max gap numerical vs closed form: {gap:.2e}")
    print()

    sweep = sweep_steady_state(
        get_model("rbc_crra"),
        targets,
        "etal",
        np.linspace(0.5, 3.0, 6),
        continuation=True,
    )
    print(sweep[["n", "c", "k", "converged"]].to_string())
    print()

    repo_root = Path(__file__).resolve().parents[1]
    ss = solve_calibration(repo_root / "tests" / "fixtures" / "configs" / "fiscal_calibrate.yaml")
    print(ss)


if __name__ == "__main__":
    main()
