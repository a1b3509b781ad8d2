"""Built-in steady-state models.

Example:
    from steadykit.models import get_model, rbc_crra

    model = get_model("rbc_crra", labor="analytical")
    ss = compute_steady_state(model, rbc_crra.DEFAULT_CALIBRATION)
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from steadykit.exceptions import ModelSpecError
from steadykit.model.definition import SteadyStateModel
from steadykit.models import fiscal_growth as _fiscal_growth
from steadykit.models import rbc_crra as _rbc_crra

_REGISTRY: dict[str, Callable[..., SteadyStateModel]] = {
    "rbc_crra": _rbc_crra.rbc_crra,
    "fiscal_growth": _fiscal_growth.fiscal_growth,
}

_DEFAULTS: dict[str, dict[str, float]] = {
    "rbc_crra": _rbc_crra.DEFAULT_CALIBRATION,
    "fiscal_growth": _fiscal_growth.DEFAULT_TARGETS,
}


def available_models() -> list[str]:
    """Names accepted by get_model()."""
    return sorted(_REGISTRY)


def get_model(name: str, **options: Any) -> SteadyStateModel:
    """Build a built-in model by name.

    Args:
        name: Model name (see available_models())
        **options: Model options, e.g. ``labor="analytical"`` for rbc_crra or
            ``calibrate=False`` for fiscal_growth

    Raises:
        ModelSpecError: If the name is unknown or an option is not accepted
    """
    try:
        factory = _REGISTRY[name]
    except KeyError:
        raise ModelSpecError(
            f"Unknown model '{name}'. Available: {', '.join(available_models())}"
        ) from None
    try:
        return factory(**options)
    except TypeError as exc:
        raise ModelSpecError(f"Invalid options for model '{name}': {exc}") from exc


def default_calibration(name: str) -> dict[str, float]:
    """Copy of a built-in model's default calibration."""
    if name not in _DEFAULTS:
        raise ModelSpecError(
            f"Unknown model '{name}'. Available: {', '.join(available_models())}"
        )
    return dict(_DEFAULTS[name])


__all__ = ["available_models", "default_calibration", "get_model"]
