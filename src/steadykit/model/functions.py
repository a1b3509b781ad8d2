"""Domain-guarded math for writing model equations.

Equations and derivation formulas use these helpers instead of bare
``math`` calls or ``**`` so that evaluating outside the mathematical domain
(log of a non-positive number, power of a negative base, division by zero)
raises ``DomainViolation`` instead of producing NaN, a complex number, or a
silently wrong value. The residual function turns a ``DomainViolation``
into an invalid-residual outcome the root finder can react to.
"""

from __future__ import annotations

import math


class DomainViolation(ArithmeticError):
    """Raised when a guarded function is evaluated outside its domain."""


def log(x: float) -> float:
    """Natural logarithm, defined for x > 0."""
    if not x > 0.0:
        raise DomainViolation(f"log of non-positive value {x!r}")
    return math.log(x)


def exp(x: float) -> float:
    """Exponential."""
    try:
        return math.exp(x)
    except OverflowError as exc:
        raise DomainViolation(f"exp overflow at {x!r}") from exc


def sqrt(x: float) -> float:
    """Square root, defined for x >= 0."""
    if not x >= 0.0:
        raise DomainViolation(f"sqrt of negative value {x!r}")
    return math.sqrt(x)


def power(base: float, exponent: float) -> float:
    """Real power on a non-negative base.

    ``0 ** e`` is only defined for ``e > 0``. Negative bases are rejected
    even for integer exponents: in economic equations they always signal a
    quantity (consumption, capital, hours) that left its admissible range.
    """
    if not base >= 0.0:
        raise DomainViolation(f"power of negative base {base!r}")
    if base == 0.0 and not exponent > 0.0:
        raise DomainViolation(f"zero base with non-positive exponent {exponent!r}")
    try:
        return math.pow(base, exponent)
    except OverflowError as exc:
        raise DomainViolation(f"power overflow: {base!r} ** {exponent!r}") from exc


def div(numerator: float, denominator: float) -> float:
    """Division with a zero-denominator guard."""
    if denominator == 0.0:
        raise DomainViolation(f"division of {numerator!r} by zero")
    return numerator / denominator

