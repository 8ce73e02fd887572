# Kepler's equation for hyperbolic orbits

from __future__ import annotations

import math
from typing import NamedTuple

# Beyond this |M| Newton-Raphson started from H0 = M cannot close the gap
# within the iteration budget (each step shrinks H by roughly 1).
_LARGE_MEAN_ANOMALY = 6.0


class HyperbolicAnomaly(NamedTuple):
    value: float
    iterations: int
    converged: bool


def initial_hyperbolic_guess(M: float, e: float) -> float:
    if abs(M) < _LARGE_MEAN_ANOMALY:
        return M
    return math.copysign(math.log(2.0 * abs(M) / e + 1.8), M)


def solve_hyperbolic_keplers_equation(M: float, e: float, tol: float = 1e-10, max_iter: int = 20) -> HyperbolicAnomaly:
    """
    Solve the hyperbolic Kepler equation
        M = e sinh(H) - H
    for the hyperbolic anomaly H by Newton-Raphson.

    Running out of iterations is not an error: the last iterate is returned
    with converged=False and the caller decides how loudly to report it.

    Args:
        M: Mean anomaly (rad), any sign
        e: eccentricity (e > 1)
        tol: stop once |f(H)| < tol
        max_iter: iteration cap

    Returns:
        HyperbolicAnomaly(value, iterations, converged)
    """
    if not e > 1.0:
        raise ValueError(f"Hyperbolic Kepler solver requires e > 1. Got: {e}")
    if not math.isfinite(M):
        raise ValueError(f"Mean anomaly must be finite. Got: {M}")

    H = initial_hyperbolic_guess(M, e)
    for i in range(max_iter):
        f = e * math.sinh(H) - H - M
        if abs(f) < tol:
            return HyperbolicAnomaly(H, i, True)
        fp = e * math.cosh(H) - 1.0  # >= e - 1 > 0
        H -= f / fp

    f = e * math.sinh(H) - H - M
    return HyperbolicAnomaly(H, max_iter, abs(f) < tol)


def hyperbolic_true_anomaly(H: float, e: float) -> float:
    """ν = 2 atan( sqrt((e+1)/(e-1)) tanh(H/2) )"""
    return 2.0 * math.atan(math.sqrt((e + 1.0) / (e - 1.0)) * math.tanh(H / 2.0))
