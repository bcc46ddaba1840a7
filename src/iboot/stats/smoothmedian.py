"""Smoothed median (Brown, Hall and Young 2001).

The smoothed median minimises ``sum_{i<j} sqrt((x_i - M)**2 + (x_j - M)**2)``,
a smooth objective whose minimiser is close to the sample median but whose
bootstrap distribution is far less discrete. The root of the first derivative
is found by Newton steps safeguarded with bisection.
"""

from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass

import numpy as np

from ..config.constants import SMOOTHMEDIAN_MAX_ITER, SMOOTHMEDIAN_REL_TOL
from ..exceptions import ConvergenceWarning

__all__ = ["SmoothedMedianSolver", "SolverResult", "smoothed_median"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SolverResult:
    """Outcome of :meth:`SmoothedMedianSolver.solve`."""

    estimate: float
    converged: bool
    iterations: int
    brackets: tuple[float, float]
    trace: tuple[tuple[float, float, float], ...] = ()
    """``(a, M, b)`` before the first iteration and after every update."""


class SmoothedMedianSolver:
    """Newton-bisection solver for the smoothed median of a vector.

    Parameters
    ----------
    tol:
        Absolute tolerance on the step and on the bracket width. ``None``
        uses ``1e-4`` times the sample range.
    max_iter:
        Maximum number of Newton-bisection iterations.
    """

    def __init__(self, tol: float | None = None, max_iter: int = SMOOTHMEDIAN_MAX_ITER) -> None:
        if tol is not None and (not np.isfinite(tol) or tol < 0):
            raise ValueError("tol must be a nonnegative finite number")
        if max_iter < 1:
            raise ValueError("max_iter must be at least 1")
        self.tol = tol
        self.max_iter = int(max_iter)

    def solve(self, x: np.ndarray) -> SolverResult:
        xs = np.sort(np.asarray(x, dtype=float).ravel())
        if xs.size == 0:
            raise ValueError("x must not be empty")
        if not np.all(np.isfinite(xs)):
            raise ValueError("x cannot contain NaN or Inf")

        n = xs.size
        M = float(np.median(xs))
        a, b = float(xs[0]), float(xs[-1])
        span = b - a
        tol = span * SMOOTHMEDIAN_REL_TOL if self.tol is None else self.tol

        i, j = np.triu_indices(n, k=1)
        xi, xj = xs[i], xs[j]
        sq_diff = (xi - xj) ** 2

        converged = False
        iterations = 0
        trace = [(a, M, b)]
        for iterations in range(1, self.max_iter + 1):
            if span <= tol:
                converged = True
                break
            D = (xi - M) ** 2 + (xj - M) ** 2
            nz = D != 0
            R = np.sqrt(D[nz])
            T = np.sum((2 * M - xi[nz] - xj[nz]) / R)
            U = np.sum(sq_diff[nz] * R / D[nz] ** 2)
            if U == 0:
                converged = True
                break
            step = T / U
            if abs(step) < tol:
                converged = True
                break
            if step < 0:
                a = M
            elif step > 0:
                b = M
            span = b - a
            newton = M - step
            M = newton if a < newton < b else 0.5 * (a + b)
            trace.append((a, M, b))

        if not converged:
            message = f"Smoothed median did not reach tolerance {tol:g} in {self.max_iter} iterations"
            logger.warning(message)
            warnings.warn(message, ConvergenceWarning, stacklevel=3)
        return SolverResult(
            estimate=M,
            converged=converged,
            iterations=iterations,
            brackets=(a, b),
            trace=tuple(trace),
        )


def smoothed_median(x: np.ndarray, axis: int = 0, tol: float | None = None) -> float | np.ndarray:
    """Smoothed median of ``x`` along ``axis``.

    A 1-D input, or a matrix with a single row, returns a float.
    For any other matrix the solver runs on each vector along ``axis``
    (columns for ``axis=0``), which makes the function usable as a vectorised
    bootstrap statistic.
    """
    arr = np.asarray(x, dtype=float)
    if not np.all(np.isfinite(arr)):
        raise ValueError("x cannot contain NaN or Inf")
    solver = SmoothedMedianSolver(tol=tol)
    if arr.ndim <= 1:
        return solver.solve(arr).estimate
    if arr.ndim != 2 or axis not in (0, 1, -1, -2):
        raise ValueError("x must be a vector or a matrix and axis must be 0 or 1")
    if arr.shape[0] == 1:
        # a single row is one sample whatever the axis
        return solver.solve(arr).estimate
    vectors = arr.T if axis in (0, -2) else arr
    return np.array([solver.solve(v).estimate for v in vectors])
