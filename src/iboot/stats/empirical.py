"""Empirical distribution helpers for bootstrap statistics.

The functions here turn a vector of bootstrap replicates into percentile
bounds: a tie-aware empirical CDF, linear inverse-CDF interpolation, inversion
of a Gaussian kernel density estimate and the Student-t expansion of tail
probabilities used for small samples.
"""

from __future__ import annotations

import logging

import numpy as np
from scipy import optimize, stats

from ..config.constants import KDE_MAX_BRACKET_STEPS
from ..exceptions import KDEInversionError

__all__ = [
    "empirical_cdf",
    "expand_probabilities",
    "kde_quantile",
    "quantile",
]

logger = logging.getLogger(__name__)


def empirical_cdf(
    values: np.ndarray,
    *,
    trim: bool = True,
    complete: int = 0,
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Empirical CDF accounting for ties by competition ranking.

    Parameters
    ----------
    values:
        1-D array of observations; NaN entries are discarded.
    trim:
        Keep one entry per distinct value (the one carrying the last rank).
    complete:
        ``0`` uses the denominator ``N``; ``1`` uses ``N + 1`` so that
        interpolated quantiles follow Hyndman and Fan definition 6.

    Returns
    -------
    x, F, P
        Sorted values, cumulative probabilities ``rank_last / (N + complete)``
        and upper-tail probabilities ``1 - (rank_first - 1) / N``.
    """
    if complete not in (0, 1):
        raise ValueError("complete must be either 0 or 1")
    y = np.asarray(values, dtype=float)
    if y.ndim > 1 and min(y.shape) > 1:
        raise ValueError("values must be a vector")
    y = y.ravel()
    x = np.sort(y[~np.isnan(y)])
    N = x.size
    if N == 0:
        return x, np.empty(0), np.empty(0)

    unique, first, counts = np.unique(x, return_index=True, return_counts=True)
    last_rank = first + counts
    if trim:
        return unique, last_rank / (N + complete), 1.0 - first / N

    inverse = np.repeat(np.arange(unique.size), counts)
    return x, last_rank[inverse] / (N + complete), 1.0 - first[inverse] / N


def quantile(
    x: np.ndarray,
    F: np.ndarray,
    p: float | np.ndarray,
    *,
    left: float | None = None,
    right: float | None = None,
    extrapolate: bool = False,
) -> float | np.ndarray:
    """Linear interpolation of the inverse CDF defined by ``(x, F)``.

    Probabilities outside ``[F[0], F[-1]]`` map to ``left``/``right`` when
    given, to the end values of ``x`` otherwise, or are extrapolated linearly
    from the end segments when ``extrapolate`` is set.
    """
    x = np.asarray(x, dtype=float)
    F = np.asarray(F, dtype=float)
    p_arr = np.asarray(p, dtype=float)
    if x.size == 0:
        raise ValueError("cannot interpolate an empty distribution")
    if x.size == 1:
        out = np.full(p_arr.shape, x[0])
        return float(out) if out.ndim == 0 else out

    out = np.interp(p_arr, F, x, left=left, right=right)
    if extrapolate:
        low = p_arr < F[0]
        high = p_arr > F[-1]
        slope_low = (x[1] - x[0]) / (F[1] - F[0])
        slope_high = (x[-1] - x[-2]) / (F[-1] - F[-2])
        out = np.where(low, x[0] + (p_arr - F[0]) * slope_low, out)
        out = np.where(high, x[-1] + (p_arr - F[-1]) * slope_high, out)
    return float(out) if np.ndim(out) == 0 else out


def kde_quantile(
    p: float | np.ndarray,
    values: np.ndarray,
    bandwidth: float,
    shrinkage: float = 1.0,
) -> float | np.ndarray:
    """Invert the CDF of a Gaussian kernel density estimate of ``values``.

    Deviations from the mean are shrunk by ``sqrt(shrinkage)`` before the
    density is formed, which removes the variance added by the kernel.
    Probabilities 0 and 1 map to ``-inf`` and ``+inf``.

    Raises
    ------
    KDEInversionError
        If the bandwidth is not a positive finite number or a root cannot be
        bracketed.
    """
    if not np.isfinite(bandwidth) or bandwidth <= 0:
        raise KDEInversionError(f"bandwidth must be positive and finite, got {bandwidth}")
    if not np.isfinite(shrinkage) or shrinkage < 0:
        raise KDEInversionError(f"shrinkage must be nonnegative and finite, got {shrinkage}")

    Y = np.asarray(values, dtype=float).ravel()
    Y = Y[~np.isnan(Y)]
    if Y.size == 0:
        raise KDEInversionError("no finite values to build the density from")
    mu = Y.mean()
    Y = (Y - mu) * np.sqrt(shrinkage) + mu
    YS = np.sort(Y)
    N = Y.size

    probs = np.atleast_1d(np.asarray(p, dtype=float))
    result = np.empty(probs.shape)
    for i, prob in enumerate(probs):
        if np.isnan(prob):
            result[i] = np.nan
            continue
        if prob <= 0:
            result[i] = -np.inf
            continue
        if prob >= 1:
            result[i] = np.inf
            continue

        def objective(t: float, prob: float = prob) -> float:
            return float(np.mean(stats.norm.cdf((t - Y) / bandwidth)) - prob)

        x0 = YS[int(np.fix((N - 1) * prob))]
        lo, hi = min(YS[0], x0), max(YS[-1], x0)
        f_lo, f_hi = objective(lo), objective(hi)
        steps = 0
        while f_lo > 0 and steps < KDE_MAX_BRACKET_STEPS:
            lo -= bandwidth * 2**steps
            f_lo = objective(lo)
            steps += 1
        steps = 0
        while f_hi < 0 and steps < KDE_MAX_BRACKET_STEPS:
            hi += bandwidth * 2**steps
            f_hi = objective(hi)
            steps += 1
        if f_lo > 0 or f_hi < 0:
            raise KDEInversionError(f"could not bracket the KDE quantile for p={prob}")
        if f_lo == 0:
            result[i] = lo
        elif f_hi == 0:
            result[i] = hi
        else:
            result[i] = optimize.brentq(objective, lo, hi)

    if np.ndim(p) == 0:
        return float(result[0])
    return result


def expand_probabilities(p: float | np.ndarray, df: float) -> float | np.ndarray:
    """Expand tail probabilities as if sampling kurtosis scaled like Student's t.

    ``Phi(t_df^{-1}(p))``: probabilities below 0.5 shrink and those above 0.5
    grow, widening the interval for small ``df``.
    """
    if df <= 0:
        raise ValueError("degrees of freedom must be positive")
    out = stats.norm.cdf(stats.t.ppf(p, df))
    return float(out) if np.ndim(out) == 0 else out
