"""Jackknife estimate of the BCa acceleration constant."""

from __future__ import annotations

import logging
import warnings

import numpy as np
from scipy import stats

from ..exceptions import JackknifeWarning
from .evaluator import StatisticEvaluator

__all__ = ["JackknifeEngine", "acceleration", "influence_values", "leave_one_out"]

logger = logging.getLogger(__name__)


def leave_one_out(evaluator: StatisticEvaluator) -> np.ndarray:
    """Statistics of the ``n`` leave-one-out samples, shape ``(m, n)``."""
    n = evaluator.n
    rows = np.arange(n)
    # column i holds every row except i
    index_matrix = np.array([np.delete(rows, i) for i in range(n)]).T
    return evaluator.evaluate_subsets(index_matrix)


def influence_values(T: np.ndarray, group_sizes: np.ndarray | None = None) -> np.ndarray:
    """Jackknife influence values ``(n_g - 1) * (mean(T) - T_i)``.

    ``group_sizes`` gives, per observation, the size of its stratum; without
    strata every observation uses the full sample size.
    """
    T = np.atleast_2d(np.asarray(T, dtype=float))
    n = T.shape[1]
    scale = (n - 1) if group_sizes is None else (np.asarray(group_sizes, dtype=float) - 1)
    return scale * (T.mean(axis=1, keepdims=True) - T)


def acceleration(
    T: np.ndarray,
    weights: np.ndarray | None = None,
    group_sizes: np.ndarray | None = None,
) -> np.ndarray:
    """Acceleration constant from leave-one-out statistics ``T`` (``(m, n)``).

    Unweighted: ``sum(U**3) / (6 * sum(U**2) ** 1.5)``. With observation
    weights ``w`` (normalised to sum to one) the influence values are centred
    on the weighted mean and
    ``a = sum(w * U**3) / (6 * sum(w * U**2) ** 1.5 * sqrt(n))``.
    """
    T = np.atleast_2d(np.asarray(T, dtype=float))
    n = T.shape[1]
    with np.errstate(divide="ignore", invalid="ignore"):
        if weights is None:
            U = influence_values(T, group_sizes)
            return np.sum(U**3, axis=1) / (6 * np.sum(U**2, axis=1) ** 1.5)
        w = np.asarray(weights, dtype=float)
        w = w / w.sum()
        U = (n - 1) * (np.sum(w * T, axis=1, keepdims=True) - T)
        return np.sum(w * U**3, axis=1) / np.sum(w * U**2, axis=1) ** 1.5 / np.sqrt(n) / 6


class JackknifeEngine:
    """Estimate the acceleration constant, falling back when the jackknife fails.

    Parameters
    ----------
    evaluator:
        Evaluator bound to the original data.
    weights:
        Optional observation weights (weighted acceleration).
    strata:
        Optional integer stratum codes; influence values are scaled by the
        size of each observation's stratum.
    """

    def __init__(
        self,
        evaluator: StatisticEvaluator,
        *,
        weights: np.ndarray | None = None,
        strata: np.ndarray | None = None,
    ) -> None:
        self.evaluator = evaluator
        self.weights = None if weights is None or np.all(weights == weights[0]) else weights
        if strata is None:
            self.group_sizes = None
        else:
            codes = np.asarray(strata)
            self.group_sizes = np.bincount(codes)[codes]

    def estimate_acceleration(self, bootstat: np.ndarray) -> np.ndarray:
        """Return one acceleration constant per statistic component.

        Any exception raised by the statistic on the leave-one-out samples
        issues a :class:`JackknifeWarning` and yields ``a = 0``. A non-finite
        result is replaced by ``skewness(bootstat) / 6``.
        """
        m = self.evaluator.m
        try:
            T = leave_one_out(self.evaluator)
        except Exception as exc:
            message = f"Statistic failed during jackknife calculations ({exc}); acceleration constant set to 0"
            logger.warning(message)
            warnings.warn(message, JackknifeWarning, stacklevel=3)
            return np.zeros(m)

        a = acceleration(T, weights=self.weights, group_sizes=self.group_sizes)
        bad = ~np.isfinite(a)
        if np.any(bad):
            skew = stats.skew(np.atleast_2d(bootstat), axis=1, bias=True)
            a = np.where(bad, skew / 6, a)
            message = "Jackknife acceleration was not finite; using the skewness of the bootstrap statistics"
            logger.warning(message)
            warnings.warn(message, JackknifeWarning, stacklevel=3)
        logger.debug("Acceleration constant(s): %s", a)
        return a
