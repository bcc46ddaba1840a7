"""Confidence interval construction from bootstrap statistics.

:class:`IntervalBuilder` owns one run: it evaluates the statistic on the
resamples, summarises bias and standard error, and converts the requested
probabilities into interval bounds.

Interval types
--------------
``percentile``
    Scalar alpha without calibration; equal-tailed cuts.
``bca``
    Pair of probabilities without calibration; bias-corrected and
    accelerated cuts (jackknife acceleration).
``calibrated``
    Any alpha with inner resamples; cuts read from the calibration curve.

Single-bootstrap bounds are quantiles of a shrunk Gaussian kernel density of
the bootstrap statistics (falling back to linear interpolation of the
empirical CDF); calibrated bounds use the empirical CDF directly.
"""

from __future__ import annotations

import logging
import warnings
from dataclasses import asdict, dataclass, field
from typing import Any

import numpy as np
import pandas as pd
from scipy import stats

from ..exceptions import BiasCorrectionWarning, IntervalHitEndWarning, KDEInversionError
from .calibration import (
    CalibrationCurve,
    CalibrationEngine,
    InnerBootstrap,
    calibrated_bias,
    calibrated_probabilities,
    calibrated_std_error,
    check_calibration_alpha,
)
from .empirical import empirical_cdf, expand_probabilities, kde_quantile, quantile
from .evaluator import StatisticEvaluator
from .jackknife import JackknifeEngine

__all__ = ["IntervalBuilder", "IntervalResult", "bca_probabilities"]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IntervalResult:
    """Bootstrap estimates for each component of the statistic.

    ``probabilities`` holds the percentile cuts actually used (after
    expansion, bias correction or calibration). ``bootstat`` keeps every
    resample, including columns the statistic returned NaN for.
    """

    original: np.ndarray
    bias: np.ndarray
    std_error: np.ndarray
    ci_lower: np.ndarray
    ci_upper: np.ndarray
    interval_type: str
    nboot: tuple[int, int]
    alpha: float | tuple[float, float] | None
    probabilities: np.ndarray
    z0: np.ndarray
    a: np.ndarray
    bootstat: np.ndarray
    calibration_curves: tuple[CalibrationCurve, ...] | None = None
    index_matrix: np.ndarray | None = field(default=None, repr=False)

    @property
    def ci(self) -> np.ndarray:
        """``(m, 2)`` array of lower and upper bounds."""
        return np.column_stack([self.ci_lower, self.ci_upper])

    def to_dict(self) -> dict[str, Any]:
        """Plain-Python summary (no bootstrap statistics or indices)."""
        data = asdict(self)
        data.pop("bootstat")
        data.pop("index_matrix")
        curves = data.pop("calibration_curves")
        summary: dict[str, Any] = {
            key: value.tolist() if isinstance(value, np.ndarray) else value for key, value in data.items()
        }
        summary["nboot"] = list(self.nboot)
        if isinstance(self.alpha, tuple):
            summary["alpha"] = list(self.alpha)
        summary["calibration_curves"] = (
            None if curves is None else [np.column_stack([c["nominal"], c["actual"]]).tolist() for c in curves]
        )
        return summary

    def to_frame(self) -> pd.DataFrame:
        """One row per statistic component."""
        frame = pd.DataFrame(
            {
                "original": self.original,
                "bias": self.bias,
                "std_error": self.std_error,
                "ci_lower": self.ci_lower,
                "ci_upper": self.ci_upper,
                "p_lower": self.probabilities[:, 0],
                "p_upper": self.probabilities[:, 1],
                "z0": self.z0,
                "a": self.a,
            }
        )
        frame.index.name = "component"
        frame.attrs["interval_type"] = self.interval_type
        return frame


def bca_probabilities(alpha: np.ndarray, z0: np.ndarray, a: np.ndarray) -> np.ndarray:
    """BCa percentile cuts ``Phi(z0 + (z0 + z) / (1 - a (z0 + z)))``, shape ``(m, 2)``.

    With ``z0 = a = 0`` the cuts equal ``alpha``.
    """
    z = stats.norm.ppf(np.asarray(alpha, dtype=float))
    z0 = np.atleast_1d(np.asarray(z0, dtype=float))[:, np.newaxis]
    a = np.atleast_1d(np.asarray(a, dtype=float))[:, np.newaxis]
    zz = z0 + z[np.newaxis, :]
    return stats.norm.cdf(z0 + zz / (1 - a * zz))


def _alpha_value(alpha: float | np.ndarray | None) -> float | tuple[float, float] | None:
    if alpha is None:
        return None
    arr = np.atleast_1d(alpha)
    if arr.size == 1:
        return float(arr[0])
    return float(arr[0]), float(arr[1])


class IntervalBuilder:
    """Build bootstrap estimates and intervals for one evaluator.

    Parameters
    ----------
    evaluator:
        Evaluator bound to the original (matched) data.
    alpha:
        Validated alpha: ``None``, a float or a length-2 array.
    n_inner:
        Inner resamples per outer resample (0 disables calibration).
    weights, strata:
        Validated weights and integer stratum codes.
    expand:
        Student-t expansion of the probabilities; ``None`` expands only for
        the mean.
    n_jobs, backend:
        Fan-out for the jackknife and the inner bootstraps.
    """

    def __init__(
        self,
        evaluator: StatisticEvaluator,
        *,
        alpha: float | np.ndarray | None,
        n_inner: int = 0,
        weights: np.ndarray | None = None,
        strata: np.ndarray | None = None,
        expand: bool | None = None,
        n_jobs: int = 1,
        backend: str = "sequential",
    ) -> None:
        self.evaluator = evaluator
        self.alpha = alpha
        self.n_inner = int(n_inner)
        self.weights = weights
        self.strata = strata
        self.expand = evaluator.statistic.is_mean if expand is None else bool(expand)
        self.n_jobs = n_jobs
        self.backend = backend
        self.n_strata = 1 if strata is None else int(np.unique(strata).size)

    @property
    def interval_type(self) -> str:
        if self.n_inner > 0:
            return "calibrated"
        if self.alpha is not None and np.ndim(self.alpha) == 0:
            return "percentile"
        return "bca"

    @property
    def uniform_weights(self) -> bool:
        return self.weights is None or bool(np.all(self.weights == self.weights[0]))

    def build(
        self,
        index_matrix: np.ndarray,
        rng: np.random.Generator,
        *,
        return_indices: bool = False,
    ) -> IntervalResult:
        evaluator = self.evaluator
        bootstat_all, keep = evaluator.evaluate(index_matrix)
        bootstat = bootstat_all[:, keep]
        T0 = evaluator.original
        m = evaluator.m
        B = bootstat.shape[1]

        z0 = np.full(m, np.nan)
        a = np.full(m, np.nan)
        curves: tuple[CalibrationCurve, ...] | None = None

        if self.n_inner > 0:
            if self.alpha is not None:
                check_calibration_alpha(self.alpha, self.n_inner)
            inner = InnerBootstrap(
                nboot=self.n_inner,
                statistic=evaluator.statistic,
                reference=T0,
                strata=self.strata,
                mode="bootknife",
                vectorized=evaluator.vectorized,
            )
            engine = CalibrationEngine(inner, n_jobs=self.n_jobs, backend=self.backend)
            output = engine.run(evaluator, index_matrix[:, keep], rng)
            bias = calibrated_bias(bootstat, output.mu, T0)
            std_error = calibrated_std_error(bootstat, output.variance)
            if self.alpha is None:
                probabilities = np.full((m, 2), np.nan)
                ci = np.full((m, 2), np.nan)
            else:
                probabilities = np.empty((m, 2))
                ci = np.empty((m, 2))
                collected = []
                for j in range(m):
                    probabilities[j], curve = calibrated_probabilities(output.pr[j], self.alpha)
                    collected.append(curve)
                    ci[j] = self._empirical_bounds(bootstat[j], probabilities[j])
                curves = tuple(collected)
        else:
            if self.uniform_weights:
                bias = bootstat.mean(axis=1) - T0
            else:
                bias = np.full(m, np.nan)
            std_error = bootstat.std(axis=1, ddof=1) if B > 1 else np.full(m, np.nan)
            if self.alpha is None:
                probabilities = np.full((m, 2), np.nan)
                ci = np.full((m, 2), np.nan)
            else:
                probabilities, z0, a = self._single_probabilities(bootstat)
                ci = np.empty((m, 2))
                for j in range(m):
                    ci[j] = self._kde_bounds(bootstat[j], probabilities[j], std_error[j], j)

        if self.alpha is not None:
            for j in range(m):
                self._check_hit_end(bootstat[j], probabilities[j], j)

        return IntervalResult(
            original=T0,
            bias=bias,
            std_error=std_error,
            ci_lower=ci[:, 0],
            ci_upper=ci[:, 1],
            interval_type=self.interval_type,
            nboot=(int(index_matrix.shape[1]), self.n_inner),
            alpha=_alpha_value(self.alpha),
            probabilities=probabilities,
            z0=z0,
            a=a,
            bootstat=bootstat_all,
            calibration_curves=curves,
            index_matrix=index_matrix if return_indices else None,
        )

    # Single bootstrap ---------------------------------------------------

    @property
    def degrees_of_freedom(self) -> int:
        return self.evaluator.n - self.n_strata

    def _expanded_alpha(self) -> np.ndarray:
        alpha = np.atleast_1d(np.asarray(self.alpha, dtype=float))
        df = self.degrees_of_freedom
        if not self.expand or df < 1:
            return alpha
        if alpha.size == 1:
            return 2 * np.atleast_1d(expand_probabilities(alpha / 2, df))
        return np.atleast_1d(expand_probabilities(alpha, df))

    def _single_probabilities(self, bootstat: np.ndarray) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
        m, B = bootstat.shape
        expanded = self._expanded_alpha()
        if expanded.size == 1:
            cuts = np.array([expanded[0] / 2, 1 - expanded[0] / 2])
            return np.tile(cuts, (m, 1)), np.full(m, np.nan), np.full(m, np.nan)

        a = JackknifeEngine(
            self.evaluator, weights=self.weights, strata=self.strata
        ).estimate_acceleration(bootstat)
        with np.errstate(divide="ignore"):
            z0 = stats.norm.ppf(np.sum(bootstat < self.evaluator.original[:, np.newaxis], axis=1) / B)
        if not np.all(np.isfinite(z0)):
            message = "Unable to calculate the bias correction constant; reverting to percentile intervals"
            logger.warning(message)
            warnings.warn(message, BiasCorrectionWarning, stacklevel=4)
            return np.tile(expanded, (m, 1)), np.zeros(m), np.zeros(m)

        return bca_probabilities(expanded, z0, a), z0, a

    def _kde_bounds(self, values: np.ndarray, cuts: np.ndarray, std_error: float, j: int) -> np.ndarray:
        df = self.degrees_of_freedom
        try:
            if df < 1:
                raise KDEInversionError("no degrees of freedom left for the kernel bandwidth")
            return np.asarray(
                kde_quantile(cuts, values, std_error * np.sqrt(1 / df), 1 - 1 / df), dtype=float
            )
        except KDEInversionError as exc:
            logger.info(
                "Falling back to linear interpolation for the percentiles of component %d (%s)", j, exc
            )
            return self._empirical_bounds(values, cuts)

    # Shared -------------------------------------------------------------

    @staticmethod
    def _empirical_bounds(values: np.ndarray, cuts: np.ndarray) -> np.ndarray:
        x, F, _ = empirical_cdf(values, trim=True, complete=1)
        lower = quantile(x, F, cuts[0], left=float(x.min()), right=float(x.min()))
        upper = quantile(x, F, cuts[1], left=float(x.max()), right=float(x.max()))
        return np.array([lower, upper], dtype=float)

    @staticmethod
    def _check_hit_end(values: np.ndarray, cuts: np.ndarray, j: int) -> None:
        if np.any(np.isnan(cuts)):
            return
        _, F, _ = empirical_cdf(values, trim=True, complete=1)
        if cuts[0] < F[0] or cuts[1] > F[-1]:
            message = (
                f"Interval for component {j} hit the end of the bootstrap distribution "
                f"(probabilities {np.round(cuts, 6).tolist()}); consider more resamples"
            )
            logger.warning(message)
            warnings.warn(message, IntervalHitEndWarning, stacklevel=4)
