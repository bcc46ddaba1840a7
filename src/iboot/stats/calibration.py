"""Iterated (double) bootstrap calibration.

Every outer resample is itself bootstrapped with ``C`` bootknife resamples.
The inner results calibrate the outer estimates:

* bias and standard error are corrected with the inner means and variances;
* the position of the original estimate within each inner distribution
  (:func:`coverage_proportion`) yields a calibration curve mapping nominal to
  actual coverage, from which calibrated percentile cuts are read.
"""

from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from ..exceptions import CalibrationWarning, StatisticError
from ..resampling.balanced import BalancedResampler
from ..utils.parallel import parallel_map
from ..utils.seed import spawn_generators
from .empirical import empirical_cdf, quantile
from .evaluator import Statistic, StatisticEvaluator

__all__ = [
    "CalibrationCurve",
    "CalibrationEngine",
    "CalibrationOutput",
    "InnerBootstrap",
    "InnerResult",
    "calibrated_bias",
    "calibrated_probabilities",
    "calibrated_std_error",
    "calibration_curve",
    "check_calibration_alpha",
    "coverage_proportion",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CalibrationCurve:
    """Nominal coverage levels paired with the coverage actually achieved.

    Both arrays are nondecreasing; :meth:`calibrate` reads the nominal level
    that achieves a target actual coverage.
    """

    nominal: np.ndarray
    actual: np.ndarray

    def calibrate(
        self,
        target: float | np.ndarray,
        *,
        left: float | None = None,
        right: float | None = None,
    ) -> float | np.ndarray:
        return quantile(self.nominal, self.actual, target, left=left, right=right)

    def to_array(self) -> np.ndarray:
        """Two-column ``[nominal, actual]`` array."""
        return np.column_stack([self.nominal, self.actual])


@dataclass(frozen=True)
class InnerResult:
    original: np.ndarray
    bias: np.ndarray
    std_error: np.ndarray
    pr: np.ndarray


def coverage_proportion(bootstat: np.ndarray, reference: np.ndarray) -> np.ndarray:
    """Proportion of bootstrap statistics at or below ``reference``.

    Ties are broken by linear interpolation between the largest statistic at
    or below the reference and the smallest one above it. No interpolation
    happens when every statistic lies at or below the reference or when the
    two bracketing statistics coincide.

    Parameters
    ----------
    bootstat:
        ``(m, B)`` bootstrap statistics (a 1-D input is one component).
    reference:
        ``m`` reference values.

    Returns
    -------
    numpy.ndarray
        ``m`` proportions in ``[0, 1]``.
    """
    bs = np.atleast_2d(np.asarray(bootstat, dtype=float))
    ref = np.atleast_1d(np.asarray(reference, dtype=float))
    m, B = bs.shape
    out = np.empty(m)
    for j in range(m):
        row = bs[j]
        below = row <= ref[j]
        pr = int(below.sum())
        t_low = row[below].max() if below.any() else row.min()
        t_high = row[~below].min() if (~below).any() else row.max()
        dt = t_high - t_low
        if pr < B and dt > 0:
            value = pr + (ref[j] - t_low) * (min(pr + 1, B) - pr) / dt
        else:
            value = pr
        out[j] = min(max(value / B, 0.0), 1.0)
    return out


@dataclass(frozen=True)
class InnerBootstrap:
    """Parameters of the second-level bootstrap run on each outer resample.

    The value is passed explicitly to every outer resample so the inner runs
    share no mutable state.
    """

    nboot: int
    statistic: Statistic
    reference: np.ndarray
    strata: np.ndarray | None = None
    mode: str = "bootknife"
    vectorized: bool = False

    def run(self, sample: Sequence[np.ndarray], rng: np.random.Generator) -> InnerResult:
        """Bootstrap ``sample`` and summarise it against the reference."""
        evaluator = StatisticEvaluator(
            self.statistic,
            sample,
            n_jobs=1,
            backend="sequential",
            vectorized=self.vectorized,
        )
        index_matrix = BalancedResampler(rng).generate(
            evaluator.n, self.nboot, mode=self.mode, strata=self.strata
        )
        bootstat_all, keep = evaluator.evaluate(index_matrix)
        bootstat = bootstat_all[:, keep]
        mean = bootstat.mean(axis=1)
        std_error = bootstat.std(axis=1, ddof=1) if bootstat.shape[1] > 1 else np.zeros(evaluator.m)
        return InnerResult(
            original=evaluator.original,
            bias=mean - evaluator.original,
            std_error=std_error,
            pr=coverage_proportion(bootstat, self.reference),
        )


class _InnerTask:
    """Run the inner bootstrap for one outer resample column."""

    def __init__(self, inner: InnerBootstrap, samples: Sequence[np.ndarray]) -> None:
        self.inner = inner
        self.samples = tuple(samples)

    def __call__(self, item: tuple[np.ndarray, np.random.Generator]) -> InnerResult:
        column, rng = item
        return self.inner.run([s[column] for s in self.samples], rng)


@dataclass(frozen=True)
class CalibrationOutput:
    """Inner results stacked per outer resample, each ``(m, B)``."""

    original: np.ndarray
    bias: np.ndarray
    variance: np.ndarray
    pr: np.ndarray

    @property
    def mu(self) -> np.ndarray:
        """Inner bootstrap means (``bias + original``)."""
        return self.bias + self.original


class CalibrationEngine:
    """Fan the inner bootstraps out over the outer resamples."""

    def __init__(self, inner: InnerBootstrap, *, n_jobs: int = 1, backend: str = "sequential") -> None:
        self.inner = inner
        self.n_jobs = int(n_jobs)
        self.backend = backend

    def run(
        self,
        evaluator: StatisticEvaluator,
        index_matrix: np.ndarray,
        rng: np.random.Generator,
    ) -> CalibrationOutput:
        B = index_matrix.shape[1]
        generators = spawn_generators(rng, B)
        task = _InnerTask(self.inner, evaluator.samples)
        items = [(index_matrix[:, b], generators[b]) for b in range(B)]
        logger.debug(
            "Running %d inner bootstraps of %d resamples (backend=%s, n_jobs=%d)",
            B,
            self.inner.nboot,
            self.backend,
            self.n_jobs,
        )
        try:
            results = parallel_map(task, items, backend=self.backend, max_workers=self.n_jobs)
        except StatisticError:
            raise
        except Exception as exc:
            raise StatisticError(f"inner bootstrap failed: {exc}") from exc
        return CalibrationOutput(
            original=np.column_stack([r.original for r in results]),
            bias=np.column_stack([r.bias for r in results]),
            variance=np.column_stack([r.std_error**2 for r in results]),
            pr=np.column_stack([r.pr for r in results]),
        )


def calibrated_bias(bootstat: np.ndarray, mu: np.ndarray, original: np.ndarray) -> np.ndarray:
    """Double-bootstrap bias: outer bias minus the estimated bias of that bias."""
    outer_mean = bootstat.mean(axis=1)
    b = outer_mean - original
    c = mu.mean(axis=1) - 2 * outer_mean + original
    return b - c


def calibrated_std_error(bootstat: np.ndarray, variance: np.ndarray) -> np.ndarray:
    """``sqrt(var(outer) ** 2 / mean(inner variances))``."""
    outer_var = bootstat.var(axis=1, ddof=1)
    with np.errstate(divide="ignore", invalid="ignore"):
        return np.sqrt(outer_var**2 / variance.mean(axis=1))


def calibration_curve(pr: np.ndarray, *, paired: bool) -> CalibrationCurve:
    """Calibration curve of one component's coverage proportions.

    For a scalar (two-tailed) alpha the curve is built from ``|2U - 1|``, the
    central coverage achieved; for a pair of probabilities from ``U`` itself.
    """
    values = np.asarray(pr, dtype=float) if paired else np.abs(2 * np.asarray(pr, dtype=float) - 1)
    nominal, actual, _ = empirical_cdf(values, trim=True, complete=1)
    return CalibrationCurve(nominal=nominal, actual=actual)


def calibrated_probabilities(pr: np.ndarray, alpha: float | np.ndarray) -> tuple[np.ndarray, CalibrationCurve]:
    """Percentile cuts achieving the requested coverage for one component.

    Returns the pair of cuts and the calibration curve used.
    """
    alpha_arr = np.atleast_1d(np.asarray(alpha, dtype=float))
    if alpha_arr.size == 1:
        curve = calibration_curve(pr, paired=False)
        top = float(curve.nominal.max())
        vk = curve.calibrate(1 - alpha_arr[0], left=top, right=top)
        cuts = np.array([0.5 * (1 - vk), 0.5 * (1 + vk)])
    else:
        curve = calibration_curve(pr, paired=True)
        lower = curve.calibrate(alpha_arr[0], left=float(curve.nominal.min()), right=float(curve.nominal.min()))
        upper = curve.calibrate(alpha_arr[1], left=float(curve.nominal.max()), right=float(curve.nominal.max()))
        cuts = np.array([lower, upper], dtype=float)
    if cuts[0] <= 0 or cuts[1] >= 1:
        message = f"Calibrated probabilities {cuts.tolist()} reached 0 or 1; the interval is unreliable"
        logger.warning(message)
        warnings.warn(message, CalibrationWarning, stacklevel=3)
    return cuts, curve


def check_calibration_alpha(alpha: float | np.ndarray, n_inner: int) -> None:
    """Warn when ``alpha`` is too extreme for ``n_inner`` inner resamples."""
    alpha_arr = np.atleast_1d(np.asarray(alpha, dtype=float))
    tail = float(np.min(np.minimum(alpha_arr, 1 - alpha_arr)))
    if 1 / tail > 0.5 * n_inner:
        message = (
            f"alpha={alpha_arr.tolist()} is too extreme for calibration with {n_inner} inner "
            "resamples; increase the number of inner resamples"
        )
        logger.warning(message)
        warnings.warn(message, CalibrationWarning, stacklevel=3)
