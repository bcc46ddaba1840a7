"""Public entry points.

Every function validates all of its arguments before any resampling starts
and owns a single :class:`numpy.random.Generator` built from ``seed``.

Example
-------
>>> import numpy as np
>>> from iboot import confidence_interval
>>> x = np.array([3, 5, 7, 18, 43, 85, 91, 98, 100, 130, 230, 487])
>>> result = confidence_interval(x, nboot=2000, statistic="mean", alpha=0.05, seed=1)
>>> result.interval_type
'percentile'
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Sequence, Union

import numpy as np

from .config.constants import DEFAULT_ALPHA, DEFAULT_NBOOT
from .config.loader import load_config
from .config.schemas import BootstrapConfig
from .exceptions import BootstrapInputError
from .resampling.balanced import BalancedResampler
from .stats.evaluator import Statistic, StatisticEvaluator
from .stats.intervals import IntervalBuilder, IntervalResult
from .stats.smoothmedian import smoothed_median as _smoothed_median
from .utils.checks import (
    as_samples,
    check_alpha,
    check_index_matrix,
    check_mode,
    check_nboot,
    check_strata,
    check_weights,
)
from .utils.parallel import resolve_parallelism
from .utils.seed import SeedLike, rng_factory

__all__ = [
    "BootstrapSamples",
    "bootstrap",
    "confidence_interval",
    "interval_from_config",
    "resample",
    "smoothed_median",
]

logger = logging.getLogger(__name__)

StatisticLike = Union[str, Any]


@dataclass(frozen=True)
class BootstrapSamples:
    """Bootstrap statistics ``(m, B)`` and the indices that produced them.

    ``index_matrix`` is a tuple of matrices (one per data argument) for
    unmatched resampling.
    """

    statistics: np.ndarray
    index_matrix: np.ndarray | tuple[np.ndarray, ...]


def _resolve_statistic(statistic: StatisticLike) -> Statistic:
    # ("var", 0) binds extra positional arguments to the statistic
    if isinstance(statistic, (tuple, list)):
        if not statistic:
            raise BootstrapInputError("statistic must not be empty")
        return Statistic.resolve(statistic[0], *statistic[1:])
    return Statistic.resolve(statistic)


def resample(
    n: int,
    nboot: int,
    *,
    mode: str = "bootstrap",
    weights: Any = None,
    strata: Any = None,
    seed: SeedLike = None,
) -> np.ndarray:
    """Balanced resample indices, shape ``(n, nboot)``, 0-based.

    See :class:`~iboot.resampling.balanced.BalancedResampler`.
    """
    return BalancedResampler(seed).generate(n, nboot, mode=mode, weights=weights, strata=strata)


def bootstrap(
    data: Any,
    nboot: int,
    statistic: StatisticLike,
    *,
    weights: Any = None,
    strata: Any = None,
    mode: str = "bootstrap",
    match: bool = True,
    seed: SeedLike = None,
    n_jobs: int | None = None,
    backend: str | None = None,
) -> BootstrapSamples:
    """Evaluate ``statistic`` on ``nboot`` balanced resamples of ``data``.

    Parameters
    ----------
    data:
        Array-like, or a tuple of array-likes passed to the statistic as
        separate positional arguments.
    nboot:
        Number of resamples.
    statistic:
        Callable, registered name (``"mean"``, ``"median"``, ``"var"``,
        ``"std"``, ``"smoothmedian"``), :class:`~iboot.stats.Statistic`, or a
        tuple ``(callable_or_name, *extra_args)``.
    weights:
        Resampling weights. With ``match=False`` a sequence holding one weight
        vector (or ``None``) per data argument.
    strata:
        Stratum labels (matched resampling only).
    mode:
        ``"bootstrap"`` or ``"bootknife"``.
    match:
        Resample the rows of all data arguments together (``True``) or each
        argument independently (``False``; lengths may then differ).
    seed:
        Int, :class:`~numpy.random.SeedSequence` or generator.
    n_jobs, backend:
        Fan-out for non-vectorised statistics; defaults from the settings.

    Returns
    -------
    BootstrapSamples
        Statistics for every resample (NaN columns included) and indices.
    """
    B, _ = check_nboot(nboot, context="bootstrap")
    mode = check_mode(mode, context="bootstrap")
    stat = _resolve_statistic(statistic)
    n_jobs, backend = resolve_parallelism(n_jobs, backend)
    rng = rng_factory(seed)

    if match:
        samples = as_samples(data, context="bootstrap")
        n = samples[0].shape[0]
        w = check_weights(weights, n, context="bootstrap")
        codes = check_strata(strata, n, context="bootstrap")
        evaluator = StatisticEvaluator(stat, samples, n_jobs=n_jobs, backend=backend)
        index_matrix: np.ndarray | tuple[np.ndarray, ...] = BalancedResampler(rng).generate(
            n, B, mode=mode, weights=w, strata=codes
        )
    else:
        samples = as_samples(data, same_length=False, context="bootstrap")
        if strata is not None:
            raise BootstrapInputError("[bootstrap] strata require matched resampling")
        if weights is None:
            per_sample = [None] * len(samples)
        elif len(samples) == 1:
            per_sample = [weights]
        else:
            per_sample = list(weights)
        if len(per_sample) != len(samples):
            raise BootstrapInputError("[bootstrap] provide one weight vector (or None) per data argument")
        checked = [
            check_weights(w, s.shape[0], context="bootstrap") for w, s in zip(per_sample, samples)
        ]
        evaluator = StatisticEvaluator(stat, samples, n_jobs=n_jobs, backend=backend)
        resampler = BalancedResampler(rng)
        index_matrix = tuple(
            resampler.generate(s.shape[0], B, mode=mode, weights=w) for s, w in zip(samples, checked)
        )

    statistics, _ = evaluator.evaluate(index_matrix)
    return BootstrapSamples(statistics=statistics, index_matrix=index_matrix)


def confidence_interval(
    data: Any,
    nboot: int | Sequence[int] = DEFAULT_NBOOT,
    statistic: StatisticLike = "mean",
    alpha: float | Sequence[float] | None = DEFAULT_ALPHA,
    *,
    strata: Any = None,
    weights: Any = None,
    mode: str = "bootknife",
    index_matrix: Any = None,
    expand: bool | None = None,
    seed: SeedLike = None,
    n_jobs: int | None = None,
    backend: str | None = None,
) -> IntervalResult:
    """Bootstrap bias, standard error and confidence interval of a statistic.

    Parameters
    ----------
    data:
        Array-like with ``n`` rows, or a tuple of array-likes with matched rows.
    nboot:
        Outer resample count, or ``(outer, inner)``; ``inner > 0`` selects the
        calibrated (iterated) bootstrap.
    statistic:
        See :func:`bootstrap`.
    alpha:
        Scalar two-tailed probability (percentile interval), ascending pair
        of probabilities (BCa interval), or ``None`` for no interval.
    strata, weights:
        Stratum labels and resampling weights. Weights cannot be combined
        with calibration.
    mode:
        Outer resampling regime (``"bootknife"`` by default).
    index_matrix:
        Precomputed ``(n, B)`` 0-based indices to reuse.
    expand:
        Student-t expansion of the probabilities; by default only for the
        mean.
    seed, n_jobs, backend:
        Random stream and fan-out.

    Returns
    -------
    IntervalResult

    Raises
    ------
    BootstrapInputError
        For invalid arguments.
    StatisticError
        When the statistic fails on the data or yields NaN for every resample.
    """
    start = time.perf_counter()
    samples = as_samples(data, context="confidence_interval")
    n = samples[0].shape[0]
    B, C = check_nboot(nboot, context="confidence_interval")
    alpha_checked = check_alpha(alpha, context="confidence_interval")
    mode = check_mode(mode, context="confidence_interval")
    w = check_weights(weights, n, context="confidence_interval")
    codes = check_strata(strata, n, context="confidence_interval")
    if C > 0 and w is not None and not np.all(w == w[0]):
        raise BootstrapInputError("[confidence_interval] weights are not supported with calibration")
    if index_matrix is not None:
        index_matrix = check_index_matrix(index_matrix, n, context="confidence_interval")
        B = index_matrix.shape[1]
    stat = _resolve_statistic(statistic)
    n_jobs, backend = resolve_parallelism(n_jobs, backend)
    rng = rng_factory(seed)

    evaluator = StatisticEvaluator(stat, samples, n_jobs=n_jobs, backend=backend)
    if index_matrix is None:
        index_matrix = BalancedResampler(rng).generate(n, B, mode=mode, weights=w, strata=codes)

    builder = IntervalBuilder(
        evaluator,
        alpha=alpha_checked,
        n_inner=C,
        weights=w,
        strata=codes,
        expand=expand,
        n_jobs=n_jobs,
        backend=backend,
    )
    result = builder.build(index_matrix, rng, return_indices=True)
    logger.info(
        "Bootstrap %s interval for '%s': n=%d, nboot=(%d, %d) in %.3fs",
        result.interval_type,
        stat.name,
        n,
        B,
        C,
        time.perf_counter() - start,
        extra={"interval_type": result.interval_type, "nboot": [B, C]},
    )
    return result


def smoothed_median(x: Any, axis: int = 0, tol: float | None = None) -> float | np.ndarray:
    """Smoothed median of ``x`` along ``axis`` (see :mod:`iboot.stats.smoothmedian`)."""
    return _smoothed_median(np.asarray(x), axis=axis, tol=tol)


def interval_from_config(
    data: Any,
    statistic: StatisticLike,
    config: BootstrapConfig | str | Path,
    **kwargs: Any,
) -> IntervalResult:
    """Run :func:`confidence_interval` with parameters from a configuration.

    ``config`` is a :class:`~iboot.config.schemas.BootstrapConfig` or the
    path of a YAML file validated against it. Extra keyword arguments
    (``strata``, ``weights``, ``index_matrix``) are forwarded.
    """
    if not isinstance(config, BootstrapConfig):
        config = load_config(config, BootstrapConfig)
    options = config.to_kwargs()
    options.update(kwargs)
    return confidence_interval(data, statistic=statistic, **options)
