"""Statistic resolution and evaluation over resample index matrices.

A :class:`Statistic` binds a callable (or a registered name) to its extra
arguments once. :class:`StatisticEvaluator` evaluates it on the original
data, decides a single time whether the callable is vectorised over columns,
and then evaluates whole index matrices either in one vectorised call or
column by column (optionally fanned out through
:func:`~iboot.utils.parallel.parallel_map`).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Sequence

import numpy as np

from ..exceptions import StatisticError
from ..utils.parallel import parallel_map
from .smoothmedian import smoothed_median

__all__ = ["STATISTICS", "Statistic", "StatisticEvaluator"]

logger = logging.getLogger(__name__)


def _mean(x: np.ndarray) -> np.ndarray:
    return np.mean(x, axis=0)


def _median(x: np.ndarray) -> np.ndarray:
    return np.median(x, axis=0)


def _var(x: np.ndarray, ddof: int = 1) -> np.ndarray:
    return np.var(x, axis=0, ddof=ddof)


def _std(x: np.ndarray, ddof: int = 1) -> np.ndarray:
    return np.std(x, axis=0, ddof=ddof)


def _smoothmedian(x: np.ndarray) -> np.ndarray:
    return smoothed_median(x, axis=0)


STATISTICS: dict[str, Callable[..., Any]] = {
    "mean": _mean,
    "median": _median,
    "var": _var,
    "std": _std,
    "smoothmedian": _smoothmedian,
}
"""Column-wise statistics available by name; ``var``/``std`` default to ``ddof=1``."""


@dataclass(frozen=True)
class Statistic:
    """A statistic with its extra positional and keyword arguments bound.

    Calling the instance forwards the data arguments first, then the bound
    arguments: ``Statistic.resolve(np.var, ddof=1)(x) == np.var(x, ddof=1)``.
    """

    func: Callable[..., Any]
    name: str
    args: tuple[Any, ...] = ()
    kwargs: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def resolve(cls, func_or_name: Any, *args: Any, **kwargs: Any) -> "Statistic":
        if isinstance(func_or_name, Statistic):
            if args or kwargs:
                return cls(
                    func_or_name.func,
                    func_or_name.name,
                    func_or_name.args + args,
                    {**func_or_name.kwargs, **kwargs},
                )
            return func_or_name
        if isinstance(func_or_name, str):
            key = func_or_name.lower()
            if key not in STATISTICS:
                raise StatisticError(
                    f"Unknown statistic '{func_or_name}'; expected a callable or one of "
                    f"{', '.join(sorted(STATISTICS))}"
                )
            return cls(STATISTICS[key], key, args, dict(kwargs))
        if not callable(func_or_name):
            raise StatisticError("statistic must be a callable or a registered name")
        name = getattr(func_or_name, "__name__", type(func_or_name).__name__)
        return cls(func_or_name, name, args, dict(kwargs))

    @property
    def is_mean(self) -> bool:
        """True for the arithmetic mean (by name, or ``numpy.mean`` itself)."""
        return self.func in (_mean, np.mean) and not self.args

    def __call__(self, *data: Any) -> Any:
        return self.func(*data, *self.args, **self.kwargs)


def _as_vector(value: Any) -> np.ndarray:
    return np.atleast_1d(np.asarray(value, dtype=float)).ravel()


class _ColumnTask:
    """Evaluate the statistic on one resample; picklable for process pools."""

    def __init__(self, statistic: Statistic, samples: Sequence[np.ndarray]) -> None:
        self.statistic = statistic
        self.samples = tuple(samples)

    def __call__(self, columns: Sequence[np.ndarray]) -> np.ndarray:
        resampled = [s[col] for s, col in zip(self.samples, columns)]
        return _as_vector(self.statistic(*resampled))


class StatisticEvaluator:
    """Evaluate a statistic on the original data and on resamples.

    Parameters
    ----------
    statistic:
        Resolved :class:`Statistic`.
    samples:
        Tuple of data arguments (1-D or 2-D arrays sharing rows when matched).
    n_jobs, backend:
        Fan-out used for non-vectorised evaluation.
    vectorized:
        Known result of the vectorisation probe (``None`` probes once).
    """

    def __init__(
        self,
        statistic: Statistic,
        samples: Sequence[np.ndarray],
        *,
        n_jobs: int = 1,
        backend: str = "sequential",
        vectorized: bool | None = None,
    ) -> None:
        self.statistic = statistic
        self.samples = tuple(np.asarray(s) for s in samples)
        self.n_jobs = int(n_jobs)
        self.backend = backend
        self.original = self._evaluate_original()
        self.vectorized = self._probe() if vectorized is None else bool(vectorized)

    @property
    def n(self) -> int:
        return int(self.samples[0].shape[0])

    @property
    def m(self) -> int:
        return int(self.original.size)

    def with_samples(self, samples: Sequence[np.ndarray]) -> "StatisticEvaluator":
        """Sequential evaluator for new data reusing the cached probe result."""
        return StatisticEvaluator(
            self.statistic,
            samples,
            n_jobs=1,
            backend="sequential",
            vectorized=self.vectorized,
        )

    def _evaluate_original(self) -> np.ndarray:
        try:
            value = _as_vector(self.statistic(*self.samples))
        except Exception as exc:
            raise StatisticError(
                f"statistic '{self.statistic.name}' failed on the original data: {exc}"
            ) from exc
        if value.size == 0:
            raise StatisticError(f"statistic '{self.statistic.name}' returned an empty result")
        if np.any(np.isnan(value)):
            raise StatisticError(f"statistic '{self.statistic.name}' returned NaN for the original data")
        return value

    def _probe(self) -> bool:
        # Only univariate arguments can be stacked column-wise.
        if any(s.ndim != 1 for s in self.samples):
            return False
        block = [np.column_stack([s, s]) for s in self.samples]
        try:
            check = np.asarray(self.statistic(*block), dtype=float)
        except Exception:
            logger.debug("Statistic '%s' rejected a column block; evaluating per resample", self.statistic.name)
            return False
        m = self.m
        if check.shape == (2,) and m == 1:
            check = check.reshape(1, 2)
        if check.shape != (m, 2):
            logger.debug("Statistic '%s' is not vectorised (probe shape %s)", self.statistic.name, check.shape)
            return False
        vectorized = bool(np.allclose(check, self.original[:, np.newaxis], equal_nan=False))
        logger.debug("Statistic '%s' vectorised: %s", self.statistic.name, vectorized)
        return vectorized

    def _columns(self, index_matrix: np.ndarray | Sequence[np.ndarray]) -> tuple[np.ndarray, ...]:
        if isinstance(index_matrix, np.ndarray):
            return tuple(index_matrix for _ in self.samples)
        matrices = tuple(np.asarray(idx) for idx in index_matrix)
        if len(matrices) != len(self.samples):
            raise ValueError("one index matrix is required per data argument")
        return matrices

    def evaluate(self, index_matrix: np.ndarray | Sequence[np.ndarray]) -> tuple[np.ndarray, np.ndarray]:
        """Evaluate every resample column.

        Parameters
        ----------
        index_matrix:
            ``(rows, B)`` matrix of 0-based indices applied to every data
            argument, or one such matrix per argument (unmatched resampling).

        Returns
        -------
        bootstat_all, keep
            ``(m, B)`` statistics including NaN columns, and a boolean mask of
            the columns without NaN.

        Raises
        ------
        StatisticError
            If the statistic fails on a resample or every column contains NaN.
        """
        matrices = self._columns(index_matrix)
        B = matrices[0].shape[1]
        m = self.m

        if self.vectorized:
            blocks = [s[idx] for s, idx in zip(self.samples, matrices)]
            try:
                raw = np.asarray(self.statistic(*blocks), dtype=float)
            except Exception as exc:
                raise StatisticError(f"statistic '{self.statistic.name}' failed on the resamples: {exc}") from exc
            bootstat = raw.reshape(m, B)
        else:
            task = _ColumnTask(self.statistic, self.samples)
            items = [tuple(idx[:, b] for idx in matrices) for b in range(B)]
            try:
                values = parallel_map(task, items, backend=self.backend, max_workers=self.n_jobs)
            except StatisticError:
                raise
            except Exception as exc:
                raise StatisticError(f"statistic '{self.statistic.name}' failed on a resample: {exc}") from exc
            if any(v.size != m for v in values):
                raise StatisticError(
                    f"statistic '{self.statistic.name}' must return {m} value(s) for every resample"
                )
            bootstat = np.column_stack(values) if values else np.empty((m, 0))

        keep = ~np.any(np.isnan(bootstat), axis=0)
        dropped = int(B - keep.sum())
        if dropped:
            logger.debug("Dropping %d of %d resamples with NaN statistics", dropped, B)
        if not keep.any():
            raise StatisticError(f"statistic '{self.statistic.name}' returned NaN for every resample")
        return bootstat, keep

    def evaluate_subsets(self, index_matrix: np.ndarray) -> np.ndarray:
        """Evaluate columns of ``index_matrix`` without the NaN policy (jackknife)."""
        matrices = self._columns(index_matrix)
        B = matrices[0].shape[1]
        if self.vectorized:
            blocks = [s[idx] for s, idx in zip(self.samples, matrices)]
            return np.asarray(self.statistic(*blocks), dtype=float).reshape(self.m, B)
        task = _ColumnTask(self.statistic, self.samples)
        items = [tuple(idx[:, b] for idx in matrices) for b in range(B)]
        values = parallel_map(task, items, backend=self.backend, max_workers=self.n_jobs)
        return np.column_stack(values)
