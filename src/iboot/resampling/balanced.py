"""Balanced bootstrap and bootknife resample indices.

Both regimes start from a *count budget*: every row index ``i`` may be drawn
``c[i]`` times over the whole ``(n, nboot)`` matrix, with
``sum(c) == n * nboot``. Uniform budgets give each index exactly ``nboot``
draws; weighted budgets are the rounded cumulative shares of ``n * nboot``.

* ``bootstrap`` draws every cell without replacement from the budget. The
  slot-by-slot urn is equivalent to a uniformly random permutation of the
  multiset of budget slots, which is what :meth:`BalancedResampler.generate`
  builds in one vectorised step.
* ``bootknife`` additionally leaves out row ``b mod n`` from column ``b``
  (unless that row holds the entire remaining budget). Each column's counts
  are a multivariate hypergeometric draw from the masked budget, followed by a
  random ordering of the drawn indices.

Indices are 0-based.
"""

from __future__ import annotations

import logging
from typing import Any

import numpy as np

from ..config.constants import MODES
from ..exceptions import BootstrapInputError
from ..utils.checks import check_mode, check_sample_size, check_strata, check_weights
from ..utils.seed import SeedLike, rng_factory

__all__ = ["BalancedResampler", "balanced_indices", "budget_counts"]

logger = logging.getLogger(__name__)


def budget_counts(n: int, nboot: int, weights: np.ndarray | None = None) -> np.ndarray:
    """Integer draw budget per index, summing to ``n * nboot``.

    >>> budget_counts(3, 2).tolist()
    [2, 2, 2]
    >>> budget_counts(2, 3, np.array([1.0, 2.0])).tolist()
    [2, 4]
    """
    total = n * nboot
    if weights is None:
        return np.full(n, nboot, dtype=np.int64)
    w = np.asarray(weights, dtype=float)
    cumulative = np.round(np.cumsum(w) / w.sum() * total).astype(np.int64)
    cumulative[-1] = total
    return np.diff(cumulative, prepend=0)


class BalancedResampler:
    """Generate balanced resample index matrices from a single generator.

    Parameters
    ----------
    rng:
        Seed, :class:`~numpy.random.SeedSequence` or generator that owns the
        random stream. Index generation is always sequential on this stream.
    """

    def __init__(self, rng: SeedLike = None) -> None:
        self.rng = rng_factory(rng)

    def generate(
        self,
        n: int,
        nboot: int,
        mode: str = "bootstrap",
        weights: Any = None,
        strata: Any = None,
    ) -> np.ndarray:
        """Return an ``(n, nboot)`` matrix of 0-based row indices."""

        n = check_sample_size(int(n), context="resample")
        if int(nboot) != nboot or nboot < 1:
            raise BootstrapInputError("[resample] nboot must be a positive integer")
        nboot = int(nboot)
        mode = check_mode(mode, context="resample")
        w = check_weights(weights, n, context="resample")
        codes = check_strata(strata, n, context="resample")

        if codes is None:
            logger.debug("Generating %s indices for n=%d, nboot=%d", mode, n, nboot)
            return self._generate_block(n, nboot, mode, w)

        index_matrix = np.empty((n, nboot), dtype=np.intp)
        for code in np.unique(codes):
            rows = np.flatnonzero(codes == code)
            if rows.size == 1:
                index_matrix[rows, :] = rows[0]
                continue
            local_w = None if w is None else w[rows]
            if local_w is not None and not np.any(local_w > 0):
                raise BootstrapInputError(
                    f"[resample] weights of stratum {int(code)} must not all be zero"
                )
            local = self._generate_block(rows.size, nboot, mode, local_w)
            index_matrix[rows, :] = rows[local]
        logger.debug(
            "Generated stratified %s indices for n=%d, nboot=%d over %d strata",
            mode,
            n,
            nboot,
            int(codes.max()) + 1,
        )
        return index_matrix

    def _generate_block(
        self, n: int, nboot: int, mode: str, weights: np.ndarray | None
    ) -> np.ndarray:
        counts = budget_counts(n, nboot, weights)
        if mode == "bootstrap":
            slots = np.repeat(np.arange(n, dtype=np.intp), counts)
            self.rng.shuffle(slots)
            return slots.reshape(nboot, n).T.copy()
        if mode not in MODES:  # pragma: no cover - guarded by check_mode
            raise BootstrapInputError(f"unsupported resampling mode '{mode}'")
        return self._bootknife(n, nboot, counts)

    def _bootknife(self, n: int, nboot: int, counts: np.ndarray) -> np.ndarray:
        index_matrix = np.empty((n, nboot), dtype=np.intp)
        remaining = counts.copy()
        labels = np.arange(n, dtype=np.intp)
        for b in range(nboot):
            r = b % n
            total = int(remaining.sum())
            drawn = np.zeros(n, dtype=np.int64)
            if remaining[r] != total:
                masked = remaining.copy()
                masked[r] = 0
                available = int(masked.sum())
                if available >= n:
                    drawn = self.rng.multivariate_hypergeometric(masked, n)
                else:
                    # other rows are exhausted part-way through the column
                    drawn = masked.copy()
                    drawn[r] = n - available
            else:
                drawn[r] = n
            remaining -= drawn
            column = np.repeat(labels, drawn)
            self.rng.shuffle(column)
            index_matrix[:, b] = column
        return index_matrix


def balanced_indices(
    n: int,
    nboot: int,
    mode: str = "bootstrap",
    weights: Any = None,
    strata: Any = None,
    seed: SeedLike = None,
) -> np.ndarray:
    """Functional shortcut for :meth:`BalancedResampler.generate`."""

    return BalancedResampler(seed).generate(n, nboot, mode=mode, weights=weights, strata=strata)
