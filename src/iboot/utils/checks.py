"""Eager input validation for the public entry points.

Each helper normalises one argument and raises
:class:`~iboot.exceptions.BootstrapInputError` with a descriptive message when
it is unusable, so nothing is resampled before the whole call is known to be
valid.
"""

from __future__ import annotations

from typing import Any

import numpy as np
import pandas as pd

from ..config.constants import MIN_SAMPLE_SIZE, mode_alias
from ..exceptions import BootstrapInputError

__all__ = [
    "as_samples",
    "check_alpha",
    "check_index_matrix",
    "check_mode",
    "check_nboot",
    "check_sample_size",
    "check_strata",
    "check_weights",
]


def _context(msg: str, context: str) -> str:
    return f"[{context}] {msg}" if context else msg


def _as_array(obj: Any, context: str) -> np.ndarray:
    if isinstance(obj, (pd.DataFrame, pd.Series)):
        arr = obj.to_numpy()
    else:
        arr = np.asarray(obj)
    if arr.ndim == 0:
        raise BootstrapInputError(_context("data must have at least one dimension", context))
    if arr.ndim > 2:
        raise BootstrapInputError(
            _context(f"data must be 1-D or 2-D, received {arr.ndim} dimensions", context)
        )
    if not np.issubdtype(arr.dtype, np.number) and arr.dtype != bool:
        raise BootstrapInputError(_context(f"data must be numeric, got dtype {arr.dtype}", context))
    return arr


def as_samples(data: Any, *, same_length: bool = True, context: str = "") -> tuple[np.ndarray, ...]:
    """Normalise ``data`` into a tuple of 1-D/2-D arrays.

    A tuple is treated as several data arguments passed to
    the statistic positionally; anything else is a single argument. With
    ``same_length`` all arguments must share the number of rows.
    """
    if isinstance(data, tuple):
        samples = tuple(_as_array(d, context) for d in data)
    else:
        samples = (_as_array(data, context),)

    if not samples:
        raise BootstrapInputError(_context("no data supplied", context))
    if same_length:
        lengths = {s.shape[0] for s in samples}
        if len(lengths) != 1:
            raise BootstrapInputError(
                _context(f"data arguments must have the same number of rows, got {sorted(lengths)}", context)
            )
    for s in samples:
        check_sample_size(s.shape[0], context=context)
    return samples


def check_sample_size(n: int, *, context: str = "") -> int:
    if n < MIN_SAMPLE_SIZE:
        raise BootstrapInputError(
            _context(f"sample size must be at least {MIN_SAMPLE_SIZE}, got {n}", context)
        )
    return int(n)


def check_nboot(nboot: Any, *, context: str = "") -> tuple[int, int]:
    """Return ``(outer, inner)`` resample counts.

    ``nboot`` is a positive integer or a pair whose second element is 0 (no
    calibration) or at least 2.
    """
    values = np.atleast_1d(np.asarray(nboot))
    if values.size not in (1, 2) or values.ndim != 1:
        raise BootstrapInputError(_context("nboot must be an integer or a pair of integers", context))
    if not np.all(np.isfinite(values.astype(float))) or np.any(values != np.floor(values)):
        raise BootstrapInputError(_context("nboot must contain only finite integers", context))
    outer = int(values[0])
    inner = int(values[1]) if values.size == 2 else 0
    if outer < 1:
        raise BootstrapInputError(_context("the number of resamples must be a positive integer", context))
    if inner < 0 or inner == 1:
        raise BootstrapInputError(
            _context("the number of inner resamples must be 0 or at least 2", context)
        )
    return outer, inner


def check_alpha(alpha: Any, *, context: str = "") -> float | np.ndarray | None:
    """Validate ``alpha``: ``None``, a scalar in (0, 1) or an ascending pair."""
    if alpha is None:
        return None
    values = np.atleast_1d(np.asarray(alpha, dtype=float))
    if values.ndim != 1 or values.size not in (1, 2):
        raise BootstrapInputError(_context("alpha must be a scalar or a pair of probabilities", context))
    if np.any(~np.isfinite(values)) or np.any(values <= 0) or np.any(values >= 1):
        raise BootstrapInputError(_context("alpha must lie strictly between 0 and 1", context))
    if values.size == 1:
        return float(values[0])
    if values[0] > values[1]:
        raise BootstrapInputError(_context("alpha pair must be in ascending order", context))
    return values


def check_mode(mode: str, *, context: str = "") -> str:
    key = str(mode).lower()
    if key not in mode_alias:
        raise BootstrapInputError(_context(f"unsupported resampling mode '{mode}'", context))
    return mode_alias[key]


def check_weights(weights: Any, n: int, *, context: str = "") -> np.ndarray | None:
    """Validate a weight vector of length ``n``; ``None`` means uniform."""
    if weights is None:
        return None
    w = np.asarray(weights, dtype=float).ravel()
    if w.size != n:
        raise BootstrapInputError(
            _context(f"weights must have length {n}, got {w.size}", context)
        )
    if np.any(~np.isfinite(w)):
        raise BootstrapInputError(_context("weights must be finite", context))
    if np.any(w < 0):
        raise BootstrapInputError(_context("weights must be nonnegative", context))
    if not np.any(w > 0):
        raise BootstrapInputError(_context("weights must not all be zero", context))
    return w


def check_strata(strata: Any, n: int, *, context: str = "") -> np.ndarray | None:
    """Factorise stratum labels into integer codes ``0..K-1``."""
    if strata is None:
        return None
    labels = strata.to_numpy() if isinstance(strata, (pd.Series, pd.Index)) else np.asarray(strata)
    labels = labels.ravel()
    if labels.size != n:
        raise BootstrapInputError(
            _context(f"strata must have length {n}, got {labels.size}", context)
        )
    codes, _ = pd.factorize(labels, use_na_sentinel=True)
    if np.any(codes < 0):
        raise BootstrapInputError(_context("strata must not contain missing labels", context))
    return codes.astype(np.intp)


def check_index_matrix(index_matrix: Any, n: int, *, context: str = "") -> np.ndarray:
    """Validate a caller-provided ``(n, B)`` matrix of 0-based row indices."""
    idx = np.asarray(index_matrix)
    if idx.ndim == 1:
        idx = idx[:, np.newaxis]
    if idx.ndim != 2 or idx.shape[0] != n or idx.shape[1] < 1:
        raise BootstrapInputError(
            _context(f"index matrix must have shape ({n}, nboot), got {idx.shape}", context)
        )
    if not np.issubdtype(idx.dtype, np.integer):
        if np.any(idx != np.floor(idx)):
            raise BootstrapInputError(_context("index matrix must contain integers", context))
        idx = idx.astype(np.intp)
    if idx.min() < 0 or idx.max() >= n:
        raise BootstrapInputError(_context(f"index matrix entries must lie in [0, {n})", context))
    return idx

