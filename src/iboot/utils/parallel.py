"""Parallel execution helpers.

:func:`parallel_map` hides the choice between a plain loop, the
``concurrent.futures`` pools and joblib (loky) behind a ``map``-like call.
Results always come back in input order, so callers can rely on positions
(resample columns, jackknife rows) regardless of the backend.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ProcessPoolExecutor, ThreadPoolExecutor, as_completed
from typing import Any, Callable, Iterable, List, Optional

from joblib import Parallel, delayed

from ..config.constants import BACKENDS
from ..exceptions import BootstrapInputError

__all__ = ["parallel_map", "resolve_parallelism"]

logger = logging.getLogger(__name__)


def resolve_parallelism(n_jobs: Optional[int], backend: Optional[str]) -> tuple[int, str]:
    """Fill missing worker count and backend from the global settings.

    Called by the public entry points before any resampling, so an unusable
    worker count is rejected up front. Negative counts follow the joblib
    convention and are only accepted by the ``joblib`` backend.
    """

    from ..config.settings import get_settings

    if n_jobs is None or backend is None:
        settings = get_settings()
        n_jobs = settings.n_jobs if n_jobs is None else n_jobs
        backend = settings.parallel_backend if backend is None else backend
    backend = backend.lower()
    if backend not in BACKENDS:
        raise BootstrapInputError(f"Backend '{backend}' not recognised. Use one of {', '.join(BACKENDS)}.")
    n_jobs = int(n_jobs)
    if n_jobs == 0 or (n_jobs < 0 and backend in ("thread", "process")):
        raise BootstrapInputError(
            f"n_jobs must be a positive worker count for the '{backend}' backend, got {n_jobs}"
        )
    return n_jobs, backend


def parallel_map(
    func: Callable,
    iterable: Iterable,
    backend: str = "sequential",
    max_workers: Optional[int] = None,
) -> List[Any]:
    """``map``-like interface running ``func`` over ``iterable``.

    Args:
        func (Callable): Function applied to each item.
        iterable (Iterable): Items to process; they need not be hashable.
        backend (str): ``'sequential'``, ``'thread'``, ``'process'`` or
            ``'joblib'`` (loky processes, able to ship closures).
        max_workers (Optional[int]): Worker count. ``1`` forces sequential
            execution; ``None`` uses the backend default.

    Returns:
        List[Any]: Results in the same order as the input.

    Raises:
        Exception: The first exception raised by a worker is propagated.
    """
    items = list(iterable)
    job_name = getattr(func, "__name__", type(func).__name__)
    start_time = time.perf_counter()

    if backend == "sequential" or max_workers == 1 or len(items) <= 1:
        results = [func(item) for item in items]
        logger.debug(
            "Job '%s' ran sequentially over %d items in %.3fs",
            job_name,
            len(items),
            time.perf_counter() - start_time,
        )
        return results

    executor_map = {
        "thread": ThreadPoolExecutor,
        "process": ProcessPoolExecutor,
    }

    if backend in executor_map:
        ordered: List[Any] = [None] * len(items)
        with executor_map[backend](max_workers=max_workers) as executor:
            future_to_pos = {executor.submit(func, item): pos for pos, item in enumerate(items)}
            for future in as_completed(future_to_pos):
                ordered[future_to_pos[future]] = future.result()
    elif backend == "joblib":
        tasks = [delayed(func)(item) for item in items]
        ordered = list(Parallel(n_jobs=max_workers or -1, backend="loky")(tasks))
    else:
        raise ValueError(
            f"Backend '{backend}' not recognised. Use 'process', 'thread', 'joblib' or 'sequential'."
        )

    logger.debug(
        "Job '%s' ran on backend '%s' over %d items in %.3fs",
        job_name,
        backend,
        len(items),
        time.perf_counter() - start_time,
    )
    return ordered
