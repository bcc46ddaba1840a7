"""Shared helpers: validation, random generators and parallel fan-out."""

from .checks import (
    as_samples,
    check_alpha,
    check_index_matrix,
    check_mode,
    check_nboot,
    check_sample_size,
    check_strata,
    check_weights,
)
from .parallel import parallel_map, resolve_parallelism
from .seed import SeedLike, rng_factory, spawn_generators

__all__ = [
    "as_samples",
    "check_alpha",
    "check_index_matrix",
    "check_mode",
    "check_nboot",
    "check_sample_size",
    "check_strata",
    "check_weights",
    "parallel_map",
    "resolve_parallelism",
    "SeedLike",
    "rng_factory",
    "spawn_generators",
]
