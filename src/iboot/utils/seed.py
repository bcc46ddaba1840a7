"""Random generator management.

Every resampling call owns one :class:`numpy.random.Generator`. Work fanned
out to workers receives child generators spawned from a
:class:`numpy.random.SeedSequence` drawn from that generator, so results do
not depend on the backend or the number of workers.
"""

from __future__ import annotations

import logging
from typing import Optional, Union

import numpy as np

__all__ = ["MAX_SEED_VALUE", "SeedLike", "rng_factory", "spawn_generators"]

logger = logging.getLogger(__name__)

MAX_SEED_VALUE = 2**32

SeedLike = Union[None, int, np.random.SeedSequence, np.random.Generator]


def rng_factory(seed: SeedLike = None) -> np.random.Generator:
    """Return a ``numpy.random.Generator`` for ``seed``.

    Integers are normalised into ``[0, 2**32)``; an existing generator is
    returned unchanged so that callers can thread one stream through several
    calls.
    """
    if isinstance(seed, np.random.Generator):
        return seed
    if isinstance(seed, (int, np.integer)) and not isinstance(seed, bool):
        seed = abs(int(seed)) % MAX_SEED_VALUE
        logger.debug("Creating generator with seed %d", seed)
    return np.random.default_rng(seed)


def spawn_generators(rng: np.random.Generator, count: int) -> list[np.random.Generator]:
    """Derive ``count`` statistically independent generators from ``rng``.

    The entropy is drawn from ``rng`` itself, so the children are reproducible
    whenever ``rng`` was seeded.
    """
    if count < 0:
        raise ValueError("count must be nonnegative")
    entropy = rng.integers(0, MAX_SEED_VALUE, size=4, dtype=np.uint64)
    children = np.random.SeedSequence([int(e) for e in entropy]).spawn(count)
    return [np.random.default_rng(child) for child in children]
