"""Central constants shared by the resampling and interval modules.

Numeric defaults (resample counts, probabilities, solver limits) live here so
that the same literals are not repeated across ``resampling`` and ``stats``.
"""

from __future__ import annotations

from typing import Final

__all__ = [
    "BACKENDS",
    "DEFAULT_ALPHA",
    "DEFAULT_NBOOT",
    "KDE_MAX_BRACKET_STEPS",
    "MIN_SAMPLE_SIZE",
    "MODES",
    "SMOOTHMEDIAN_MAX_ITER",
    "SMOOTHMEDIAN_REL_TOL",
    "mode_alias",
]


# Numeric constants ---------------------------------------------------------

DEFAULT_NBOOT: Final[int] = 2000
"""Number of (outer) resamples used when the caller gives none."""

DEFAULT_ALPHA: Final[tuple[float, float]] = (0.025, 0.975)
"""Lower and upper percentiles of the default 95% interval."""

MIN_SAMPLE_SIZE: Final[int] = 2

SMOOTHMEDIAN_MAX_ITER: Final[int] = 20
"""Iteration budget of the smoothed median Newton-bisection solver."""

SMOOTHMEDIAN_REL_TOL: Final[float] = 1e-4
"""Default solver tolerance as a fraction of the sample range."""

KDE_MAX_BRACKET_STEPS: Final[int] = 64
"""Maximum number of bandwidth steps used to widen a KDE root bracket."""


# Resampling regimes ---------------------------------------------------------

MODES: Final[tuple[str, ...]] = ("bootstrap", "bootknife")

BACKENDS: Final[tuple[str, ...]] = ("sequential", "thread", "process", "joblib")

mode_alias: Final[dict[str, str]] = {
    "bootstrap": "bootstrap",
    "boot": "bootstrap",
    "balanced": "bootstrap",
    "bootknife": "bootknife",
    "knife": "bootknife",
    "loo": "bootknife",
}
"""Maps common aliases to the canonical resampling mode."""
