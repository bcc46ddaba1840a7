"""Error and warning hierarchy.

Fatal conditions raise subclasses of :class:`BootstrapError` (itself a
``ValueError``) before any resampling starts. Recoverable conditions are
reported with :func:`warnings.warn` using subclasses of
:class:`BootstrapWarning` and the computation continues with a documented
fallback.
"""

from __future__ import annotations

__all__ = [
    "BootstrapError",
    "BootstrapInputError",
    "StatisticError",
    "KDEInversionError",
    "BootstrapWarning",
    "JackknifeWarning",
    "BiasCorrectionWarning",
    "IntervalHitEndWarning",
    "CalibrationWarning",
    "ConvergenceWarning",
]


class BootstrapError(ValueError):
    """Base class for fatal bootstrap errors."""


class BootstrapInputError(BootstrapError):
    """Invalid sample, resample count, probabilities, weights or strata."""


class StatisticError(BootstrapError):
    """The statistic failed on the original data or on every resample."""


class KDEInversionError(BootstrapError):
    """No root could be bracketed when inverting the kernel density CDF."""


class BootstrapWarning(RuntimeWarning):
    """Base class for recoverable bootstrap conditions."""


class JackknifeWarning(BootstrapWarning):
    """Jackknife evaluation failed; the acceleration constant was set to zero."""


class BiasCorrectionWarning(BootstrapWarning):
    """Bias-correction constant was not finite; percentile cuts were used."""


class IntervalHitEndWarning(BootstrapWarning):
    """Interval endpoint lies at the edge of the bootstrap distribution."""


class CalibrationWarning(BootstrapWarning):
    """Calibration is unreliable for the requested probabilities."""


class ConvergenceWarning(BootstrapWarning):
    """Iterative solver stopped before reaching its tolerance."""
