"""iboot: balanced, bootknife and iterated bootstrap confidence intervals.

The public API lives in :mod:`iboot.api`; configuration helpers in
:mod:`iboot.config`.
"""

from __future__ import annotations

from .api import (
    BootstrapSamples,
    bootstrap,
    confidence_interval,
    interval_from_config,
    resample,
    smoothed_median,
)
from .exceptions import (
    BiasCorrectionWarning,
    BootstrapError,
    BootstrapInputError,
    BootstrapWarning,
    CalibrationWarning,
    ConvergenceWarning,
    IntervalHitEndWarning,
    JackknifeWarning,
    KDEInversionError,
    StatisticError,
)
from .stats.calibration import CalibrationCurve
from .stats.evaluator import Statistic
from .stats.intervals import IntervalResult

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "BootstrapSamples",
    "CalibrationCurve",
    "IntervalResult",
    "Statistic",
    "bootstrap",
    "confidence_interval",
    "interval_from_config",
    "resample",
    "smoothed_median",
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
