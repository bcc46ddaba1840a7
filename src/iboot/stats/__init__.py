"""Bootstrap statistics: empirical distributions, evaluation and intervals."""

from .calibration import (
    CalibrationCurve,
    CalibrationEngine,
    InnerBootstrap,
    InnerResult,
    calibrated_bias,
    calibrated_probabilities,
    calibrated_std_error,
    calibration_curve,
    coverage_proportion,
)
from .empirical import empirical_cdf, expand_probabilities, kde_quantile, quantile
from .evaluator import STATISTICS, Statistic, StatisticEvaluator
from .intervals import IntervalBuilder, IntervalResult, bca_probabilities
from .jackknife import JackknifeEngine, acceleration, influence_values, leave_one_out
from .smoothmedian import SmoothedMedianSolver, SolverResult, smoothed_median

__all__ = [
    "CalibrationCurve",
    "CalibrationEngine",
    "InnerBootstrap",
    "InnerResult",
    "calibrated_bias",
    "calibrated_probabilities",
    "calibrated_std_error",
    "calibration_curve",
    "coverage_proportion",
    "empirical_cdf",
    "expand_probabilities",
    "kde_quantile",
    "quantile",
    "STATISTICS",
    "Statistic",
    "StatisticEvaluator",
    "IntervalBuilder",
    "IntervalResult",
    "bca_probabilities",
    "JackknifeEngine",
    "acceleration",
    "influence_values",
    "leave_one_out",
    "SmoothedMedianSolver",
    "SolverResult",
    "smoothed_median",
]
