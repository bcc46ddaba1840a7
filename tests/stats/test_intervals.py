from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from iboot.exceptions import BiasCorrectionWarning, IntervalHitEndWarning
from iboot.resampling.balanced import balanced_indices
from iboot.stats.evaluator import Statistic, StatisticEvaluator
from iboot.stats.intervals import IntervalBuilder, bca_probabilities
from iboot.utils.seed import rng_factory


def test_bca_without_bias_or_acceleration_is_percentile() -> None:
    alpha = np.array([0.05, 0.95])

    cuts = bca_probabilities(alpha, np.zeros(3), np.zeros(3))

    np.testing.assert_allclose(cuts, np.tile(alpha, (3, 1)))


def test_bca_shifts_cuts_with_bias() -> None:
    cuts = bca_probabilities(np.array([0.05, 0.95]), np.array([0.2]), np.array([0.0]))

    assert cuts[0, 0] > 0.05 and cuts[0, 1] > 0.95


@pytest.mark.parametrize(
    ("alpha", "n_inner", "expected"),
    [(0.05, 0, "percentile"), (np.array([0.025, 0.975]), 0, "bca"), (0.05, 20, "calibrated")],
)
def test_interval_type_follows_inputs(alpha, n_inner, expected) -> None:
    evaluator = StatisticEvaluator(Statistic.resolve("median"), (np.arange(10.0),))

    assert IntervalBuilder(evaluator, alpha=alpha, n_inner=n_inner).interval_type == expected


def test_percentile_build_on_the_mean_expands_probabilities(skewed_sample) -> None:
    evaluator = StatisticEvaluator(Statistic.resolve("mean"), (skewed_sample,))
    index_matrix = balanced_indices(12, 500, mode="bootknife", seed=0)

    result = IntervalBuilder(evaluator, alpha=0.05).build(index_matrix, rng_factory(0))

    assert result.interval_type == "percentile"
    assert result.probabilities[0, 0] < 0.025
    assert result.probabilities[0, 1] > 0.975
    assert result.ci_lower[0] < result.original[0] < result.ci_upper[0]
    np.testing.assert_allclose(result.bootstat, skewed_sample[index_matrix].mean(axis=0)[np.newaxis, :])


def test_expansion_can_be_disabled(skewed_sample) -> None:
    evaluator = StatisticEvaluator(Statistic.resolve("mean"), (skewed_sample,))
    index_matrix = balanced_indices(12, 200, mode="bootknife", seed=0)

    result = IntervalBuilder(evaluator, alpha=0.05, expand=False).build(index_matrix, rng_factory(0))

    np.testing.assert_allclose(result.probabilities[0], [0.025, 0.975])


def test_bias_correction_failure_reverts_to_percentile() -> None:
    x = np.array([1.0, 4.0, 2.0, 8.0, 5.0, 7.0, 3.0, 6.0])
    evaluator = StatisticEvaluator(Statistic.resolve(lambda v: np.min(v, axis=0)), (x,))
    index_matrix = balanced_indices(8, 200, mode="bootknife", seed=1)

    with pytest.warns(BiasCorrectionWarning):
        result = IntervalBuilder(evaluator, alpha=np.array([0.05, 0.95])).build(index_matrix, rng_factory(1))

    np.testing.assert_array_equal(result.z0, [0.0])
    np.testing.assert_array_equal(result.a, [0.0])
    np.testing.assert_allclose(result.probabilities[0], [0.05, 0.95])


def test_hit_end_warning() -> None:
    with pytest.warns(IntervalHitEndWarning):
        IntervalBuilder._check_hit_end(np.arange(10.0), np.array([0.01, 0.5]), 0)


def test_alpha_none_skips_interval(skewed_sample) -> None:
    evaluator = StatisticEvaluator(Statistic.resolve("median"), (skewed_sample,))
    index_matrix = balanced_indices(12, 100, seed=2)

    result = IntervalBuilder(evaluator, alpha=None).build(index_matrix, rng_factory(2))

    assert np.isnan(result.ci_lower).all() and np.isnan(result.ci_upper).all()
    assert np.isfinite(result.std_error).all()


def test_result_exports(skewed_sample) -> None:
    evaluator = StatisticEvaluator(Statistic.resolve("mean"), (skewed_sample,))
    index_matrix = balanced_indices(12, 200, mode="bootknife", seed=3)
    result = IntervalBuilder(evaluator, alpha=0.1).build(index_matrix, rng_factory(3), return_indices=True)

    frame = result.to_frame()
    summary = result.to_dict()

    assert isinstance(frame, pd.DataFrame)
    assert list(frame.columns[:5]) == ["original", "bias", "std_error", "ci_lower", "ci_upper"]
    assert frame.attrs["interval_type"] == "percentile"
    assert summary["original"] == pytest.approx([108.0833333])
    assert summary["nboot"] == [200, 0]
    assert summary["calibration_curves"] is None
    assert result.index_matrix is index_matrix
    assert result.ci.shape == (1, 2)
