from __future__ import annotations

import numpy as np
import pytest
from scipy import stats

from iboot.exceptions import KDEInversionError
from iboot.stats.empirical import empirical_cdf, expand_probabilities, kde_quantile, quantile


def test_empirical_cdf_uses_competition_ranks_for_ties() -> None:
    x, F, P = empirical_cdf(np.array([3.0, 2.0, 1.0, 2.0]))

    np.testing.assert_array_equal(x, [1.0, 2.0, 3.0])
    np.testing.assert_allclose(F, [0.25, 0.75, 1.0])
    np.testing.assert_allclose(P, [1.0, 0.75, 0.25])


def test_empirical_cdf_untrimmed_and_complete() -> None:
    x, F, _ = empirical_cdf(np.array([1.0, 2.0, 2.0, 3.0]), trim=False, complete=1)

    np.testing.assert_array_equal(x, [1.0, 2.0, 2.0, 3.0])
    np.testing.assert_allclose(F, [0.2, 0.6, 0.6, 0.8])


def test_empirical_cdf_drops_nan() -> None:
    x, F, _ = empirical_cdf(np.array([np.nan, 4.0, 1.0]))

    np.testing.assert_array_equal(x, [1.0, 4.0])
    np.testing.assert_allclose(F, [0.5, 1.0])


def test_empirical_cdf_rejects_bad_denominator() -> None:
    with pytest.raises(ValueError):
        empirical_cdf(np.arange(3.0), complete=2)


def test_quantile_interpolates_and_fills() -> None:
    x = np.array([1.0, 2.0, 3.0])
    F = np.array([0.25, 0.75, 1.0])

    assert quantile(x, F, 0.5) == pytest.approx(1.5)
    assert quantile(x, F, 0.1) == pytest.approx(1.0)
    assert quantile(x, F, 0.1, left=-9.0) == pytest.approx(-9.0)
    assert quantile(x, F, 0.0, extrapolate=True) == pytest.approx(0.5)
    np.testing.assert_allclose(quantile(x, F, np.array([0.25, 1.0])), [1.0, 3.0])


def test_kde_quantile_limits_are_infinite() -> None:
    values = np.linspace(-1, 1, 21)

    lower, upper = kde_quantile(np.array([0.0, 1.0]), values, bandwidth=0.1)

    assert lower == -np.inf
    assert upper == np.inf


def test_kde_quantile_inverts_kernel_cdf() -> None:
    rng = np.random.default_rng(0)
    values = rng.normal(size=200)
    bandwidth = 0.3

    for p in (0.025, 0.5, 0.975):
        q = kde_quantile(p, values, bandwidth)
        assert np.mean(stats.norm.cdf((q - values) / bandwidth)) == pytest.approx(p, abs=1e-8)


def test_kde_quantile_median_of_symmetric_sample() -> None:
    values = np.array([-3.0, -1.0, 0.0, 1.0, 3.0])

    assert kde_quantile(0.5, values, bandwidth=0.5, shrinkage=0.8) == pytest.approx(0.0, abs=1e-9)


def test_kde_quantile_brackets_far_tails() -> None:
    values = np.array([0.0, 0.0, 1.0, 1.0])

    q = kde_quantile(np.array([0.001, 0.999]), values, bandwidth=0.05)

    assert q[0] < 0.0 < 1.0 < q[1]


@pytest.mark.parametrize("bandwidth", [0.0, -1.0, np.inf, np.nan])
def test_kde_quantile_rejects_bad_bandwidth(bandwidth: float) -> None:
    with pytest.raises(KDEInversionError):
        kde_quantile(0.5, np.arange(5.0), bandwidth)


def test_expand_probabilities_widens_tails() -> None:
    expanded = expand_probabilities(np.array([0.025, 0.5, 0.975]), df=11)

    assert expanded[0] < 0.025
    assert expanded[1] == pytest.approx(0.5)
    assert expanded[2] > 0.975
    assert expand_probabilities(0.025, df=1e6) == pytest.approx(0.025, rel=1e-3)
