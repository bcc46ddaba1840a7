from __future__ import annotations

import numpy as np
import pytest

from iboot.exceptions import BootstrapInputError
from iboot.resampling.balanced import BalancedResampler, balanced_indices, budget_counts


def test_bootstrap_mode_uses_every_index_nboot_times() -> None:
    idx = balanced_indices(12, 500, mode="bootstrap", seed=1)

    assert idx.shape == (12, 500)
    assert idx.min() >= 0 and idx.max() < 12
    np.testing.assert_array_equal(np.bincount(idx.ravel(), minlength=12), np.full(12, 500))


def test_same_seed_gives_same_indices() -> None:
    first = balanced_indices(8, 50, seed=42)
    second = balanced_indices(8, 50, seed=42)
    third = balanced_indices(8, 50, seed=43)

    np.testing.assert_array_equal(first, second)
    assert not np.array_equal(first, third)


def test_bootknife_leaves_out_one_index_per_column() -> None:
    n, nboot = 10, 200
    idx = balanced_indices(n, nboot, mode="bootknife", seed=7)

    # The left-out index can only be forced back in during the last nboot/n columns.
    for b in range(nboot - nboot // n):
        assert b % n not in idx[:, b]
    np.testing.assert_array_equal(np.bincount(idx.ravel(), minlength=n), np.full(n, nboot))


def test_bootknife_exclusion_is_uniform_over_indices() -> None:
    n, nboot = 5, 1000
    idx = balanced_indices(n, nboot, mode="bootknife", seed=3)

    left_out = np.arange(nboot) % n
    excluded = np.array([left_out[b] not in idx[:, b] for b in range(nboot)])
    counts = np.bincount(left_out[excluded], minlength=n)
    assert counts.min() >= 0.9 * nboot / n


def test_budget_counts_follow_weights() -> None:
    counts = budget_counts(4, 100, np.array([1.0, 1.0, 2.0, 0.0]))

    assert counts.sum() == 400
    np.testing.assert_array_equal(counts, [100, 100, 200, 0])


def test_weighted_resampling_respects_budget() -> None:
    weights = np.array([0.0, 1.0, 1.0, 2.0])
    idx = BalancedResampler(5).generate(4, 100, weights=weights)

    np.testing.assert_array_equal(np.bincount(idx.ravel(), minlength=4), [0, 100, 100, 200])


def test_strata_keep_rows_within_their_group() -> None:
    strata = np.array(["a", "a", "a", "b", "b", "c"])
    idx = balanced_indices(6, 40, mode="bootknife", strata=strata, seed=11)

    assert set(np.unique(idx[:3])) <= {0, 1, 2}
    assert set(np.unique(idx[3:5])) <= {3, 4}
    # singleton stratum repeats its only row
    np.testing.assert_array_equal(idx[5], np.full(40, 5))


@pytest.mark.parametrize(
    "kwargs",
    [
        {"n": 1, "nboot": 10},
        {"n": 5, "nboot": 0},
        {"n": 5, "nboot": 10, "weights": [1, 1, 1]},
        {"n": 3, "nboot": 10, "weights": [1, -1, 1]},
        {"n": 3, "nboot": 10, "weights": [0, 0, 0]},
        {"n": 3, "nboot": 10, "strata": [1, 2]},
        {"n": 3, "nboot": 10, "mode": "jackknife"},
    ],
)
def test_invalid_arguments_raise(kwargs) -> None:
    n = kwargs.pop("n")
    nboot = kwargs.pop("nboot")
    with pytest.raises(BootstrapInputError):
        balanced_indices(n, nboot, **kwargs)
