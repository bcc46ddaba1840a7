from __future__ import annotations

import numpy as np
import pytest

from iboot.exceptions import ConvergenceWarning
from iboot.stats.smoothmedian import SmoothedMedianSolver, smoothed_median


def test_symmetric_sample_converges_to_centre() -> None:
    x = np.array([1.0, 2.0, 3.0, 4.0, 5.0])

    result = SmoothedMedianSolver().solve(x)

    assert result.converged
    assert result.estimate == pytest.approx(3.0, abs=1e-4 * 4)


def test_brackets_shrink_and_contain_estimate() -> None:
    x = np.array([3, 5, 7, 18, 43, 85, 91, 98, 100, 130, 230, 487], dtype=float)

    result = SmoothedMedianSolver().solve(x)

    widths = [b - a for a, _, b in result.trace]
    assert all(a <= M <= b for a, M, b in result.trace)
    assert all(later <= earlier for earlier, later in zip(widths, widths[1:]))
    assert result.brackets[0] <= result.estimate <= result.brackets[1]


def test_estimate_lies_between_min_and_max_and_near_median() -> None:
    x = np.array([3, 5, 7, 18, 43, 85, 91, 98, 100, 130, 230, 487], dtype=float)

    estimate = smoothed_median(x)

    assert x.min() <= estimate <= x.max()
    assert 43 < estimate < 130


def test_constant_sample_returns_the_constant() -> None:
    assert smoothed_median(np.full(6, 2.5)) == pytest.approx(2.5)


def test_matrix_is_solved_column_wise() -> None:
    rng = np.random.default_rng(4)
    X = rng.normal(size=(15, 3))

    by_column = smoothed_median(X, axis=0)
    by_row = smoothed_median(X.T, axis=1)

    assert by_column.shape == (3,)
    np.testing.assert_allclose(by_column, [smoothed_median(X[:, k]) for k in range(3)])
    np.testing.assert_allclose(by_row, by_column)


def test_single_row_matrix_is_one_sample() -> None:
    row = np.array([[1.0, 2.0, 3.0, 4.0, 9.0]])

    estimate = smoothed_median(row)

    assert np.ndim(estimate) == 0
    assert estimate == pytest.approx(smoothed_median(row.ravel()))
    assert smoothed_median(row, axis=1) == pytest.approx(estimate)


@pytest.mark.parametrize("bad", [np.nan, np.inf])
def test_non_finite_input_is_rejected(bad: float) -> None:
    with pytest.raises(ValueError):
        smoothed_median(np.array([1.0, bad, 3.0]))


def test_non_convergence_warns() -> None:
    x = np.array([0.0, 1.0, 2.0, 10.0, 50.0, 51.0, 400.0])

    with pytest.warns(ConvergenceWarning):
        result = SmoothedMedianSolver(tol=0.0, max_iter=1).solve(x)

    assert not result.converged
