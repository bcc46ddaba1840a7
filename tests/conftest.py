from __future__ import annotations

import numpy as np
import pytest

from iboot.config.settings import reset_settings_cache


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch: pytest.MonkeyPatch):
    """Sequential fan-out by default so results never depend on the host."""
    monkeypatch.setenv("IBOOT_N_JOBS", "1")
    monkeypatch.setenv("IBOOT_PARALLEL_BACKEND", "sequential")
    reset_settings_cache()
    yield
    reset_settings_cache()


@pytest.fixture
def skewed_sample() -> np.ndarray:
    """Twelve right-skewed observations (mean 108.0833)."""
    return np.array([3, 5, 7, 18, 43, 85, 91, 98, 100, 130, 230, 487], dtype=float)


@pytest.fixture
def spatial_sample() -> np.ndarray:
    """Spatial test data ``A`` (26 values, population variance 171.534)."""
    return np.array(
        [48, 36, 20, 29, 42, 42, 20, 42, 22, 41, 45, 14, 6,
         0, 33, 28, 34, 4, 32, 24, 47, 41, 24, 26, 30, 41],
        dtype=float,
    )


@pytest.fixture
def law_school() -> tuple[np.ndarray, np.ndarray]:
    """LSAT and GPA averages of 15 law schools."""
    lsat = np.array([576, 635, 558, 578, 666, 580, 555, 661, 651, 605, 653, 575, 545, 572, 594], dtype=float)
    gpa = np.array([3.39, 3.3, 2.81, 3.03, 3.44, 3.07, 3.0, 3.43, 3.36, 3.13, 3.12, 2.74, 2.76, 2.88, 2.96])
    return lsat, gpa
