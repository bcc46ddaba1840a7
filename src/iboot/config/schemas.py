"""Pydantic schemas for bootstrap run configuration.

YAML files describing a confidence-interval run validate against
:class:`BootstrapConfig`. The validators mirror the eager input checks of
:func:`iboot.api.confidence_interval`, so an invalid file is rejected before
any resampling happens.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from .constants import DEFAULT_ALPHA, DEFAULT_NBOOT, mode_alias

__all__ = ["BootstrapConfig"]


class BootstrapConfig(BaseModel):
    """Parameters of a single or iterated bootstrap run.

    Attributes
    ----------
    nboot : int
        Number of outer resamples.
    n_inner : int
        Number of inner resamples per outer resample (0 disables calibration).
    alpha : float | tuple[float, float] | None
        Scalar two-tailed probability, an ordered pair of percentiles or
        ``None`` to skip the interval.
    mode : str
        ``bootstrap`` or ``bootknife`` (aliases accepted).
    expand : bool | None
        Force (or disable) Student-t expansion of the percentiles.
    seed : int | None
        Seed of the resampling generator.
    n_jobs : int | None
        Worker count for fan-out (``None`` uses the global settings).
    backend : str | None
        Fan-out backend (``None`` uses the global settings).
    """

    nboot: int = Field(default=DEFAULT_NBOOT, ge=1, description="Outer resamples")
    n_inner: int = Field(default=0, ge=0, description="Inner resamples (calibration)")
    alpha: float | tuple[float, float] | None = Field(default=DEFAULT_ALPHA)
    mode: str = Field(default="bootknife", description="Resampling regime")
    expand: bool | None = Field(default=None)
    seed: int | None = Field(default=None, ge=0)
    n_jobs: int | None = Field(default=None, ge=1)
    backend: Literal["sequential", "thread", "process", "joblib"] | None = None

    @field_validator("alpha")
    @classmethod
    def validate_alpha(cls, v: Any) -> Any:
        """Scalar alpha in (0, 1) or an ascending pair inside (0, 1)."""
        if v is None:
            return v
        if isinstance(v, tuple):
            lower, upper = v
            if not (0 < lower < 1 and 0 < upper < 1):
                raise ValueError("alpha probabilities must lie in (0, 1)")
            if lower > upper:
                raise ValueError("alpha pair must be in ascending order")
            return v
        if not 0 < v < 1:
            raise ValueError("alpha must lie in (0, 1)")
        return v

    @field_validator("mode")
    @classmethod
    def validate_mode(cls, v: str) -> str:
        """Normalise mode aliases (``knife`` -> ``bootknife``)."""
        key = v.lower()
        if key not in mode_alias:
            raise ValueError(f"Unsupported resampling mode: {v}")
        return mode_alias[key]

    @model_validator(mode="after")
    def validate_calibration(self) -> "BootstrapConfig":
        if self.n_inner == 1:
            raise ValueError("n_inner must be 0 (no calibration) or at least 2")
        return self

    def nboot_pair(self) -> tuple[int, int]:
        return self.nboot, self.n_inner

    def to_kwargs(self) -> dict[str, Any]:
        """Keyword arguments accepted by :func:`iboot.api.confidence_interval`."""
        return {
            "nboot": self.nboot_pair(),
            "alpha": self.alpha,
            "mode": self.mode,
            "expand": self.expand,
            "seed": self.seed,
            "n_jobs": self.n_jobs,
            "backend": self.backend,
        }
