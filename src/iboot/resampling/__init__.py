"""Resample index generation."""

from .balanced import BalancedResampler, balanced_indices, budget_counts

__all__ = ["BalancedResampler", "balanced_indices", "budget_counts"]
