"""Similarity metric state consumed during registration."""

from resmask.metric.base import MaskedMetricBase

__all__ = ["MaskedMetricBase"]
