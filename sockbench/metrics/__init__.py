"""Metrics computation for benchmark results."""

from sockbench.metrics.throughput import (
    ResultAggregator,
    RunResult,
    compute_mean,
    compute_percentages,
    rank_results,
)

__all__ = [
    "ResultAggregator",
    "RunResult",
    "compute_mean",
    "compute_percentages",
    "rank_results",
]
