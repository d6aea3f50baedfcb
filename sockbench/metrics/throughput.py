"""Cross-run throughput comparison."""

from dataclasses import dataclass
from typing import Sequence


@dataclass
class RunResult:
    """Outcome of one target run."""

    name: str
    average: float  # Messages observed during the run
    lost_packets: int
    percentage: float = 0.0  # Deviation from the cross-run mean, filled in by aggregation

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "name": self.name,
            "average": self.average,
            "lost_packets": self.lost_packets,
            "percentage": self.percentage,
        }


def compute_mean(results: Sequence[RunResult]) -> float:
    """Mean of the run averages.

    Raises:
        ValueError: if no results are given
    """
    if not results:
        raise ValueError("No results provided")
    return sum(r.average for r in results) / len(results)


def compute_percentages(results: Sequence[RunResult]) -> float:
    """Fill in each result's signed deviation from the mean, in percent.

    Returns the mean. When every run observed nothing the mean is zero and
    all deviations are reported as 0.0.
    """
    mean = compute_mean(results)
    for r in results:
        r.percentage = ((r.average - mean) / mean) * 100 if mean else 0.0
    return mean


def rank_results(results: Sequence[RunResult]) -> list[RunResult]:
    """Sort by average, highest first; ties keep their original order."""
    return sorted(results, key=lambda r: r.average, reverse=True)


class ResultAggregator:
    """Owns the result set for one benchmark."""

    def __init__(self) -> None:
        self.results: list[RunResult] = []
        self.mean: float = 0.0

    def add(self, result: RunResult) -> None:
        self.results.append(result)

    def finalize(self) -> list[RunResult]:
        """Compute deviations and return results ranked by average."""
        self.mean = compute_percentages(self.results)
        self.results = rank_results(self.results)
        return self.results
