"""Render the comparison report."""

from typing import Sequence

from sockbench.metrics.throughput import RunResult


def render_result(result: RunResult) -> str:
    """Render one result as a fixed four-line block."""
    return (
        f"Server: {result.name}\n"
        f"Avg Messages/sec: {result.average:.2f}\n"
        f"Lost Packets: {result.lost_packets}\n"
        f"Percentage Difference: {result.percentage:.2f}%\n"
    )


def render_report(results: Sequence[RunResult]) -> str:
    """Render results in the given order, each block followed by a blank line."""
    return "".join(render_result(r) + "\n" for r in results)
