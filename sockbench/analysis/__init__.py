"""Analysis and reporting utilities."""

from sockbench.analysis.report import render_report, render_result

__all__ = ["render_report", "render_result"]
