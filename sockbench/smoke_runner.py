#!/usr/bin/env python3
"""Smoke test runner for CI validation.

Runs a short benchmark over in-memory connections to check the whole
pipeline (connect, send, receive, drain, aggregate, report) without any
servers listening.
"""

import asyncio

from sockbench.analysis.report import render_report
from sockbench.runner.controller import run_mock_benchmark


async def run_smoke_test() -> None:
    """Run the smoke test and print the report."""
    print("=" * 60)
    print("Socket Benchmark - Smoke Test")
    print("=" * 60)

    print("\n[1/2] Running mock benchmark...")
    results = await run_mock_benchmark(
        clients_per_target=10,
        duration_sec=1.0,
        fail_slots={3},
        fail_send_slots={7},
    )

    print("\n[2/2] Rendering report...")
    print(render_report(results))

    print("=" * 60)
    print("Smoke Test Complete!")
    print("=" * 60)


def main() -> None:
    """Entry point for smoke test."""
    asyncio.run(run_smoke_test())


if __name__ == "__main__":
    main()
