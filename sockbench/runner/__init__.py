"""Benchmark runner components."""

from sockbench.runner.connection import (
    BaseConnection,
    ConnectError,
    Dialer,
    MockConnection,
    MockDialer,
    SendError,
    TransportError,
)
from sockbench.runner.controller import (
    BenchmarkRunner,
    RunContext,
    RunState,
    TargetRunController,
    run_mock_benchmark,
)
from sockbench.runner.counters import RunCounters

__all__ = [
    "BaseConnection",
    "ConnectError",
    "Dialer",
    "MockConnection",
    "MockDialer",
    "SendError",
    "TransportError",
    "BenchmarkRunner",
    "RunContext",
    "RunState",
    "TargetRunController",
    "run_mock_benchmark",
    "RunCounters",
]
