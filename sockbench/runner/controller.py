"""Target run orchestration."""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from sockbench.config import BenchConfig, Protocol, TargetSpec
from sockbench.metrics.throughput import ResultAggregator, RunResult
from sockbench.runner.connection import BaseConnection, ConnectError, Dialer, MockDialer
from sockbench.runner.counters import RunCounters
from sockbench.runner.sender import Sender
from sockbench.runner.session import SessionRunner


class RunState(str, Enum):
    PENDING = "pending"
    CONNECTING = "connecting"
    RUNNING = "running"
    DRAINING = "draining"
    REPORTING = "reporting"
    DONE = "done"


@dataclass
class RunContext:
    """Everything one run needs; never shared between runs."""

    target: TargetSpec
    config: BenchConfig
    counters: RunCounters = field(default_factory=RunCounters)


class TargetRunController:
    """Runs one benchmark cycle against a single target.

    The pool is pre-sized to the configured client count and failed
    connection attempts leave a None in their slot. One session task is
    started per opened connection, so the number of sessions always matches
    the number of live slots.
    """

    def __init__(self, context: RunContext, dialer: Dialer):
        self.context = context
        self.dialer = dialer
        self.state = RunState.PENDING
        self.pool: list[Optional[BaseConnection]] = [None] * context.config.clients_per_target
        self.sessions: list[SessionRunner] = []
        self.sender: Optional[Sender] = None
        self._session_tasks: list[asyncio.Task] = []
        self._sender_task: Optional[asyncio.Task] = None

    @property
    def live_count(self) -> int:
        return sum(1 for conn in self.pool if conn is not None)

    async def _connect(self) -> None:
        self.state = RunState.CONNECTING
        target = self.context.target
        print(f"Connecting to {target.name} at {target.address}")

        for slot in range(len(self.pool)):
            try:
                conn = await self.dialer.open(target)
            except ConnectError as e:
                print(f"Failed to connect to {target.name} (slot {slot}): {e}")
                continue
            self.pool[slot] = conn
            runner = SessionRunner(
                conn, self.context.counters, slot, self.context.config.log_messages
            )
            self.sessions.append(runner)
            self._session_tasks.append(asyncio.create_task(runner.run()))

        print(f"Connected {self.live_count}/{len(self.pool)} clients")

    def _start_sender(self) -> None:
        self.state = RunState.RUNNING
        config = self.context.config
        self.sender = Sender(
            self.pool,
            config.payloads,
            self.context.counters,
            interval_sec=config.send_interval_sec,
        )
        self._sender_task = asyncio.create_task(self.sender.run())

    async def _drain(self) -> None:
        self.state = RunState.DRAINING

        if self._sender_task is not None:
            self._sender_task.cancel()
            await asyncio.gather(self._sender_task, return_exceptions=True)

        # Close errors are irrelevant at this point
        await asyncio.gather(
            *(conn.close() for conn in self.pool if conn is not None),
            return_exceptions=True,
        )

        if self._session_tasks:
            _, pending = await asyncio.wait(
                self._session_tasks, timeout=self.context.config.drain_timeout_sec
            )
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

    def _report(self) -> RunResult:
        self.state = RunState.REPORTING
        target = self.context.target
        snapshot = self.context.counters.snapshot()
        print(f"{target.name}: {snapshot.received} messages received")
        result = RunResult(
            name=target.name,
            average=float(snapshot.received),
            lost_packets=snapshot.lost,
        )
        self.state = RunState.DONE
        return result

    async def run(self) -> RunResult:
        """Connect, send for the observation window, tear down, report."""
        try:
            await self._connect()
            self._start_sender()
            await asyncio.sleep(self.context.config.duration_sec)
        finally:
            await self._drain()
        return self._report()


class BenchmarkRunner:
    """Runs every configured target in turn and aggregates the results."""

    def __init__(self, config: BenchConfig, dialer: Optional[Dialer] = None):
        self.config = config
        self.dialer = dialer or Dialer(connect_timeout_sec=config.connect_timeout_sec)
        self.aggregator = ResultAggregator()

    async def run(self) -> list[RunResult]:
        """Run all targets sequentially and return results ranked by average.

        Raises:
            ValueError: if no target produced a result
        """
        try:
            for i, target in enumerate(self.config.targets):
                if i > 0:
                    # Let the previous run's sockets settle
                    await asyncio.sleep(self.config.inter_run_delay_sec)
                controller = TargetRunController(RunContext(target, self.config), self.dialer)
                self.aggregator.add(await controller.run())
        finally:
            await self.dialer.close()

        return self.aggregator.finalize()


async def run_mock_benchmark(
    clients_per_target: int = 5,
    duration_sec: float = 0.5,
    send_interval_sec: float = 0.05,
    fail_slots: Optional[set[int]] = None,
    fail_send_slots: Optional[set[int]] = None,
    targets: Optional[list[TargetSpec]] = None,
) -> list[RunResult]:
    """Convenience function to run a benchmark over in-memory connections."""
    if targets is None:
        targets = [
            TargetSpec(name=f"Mock {p.value.upper()}", address=f"mock://{p.value}", protocol=p)
            for p in Protocol
        ]
    config = BenchConfig(
        targets=targets,
        clients_per_target=clients_per_target,
        send_interval_sec=send_interval_sec,
        duration_sec=duration_sec,
        inter_run_delay_sec=0.0,
        drain_timeout_sec=0.5,
    )
    dialer = MockDialer(fail_slots=fail_slots, fail_send_slots=fail_send_slots)
    return await BenchmarkRunner(config, dialer).run()
