"""Periodic payload sender for one run."""

import asyncio
from typing import Optional, Sequence

from sockbench.runner.connection import BaseConnection, SendError
from sockbench.runner.counters import RunCounters


class Sender:
    """Sends the full message list to every client slot once per tick.

    Slots are walked by configured index (0..N-1 over the pre-sized pool), so
    a slot whose connection attempt failed is skipped without counting
    anything. Every failed send counts as one lost packet. Ticks are scheduled
    on a fixed grid; when a tick overruns, the missed ticks are dropped rather
    than queued.
    """

    def __init__(
        self,
        pool: Sequence[Optional[BaseConnection]],
        messages: Sequence[bytes],
        counters: RunCounters,
        interval_sec: float = 0.064,
    ):
        if interval_sec <= 0:
            raise ValueError("interval_sec must be positive")
        self.pool = pool
        self.messages = list(messages)
        self.counters = counters
        self.interval_sec = interval_sec
        self.ticks = 0

    async def tick(self) -> None:
        """Attempt every message on every configured slot once."""
        for slot in range(len(self.pool)):
            conn = self.pool[slot]
            if conn is None:
                continue
            for msg in self.messages:
                try:
                    await conn.send(msg)
                except (SendError, OSError):
                    self.counters.incr_lost()
        self.ticks += 1

    async def run(self) -> None:
        """Tick until cancelled."""
        loop = asyncio.get_running_loop()
        next_tick = loop.time() + self.interval_sec
        while True:
            delay = next_tick - loop.time()
            if delay > 0:
                await asyncio.sleep(delay)
            await self.tick()
            next_tick += self.interval_sec
            now = loop.time()
            if next_tick <= now:
                missed = int((now - next_tick) // self.interval_sec) + 1
                next_tick += missed * self.interval_sec
