"""Shared per-run counters."""

import threading
from dataclasses import dataclass


@dataclass(frozen=True)
class CounterSnapshot:
    received: int
    lost: int


class RunCounters:
    """Received and lost counts for one run.

    Every mutation goes through one lock, so increments from session tasks,
    the sender, or plain OS threads are never lost.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._received = 0
        self._lost = 0

    def incr_received(self, n: int = 1) -> None:
        if n < 0:
            raise ValueError("Counters cannot be decremented")
        with self._lock:
            self._received += n

    def incr_lost(self, n: int = 1) -> None:
        if n < 0:
            raise ValueError("Counters cannot be decremented")
        with self._lock:
            self._lost += n

    def snapshot(self) -> CounterSnapshot:
        with self._lock:
            return CounterSnapshot(received=self._received, lost=self._lost)
