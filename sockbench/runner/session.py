"""Per-connection receive loop."""

from sockbench.runner.connection import BaseConnection
from sockbench.runner.counters import RunCounters


class SessionRunner:
    """Counts every payload one connection receives.

    The runner ends for good when the receive loop ends, whether the
    connection was closed by either side or failed. Errors are never
    surfaced; the only trace of a dead session is a lower received count.
    """

    def __init__(
        self,
        connection: BaseConnection,
        counters: RunCounters,
        slot: int,
        log_messages: bool = False,
    ):
        self.connection = connection
        self.counters = counters
        self.slot = slot
        self.log_messages = log_messages
        self.payloads_seen = 0

    async def run(self) -> None:
        label = self.connection.protocol.value.upper()
        try:
            async for payload in self.connection.receive_loop():
                if self.log_messages:
                    print(f"{label} received: {payload.decode('utf-8', errors='replace')}")
                self.counters.incr_received()
                self.payloads_seen += 1
        except (OSError, RuntimeError) as e:
            if self.log_messages:
                print(f"{label} session {self.slot} ended: {e}")
