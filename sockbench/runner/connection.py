"""Client connections for the three supported transports."""

import asyncio
import time
from abc import ABC, abstractmethod
from typing import AsyncIterator, Optional

import aiohttp

from sockbench.config import Protocol, TargetSpec

READ_BUFFER_SIZE = 1024


class TransportError(Exception):
    """Base class for connection-level failures."""


class ConnectError(TransportError):
    """A connection attempt failed."""


class SendError(TransportError):
    """A payload could not be submitted."""


def split_host_port(address: str) -> tuple[str, int]:
    """Split ``host:port`` (optionally ``scheme://host:port``) into its parts."""
    if "://" in address:
        address = address.split("://", 1)[1]
    host, sep, port = address.rstrip("/").rpartition(":")
    if not sep or not host:
        raise ValueError(f"Address must be host:port, got {address!r}")
    port_num = int(port)
    if not 0 <= port_num <= 65535:
        raise ValueError(f"Port out of range 0-65535: {port_num}")
    return host.strip("[]"), port_num


class BaseConnection(ABC):
    """Abstract base class for an open client connection.

    A connection can send payloads, delivers inbound payloads through a single
    receive loop, and can be closed any number of times. Closing ends any
    receive loop that is still waiting.
    """

    protocol: Protocol

    def __init__(self) -> None:
        self._closed = False
        self._receive_started = False

    @property
    def closed(self) -> bool:
        return self._closed

    @abstractmethod
    async def send(self, payload: bytes) -> None:
        """Submit one payload, raising SendError on failure."""
        pass

    @abstractmethod
    def _receive(self) -> AsyncIterator[bytes]:
        pass

    @abstractmethod
    async def _close(self) -> None:
        pass

    async def receive_loop(self) -> AsyncIterator[bytes]:
        """Yield inbound payloads until the connection is closed or fails.

        The loop can only be consumed once.
        """
        if self._receive_started:
            raise RuntimeError("receive_loop() can only be started once")
        self._receive_started = True
        async for payload in self._receive():
            yield payload

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._close()


class FramedConnection(BaseConnection):
    """WebSocket connection; one frame is one inbound unit."""

    protocol = Protocol.FRAMED

    def __init__(self, ws: aiohttp.ClientWebSocketResponse):
        super().__init__()
        self._ws = ws

    @classmethod
    async def open(
        cls, session: aiohttp.ClientSession, address: str, timeout: float
    ) -> "FramedConnection":
        ws = await asyncio.wait_for(session.ws_connect(address), timeout)
        return cls(ws)

    async def send(self, payload: bytes) -> None:
        if self._closed or self._ws.closed:
            raise SendError("websocket is closed")
        try:
            try:
                text = payload.decode("utf-8")
            except UnicodeDecodeError:
                await self._ws.send_bytes(payload)
            else:
                await self._ws.send_str(text)
        except (ConnectionError, aiohttp.ClientError) as e:
            raise SendError(str(e)) from e

    async def _receive(self) -> AsyncIterator[bytes]:
        while True:
            try:
                msg = await self._ws.receive()
            except (aiohttp.ClientError, OSError):
                return
            if msg.type == aiohttp.WSMsgType.TEXT:
                yield msg.data.encode("utf-8")
            elif msg.type == aiohttp.WSMsgType.BINARY:
                yield msg.data
            elif msg.type in (
                aiohttp.WSMsgType.CLOSE,
                aiohttp.WSMsgType.CLOSING,
                aiohttp.WSMsgType.CLOSED,
                aiohttp.WSMsgType.ERROR,
            ):
                return

    async def _close(self) -> None:
        await self._ws.close()


class StreamConnection(BaseConnection):
    """TCP connection; every read of up to 1024 bytes is one inbound unit."""

    protocol = Protocol.STREAM

    def __init__(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        super().__init__()
        self._reader = reader
        self._writer = writer

    @classmethod
    async def open(cls, address: str, timeout: float) -> "StreamConnection":
        host, port = split_host_port(address)
        reader, writer = await asyncio.wait_for(
            asyncio.open_connection(host, port), timeout
        )
        return cls(reader, writer)

    async def send(self, payload: bytes) -> None:
        if self._closed or self._writer.is_closing():
            raise SendError("stream is closed")
        try:
            self._writer.write(payload)
            await self._writer.drain()
        except OSError as e:
            raise SendError(str(e)) from e

    async def _receive(self) -> AsyncIterator[bytes]:
        while True:
            try:
                chunk = await self._reader.read(READ_BUFFER_SIZE)
            except OSError:
                return
            if not chunk:
                return
            yield chunk

    async def _close(self) -> None:
        self._writer.close()
        try:
            await self._writer.wait_closed()
        except OSError:
            pass


class _DatagramQueueProtocol(asyncio.DatagramProtocol):
    """Queues inbound datagrams; None marks the end of the stream.

    An error reported while ``sending`` is set belongs to that send and is
    kept in ``send_error``. Any other error (e.g. ICMP port unreachable
    arriving later on the connected socket) ends the receive stream.
    """

    def __init__(self) -> None:
        self.queue: asyncio.Queue[Optional[bytes]] = asyncio.Queue()
        self.sending = False
        self.send_error: Optional[Exception] = None

    def datagram_received(self, data: bytes, addr) -> None:
        self.queue.put_nowait(data)

    def error_received(self, exc: Exception) -> None:
        if self.sending:
            self.send_error = exc
            return
        self.queue.put_nowait(None)

    def connection_lost(self, exc: Optional[Exception]) -> None:
        self.queue.put_nowait(None)


class DatagramConnection(BaseConnection):
    """Connected UDP socket; every datagram is one inbound unit."""

    protocol = Protocol.DATAGRAM

    def __init__(
        self, transport: asyncio.DatagramTransport, proto: _DatagramQueueProtocol
    ):
        super().__init__()
        self._transport = transport
        self._proto = proto

    @classmethod
    async def open(cls, address: str, timeout: float) -> "DatagramConnection":
        host, port = split_host_port(address)
        loop = asyncio.get_running_loop()
        transport, proto = await asyncio.wait_for(
            loop.create_datagram_endpoint(
                _DatagramQueueProtocol, remote_addr=(host, port)
            ),
            timeout,
        )
        return cls(transport, proto)

    async def send(self, payload: bytes) -> None:
        if self._closed or self._transport.is_closing():
            raise SendError("datagram socket is closed")
        self._proto.sending = True
        self._proto.send_error = None
        try:
            self._transport.sendto(payload)
        except OSError as e:
            raise SendError(str(e)) from e
        finally:
            self._proto.sending = False
        if self._proto.send_error is not None:
            error, self._proto.send_error = self._proto.send_error, None
            raise SendError(str(error)) from error

    async def _receive(self) -> AsyncIterator[bytes]:
        while True:
            data = await self._proto.queue.get()
            if data is None:
                return
            yield data

    async def _close(self) -> None:
        self._transport.close()
        self._proto.queue.put_nowait(None)


class Dialer:
    """Opens connections to targets.

    FRAMED connections share one aiohttp session, created on first use and
    released by close().
    """

    def __init__(self, connect_timeout_sec: float = 5.0):
        self.connect_timeout_sec = connect_timeout_sec
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            # The default connector caps open connections at 100
            self._session = aiohttp.ClientSession(
                connector=aiohttp.TCPConnector(limit=0)
            )
        return self._session

    async def open(self, target: TargetSpec) -> BaseConnection:
        """Open one connection to target, raising ConnectError on failure."""
        timeout = self.connect_timeout_sec
        try:
            if target.protocol is Protocol.FRAMED:
                session = await self._get_session()
                return await FramedConnection.open(session, target.address, timeout)
            if target.protocol is Protocol.STREAM:
                return await StreamConnection.open(target.address, timeout)
            if target.protocol is Protocol.DATAGRAM:
                return await DatagramConnection.open(target.address, timeout)
        except (
            OSError,
            OverflowError,
            asyncio.TimeoutError,
            aiohttp.ClientError,
            ValueError,
        ) as e:
            raise ConnectError(str(e) or type(e).__name__) from e
        raise ConnectError(f"Unsupported protocol: {target.protocol}")

    async def close(self) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None


class MockConnection(BaseConnection):
    """In-memory echo connection for testing without a server."""

    def __init__(self, protocol: Protocol = Protocol.STREAM, fail_sends: bool = False):
        super().__init__()
        self.protocol = protocol
        self.fail_sends = fail_sends
        self.sent: list[bytes] = []
        self.opened_at = time.monotonic()
        self.closed_at: Optional[float] = None
        self._queue: asyncio.Queue[Optional[bytes]] = asyncio.Queue()

    async def send(self, payload: bytes) -> None:
        if self._closed:
            raise SendError("mock connection is closed")
        if self.fail_sends:
            raise SendError("forced send failure")
        self.sent.append(payload)
        self._queue.put_nowait(payload)

    def deliver(self, payload: bytes) -> None:
        """Inject an inbound payload as if the server had sent it."""
        self._queue.put_nowait(payload)

    async def _receive(self) -> AsyncIterator[bytes]:
        while True:
            data = await self._queue.get()
            if data is None:
                return
            yield data

    async def _close(self) -> None:
        self.closed_at = time.monotonic()
        self._queue.put_nowait(None)


class MockDialer(Dialer):
    """Dialer producing MockConnections.

    Attempt indices are counted per target name, so ``fail_slots={1}`` makes
    the second connection attempt of every run fail.
    """

    def __init__(
        self,
        fail_slots: Optional[set[int]] = None,
        fail_send_slots: Optional[set[int]] = None,
    ):
        super().__init__()
        self.fail_slots = fail_slots or set()
        self.fail_send_slots = fail_send_slots or set()
        self.attempts: dict[str, int] = {}
        self.opened: list[MockConnection] = []

    async def open(self, target: TargetSpec) -> BaseConnection:
        slot = self.attempts.get(target.name, 0)
        self.attempts[target.name] = slot + 1
        if slot in self.fail_slots:
            raise ConnectError(f"mock connection refused for slot {slot}")
        conn = MockConnection(target.protocol, fail_sends=slot in self.fail_send_slots)
        self.opened.append(conn)
        return conn
