"""Pytest configuration and shared fixtures."""

from __future__ import annotations

import json
import socket
import threading
import time
from typing import Callable

import pytest

from uwu.channel.retry import RetryPolicy
from uwu.errors import NotConnected, RecoverableError


class StreamPeer:
    """Loopback TCP listener that serves one scripted handler per connection.

    Like the editor listener it reads a single command per connection, then
    hands the connection to the next handler in the script. With
    ``idle_timeout`` set, connections that stay silent that long are closed
    unread, as a restarting editor does, and counted in ``dropped``.
    """

    def __init__(
        self,
        handlers: list[Callable[[socket.socket], None]],
        idle_timeout: float | None = None,
    ):
        self.handlers = handlers
        self.idle_timeout = idle_timeout
        self.received: list[bytes] = []
        self.dropped = 0
        self.server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self.server.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self.server.bind(("127.0.0.1", 0))
        self.server.listen(8)
        self.server.settimeout(0.05)
        self.port = self.server.getsockname()[1]
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._serve, daemon=True)
        self._thread.start()

    def _accept(self) -> socket.socket | None:
        while not self._stop.is_set():
            try:
                conn, _ = self.server.accept()
            except socket.timeout:
                continue
            except OSError:
                return None
            conn.settimeout(5)
            return conn
        return None

    def _serve(self) -> None:
        pending = list(self.handlers)
        while pending:
            conn = self._accept()
            if conn is None:
                return
            with conn:
                if self.idle_timeout is not None:
                    conn.settimeout(self.idle_timeout)
                try:
                    data = conn.recv(256)
                except socket.timeout:
                    self.dropped += 1
                    continue
                conn.settimeout(5)
                self.received.append(data)
                pending.pop(0)(conn)

    def close(self) -> None:
        self._stop.set()
        self._thread.join(timeout=2)
        self.server.close()


class DatagramPeer:
    """Loopback UDP listener replying from a script, one entry per datagram.

    A float in an entry pauses the listener for that many seconds. Datagrams
    arriving after the script runs out are recorded and ignored.
    """

    def __init__(self, script: list[list[bytes | float]]):
        self.script = list(script)
        self.received: list[dict] = []
        self.sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        self.sock.bind(("127.0.0.1", 0))
        self.sock.settimeout(0.05)
        self.port = self.sock.getsockname()[1]
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._serve, daemon=True)
        self._thread.start()

    def _serve(self) -> None:
        while not self._stop.is_set():
            try:
                data, addr = self.sock.recvfrom(1024)
            except socket.timeout:
                continue
            except OSError:
                return
            self.received.append(json.loads(data))
            if self.script:
                for item in self.script.pop(0):
                    if isinstance(item, float):
                        time.sleep(item)
                    else:
                        self.sock.sendto(item, addr)

    def close(self) -> None:
        self._stop.set()
        self._thread.join(timeout=2)
        self.sock.close()


def reply(*chunks: bytes, pause: float = 0.0) -> Callable[[socket.socket], None]:
    """Handler sending ``chunks`` in order, pausing between them."""

    def handler(conn: socket.socket) -> None:
        for i, chunk in enumerate(chunks):
            if i and pause:
                time.sleep(pause)
            conn.sendall(chunk)

    return handler


def hang_up(conn: socket.socket) -> None:
    """Handler closing the connection without a word."""


def linger(seconds: float) -> Callable[[socket.socket], None]:
    def handler(conn: socket.socket) -> None:
        time.sleep(seconds)

    return handler


def late(seconds: float, chunk: bytes) -> Callable[[socket.socket], None]:
    """Handler answering only after ``seconds``, when the client may be gone."""

    def handler(conn: socket.socket) -> None:
        time.sleep(seconds)
        try:
            conn.sendall(chunk)
        except OSError:
            pass

    return handler


@pytest.fixture
def stream_peer():
    peers: list[StreamPeer] = []

    def start(
        *handlers: Callable[[socket.socket], None], idle_timeout: float | None = None
    ) -> StreamPeer:
        peer = StreamPeer(list(handlers), idle_timeout=idle_timeout)
        peers.append(peer)
        return peer

    yield start

    for peer in peers:
        peer.close()


@pytest.fixture
def datagram_peer():
    peers: list[DatagramPeer] = []

    def start(*script: list[bytes | float]) -> DatagramPeer:
        peer = DatagramPeer(list(script))
        peers.append(peer)
        return peer

    yield start

    for peer in peers:
        peer.close()


@pytest.fixture
def free_port() -> int:
    """A loopback port with nothing listening on it."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    return port


class FakeClock:
    def __init__(self, start: float = 100.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeChannel:
    """Stands in for a ``CommandChannel``.

    ``outcomes`` holds one entry per send: ``None`` for success, or an
    exception to raise. Recoverable errors drop the fake connection.
    """

    keeps_connection = True

    def __init__(self, outcomes=(), reachable: bool = True):
        self.outcomes = list(outcomes)
        self.reachable = reachable
        self.sent: list[tuple] = []
        self.connects = 0
        self.connected = False
        self.connect_policy = RetryPolicy(3.0, sleep=lambda seconds: None)

    def connect_with_retry(self) -> None:
        self.connects += 1
        self.connected = True

    def try_connect(self) -> bool:
        self.connected = self.reachable
        return self.connected

    def is_connected(self) -> bool:
        return self.connected

    def close(self) -> None:
        self.connected = False

    def send_and_await(self, command, correlation_id=None) -> None:
        if not self.connected:
            raise NotConnected()
        self.sent.append((command, correlation_id))
        outcome = self.outcomes.pop(0) if self.outcomes else None
        if isinstance(outcome, RecoverableError):
            self.connected = False
        if outcome is not None:
            raise outcome

    @property
    def commands(self) -> list:
        return [command for command, _ in self.sent]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleeps() -> list[float]:
    return []
