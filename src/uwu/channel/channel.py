"""Command channel to the editor listener."""

from __future__ import annotations

import logging
import socket
import time
from typing import Callable

from uwu.channel.codec import DatagramCodec, StreamCodec
from uwu.channel.retry import RetryPolicy
from uwu.errors import (
    NotConnected,
    PeerRejected,
    PeerUnresponsive,
    ProbablyRestarted,
    ReceiveFailed,
    RecoverableError,
    ResponseTimeout,
    SendFailed,
    UnexpectedWait,
)
from uwu.models.config import PeerConfig
from uwu.models.correlation import CorrelationId
from uwu.models.protocol import (
    Command,
    ConnectionState,
    Request,
    Response,
    ResponseKind,
)

RECV_BUFFER_SIZE = 1024


class CommandChannel:
    """Owns the one connection to the peer and runs one exchange at a time.

    The channel never reconnects on its own. When an exchange fails with a
    ``RecoverableError`` the connection is dropped and it is up to the caller
    to run ``connect_with_retry`` again.
    """

    # whether a connection outlives an exchange and may be opened ahead of use
    keeps_connection = True

    def __init__(
        self,
        host: str,
        port: int,
        *,
        connect_backoff: float = 3.0,
        response_timeout: float = 5.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.address = (host, port)
        self.response_timeout = response_timeout
        self.connect_policy = RetryPolicy(connect_backoff, sleep=sleep)
        self.logger = logging.getLogger("uwu.channel")
        self._sock: socket.socket | None = None
        self._state = ConnectionState.DISCONNECTED

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def peer(self) -> str:
        return f"{self.address[0]}:{self.address[1]}"

    def is_connected(self) -> bool:
        return self._state is ConnectionState.CONNECTED

    def connect_with_retry(self) -> None:
        """Drop any current connection and connect, retrying until it works."""
        self.close()

        for attempt in self.connect_policy.attempts():
            if self.try_connect():
                return
            if attempt == 1:
                self.logger.info(
                    f"Peer at {self.peer} is not reachable, "
                    f"retrying every {self.connect_policy.interval}s"
                )

        raise NotConnected()

    def try_connect(self) -> bool:
        """Make a single connection attempt."""
        self.close()
        self._state = ConnectionState.CONNECTING
        try:
            self._sock = self._open()
        except OSError as e:
            self._state = ConnectionState.DISCONNECTED
            self.logger.debug(f"Could not connect to {self.peer}: {e}")
            return False

        self._state = ConnectionState.CONNECTED
        self.logger.debug(f"Connected to {self.peer}")
        return True

    def close(self) -> None:
        if self._sock is not None:
            self._sock.close()
            self._sock = None
        self._state = ConnectionState.DISCONNECTED

    def send_and_await(
        self, command: Command, correlation_id: CorrelationId | None = None
    ) -> None:
        """Send ``command`` and block until the peer reports the outcome.

        Pass ``correlation_id`` when resending a logical command that may
        already have reached the peer; otherwise a fresh id is minted.
        """
        if not self.is_connected() or self._sock is None:
            raise NotConnected()

        if correlation_id is None:
            request = Request(command=command)
        else:
            request = Request(correlation_id=correlation_id, command=command)

        self.logger.debug(f"Sending {command.value} ({request.correlation_id})")

        try:
            response = self._exchange(self._sock, request)
        except RecoverableError:
            self.close()
            raise

        if response.kind is ResponseKind.ERROR:
            raise PeerRejected(response.reason)

        self.logger.debug(f"{command.value} acknowledged")

    def _open(self) -> socket.socket:
        raise NotImplementedError

    def _exchange(self, sock: socket.socket, request: Request) -> Response:
        """Run one exchange and return its terminal response."""
        raise NotImplementedError


class StreamChannel(CommandChannel):
    """TCP variant: one write, one status read, peer close means restart.

    The editor listener serves a single command per accepted connection, so
    the connection is dropped once an exchange is over.
    """

    codec = StreamCodec()
    keeps_connection = False

    def send_and_await(
        self, command: Command, correlation_id: CorrelationId | None = None
    ) -> None:
        try:
            super().send_and_await(command, correlation_id)
        finally:
            self.close()

    def _open(self) -> socket.socket:
        return socket.create_connection(self.address, timeout=self.response_timeout)

    def _exchange(self, sock: socket.socket, request: Request) -> Response:
        sock.settimeout(self.response_timeout)
        try:
            sock.sendall(self.codec.encode_request(request))
        except OSError as e:
            raise SendFailed(f"Failed to send {request.command.value}: {e}") from e

        buffer = self._read_response(sock, b"", bounded=True)
        waited = False
        while True:
            response, buffer = self.codec.decode_response(buffer)
            if response.is_terminal:
                return response

            if waited:
                raise UnexpectedWait()
            waited = True
            self.logger.info("Waiting for peer...")

            buffer = self._read_response(sock, buffer, bounded=False)

    def _read_response(
        self, sock: socket.socket, buffer: bytes, bounded: bool
    ) -> bytes:
        """Read until ``buffer`` holds one whole response."""
        while not self.codec.is_complete(buffer):
            try:
                buffer += self._receive(sock, bounded)
            except ProbablyRestarted:
                # a token cut short by the close is still the peer's answer
                if buffer:
                    break
                raise
        return buffer

    def _receive(self, sock: socket.socket, bounded: bool) -> bytes:
        sock.settimeout(self.response_timeout if bounded else None)
        try:
            data = sock.recv(RECV_BUFFER_SIZE)
        except socket.timeout as e:
            raise ResponseTimeout(
                f"No response from {self.peer} within {self.response_timeout}s"
            ) from e
        except OSError as e:
            raise ReceiveFailed(f"Failed to read response: {e}") from e

        if not data:
            raise ProbablyRestarted()
        return data


class DatagramChannel(CommandChannel):
    """UDP variant: resend the same request until the peer acknowledges.

    The listener may be recreating its socket while we talk to it, so a lost
    datagram is normal. After a ``Wait`` the peer owes exactly one more,
    terminal, response and nothing is resent.
    """

    codec = DatagramCodec()

    def __init__(
        self,
        host: str,
        port: int,
        *,
        connect_backoff: float = 3.0,
        response_timeout: float = 5.0,
        resend_attempts: int | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        super().__init__(
            host,
            port,
            connect_backoff=connect_backoff,
            response_timeout=response_timeout,
            sleep=sleep,
        )
        # the receive timeout already paces resends
        self.resend_policy = RetryPolicy(0, max_attempts=resend_attempts, sleep=sleep)

    def _open(self) -> socket.socket:
        family, kind, proto, _, sockaddr = socket.getaddrinfo(
            *self.address, type=socket.SOCK_DGRAM
        )[0]
        sock = socket.socket(family, kind, proto)
        try:
            sock.connect(sockaddr)
        except OSError:
            sock.close()
            raise
        return sock

    def _exchange(self, sock: socket.socket, request: Request) -> Response:
        payload = self.codec.encode_request(request)
        self._discard_stale(sock)
        sock.settimeout(self.response_timeout)

        for _ in self.resend_policy.attempts():
            try:
                sock.send(payload)
            except ConnectionRefusedError:
                self._peer_refused()
                continue
            except OSError as e:
                raise SendFailed(f"Failed to send {request.command.value}: {e}") from e

            try:
                data = sock.recv(RECV_BUFFER_SIZE)
            except socket.timeout:
                self.logger.debug("No ACK received within timeout, retrying")
                continue
            except ConnectionRefusedError:
                self._peer_refused()
                continue
            except OSError as e:
                raise ReceiveFailed(f"Failed to read response: {e}") from e

            response = self.codec.decode_response(data)
            if response.is_terminal:
                return response
            break
        else:
            raise PeerUnresponsive(
                f"No response from {self.peer} after "
                f"{self.resend_policy.max_attempts} attempts"
            )

        self.logger.info("Waiting for peer...")
        sock.settimeout(None)
        try:
            data = sock.recv(RECV_BUFFER_SIZE)
        except OSError as e:
            raise ReceiveFailed(f"Failed to read final response: {e}") from e

        response = self.codec.decode_response(data)
        if not response.is_terminal:
            raise UnexpectedWait()
        return response

    def _discard_stale(self, sock: socket.socket) -> None:
        """Drop late acks to earlier requests still queued on the socket."""
        sock.setblocking(False)
        try:
            while True:
                try:
                    data = sock.recv(RECV_BUFFER_SIZE)
                except BlockingIOError:
                    return
                except ConnectionRefusedError:
                    continue
                except OSError as e:
                    raise ReceiveFailed(f"Failed to read response: {e}") from e
                self.logger.debug(f"Discarding stale reply {data!r}")
        finally:
            sock.settimeout(self.response_timeout)

    def _peer_refused(self) -> None:
        # nothing bound on the peer port right now; pace like a timeout
        self.logger.debug(f"{self.peer} refused the datagram, retrying")
        self.resend_policy.sleep(self.response_timeout)


def create_channel(
    config: PeerConfig, sleep: Callable[[float], None] = time.sleep
) -> CommandChannel:
    """Build the channel flavour named by ``config.protocol``."""
    if config.protocol == "datagram":
        return DatagramChannel(
            config.host,
            config.port,
            connect_backoff=config.connect_backoff,
            response_timeout=config.response_timeout,
            resend_attempts=config.resend_attempts,
            sleep=sleep,
        )

    return StreamChannel(
        config.host,
        config.port,
        connect_backoff=config.connect_backoff,
        response_timeout=config.response_timeout,
        sleep=sleep,
    )
