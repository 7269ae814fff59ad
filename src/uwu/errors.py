"""Exceptions raised by the command channel and its callers."""

from __future__ import annotations


class ConfigError(Exception):
    """Bad configuration: unreadable config file, bad address, missing project."""


class ChannelError(Exception):
    """Base class for everything that can go wrong during an exchange."""


class RecoverableError(ChannelError):
    """Transport trouble. Reconnecting and trying again may help."""


class NotConnected(RecoverableError):
    def __init__(self) -> None:
        super().__init__("Not connected to the peer")


class SendFailed(RecoverableError):
    """Writing the request failed; the peer most likely never saw it."""


class ReceiveFailed(RecoverableError):
    """Reading the response failed with something other than a clean close."""


class ResponseTimeout(RecoverableError):
    """No response within the bounded first-read timeout."""


class PeerUnresponsive(RecoverableError):
    """Every datagram resend went unanswered."""


class ProbablyRestarted(RecoverableError):
    """The peer went away after the request was written.

    The command may well have taken effect: reloading scripts tears the
    listener down. Callers should reconnect and check liveness rather than
    resend.
    """

    def __init__(self, message: str = "Peer closed the connection before responding"):
        super().__init__(message)


class PeerRejected(ChannelError):
    """The peer ran the command and reported failure."""

    def __init__(self, reason: str | None = None):
        self.reason = reason
        if reason:
            super().__init__(f"Peer-side error: {reason}")
        else:
            super().__init__("Peer-side error")


class ProtocolError(ChannelError):
    """The peer said something this client does not understand."""


class UnknownResponse(ProtocolError):
    def __init__(self, value: object):
        self.value = value
        super().__init__(f"Unknown response from peer: {value!r}")


class UnexpectedWait(ProtocolError):
    def __init__(self) -> None:
        super().__init__("Unexpected Wait response")
