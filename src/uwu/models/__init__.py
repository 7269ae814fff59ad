"""Data models for uwu."""

from uwu.models.config import (
    Config,
    LoggingConfig,
    PeerConfig,
    WatchConfig,
)
from uwu.models.correlation import (
    CorrelationId,
    CorrelationIdError,
    InvalidEncoding,
    InvalidLength,
)
from uwu.models.protocol import (
    Command,
    ConnectionState,
    Request,
    Response,
    ResponseKind,
)

__all__ = [
    "Config",
    "LoggingConfig",
    "PeerConfig",
    "WatchConfig",
    "CorrelationId",
    "CorrelationIdError",
    "InvalidEncoding",
    "InvalidLength",
    "Command",
    "ConnectionState",
    "Request",
    "Response",
    "ResponseKind",
]
