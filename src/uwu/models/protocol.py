"""Commands, requests and responses exchanged with the editor listener."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from uwu.models.correlation import CorrelationId


class Command(str, Enum):
    """The fixed command vocabulary, valued by wire name."""

    PLAY = "play"
    STOP = "stop"
    REFRESH = "refresh"
    BACKGROUND_REFRESH = "background_refresh"
    BUILD = "build"
    CHECK_ALIVE = "check_alive"


class ResponseKind(str, Enum):
    SUCCESS = "Success"
    ERROR = "Error"
    WAIT = "Wait"


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class Request(BaseModel):
    """One logical command. Resends reuse the same correlation id."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    correlation_id: CorrelationId = Field(default_factory=CorrelationId.random)
    command: Command


class Response(BaseModel):
    """Wire-independent view of a peer response."""

    model_config = ConfigDict(frozen=True)

    kind: ResponseKind
    reason: str | None = None

    @classmethod
    def success(cls) -> Response:
        return cls(kind=ResponseKind.SUCCESS)

    @classmethod
    def error(cls, reason: str | None = None) -> Response:
        return cls(kind=ResponseKind.ERROR, reason=reason)

    @classmethod
    def wait(cls) -> Response:
        return cls(kind=ResponseKind.WAIT)

    @property
    def is_terminal(self) -> bool:
        return self.kind is not ResponseKind.WAIT
