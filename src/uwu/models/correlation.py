"""Correlation ids attached to every outbound command."""

from __future__ import annotations

import base64
import binascii
import re
import secrets

ID_SIZE = 8

_URLSAFE = re.compile(r"[A-Za-z0-9_-]*={0,2}")


class CorrelationIdError(ValueError):
    """Raised when a string is not a valid correlation id."""


class InvalidEncoding(CorrelationIdError):
    """The text is not URL-safe base64."""


class InvalidLength(CorrelationIdError):
    """The text decodes to something other than 8 bytes."""


class CorrelationId:
    """Opaque 64-bit id the peer uses to spot resends of the same command.

    The text form is unpadded base64url over the little-endian bytes, so it can
    travel inside JSON or a URL untouched.
    """

    __slots__ = ("_value",)

    def __init__(self, value: int):
        if not 0 <= value < 1 << 64:
            raise ValueError(f"Correlation id out of range: {value}")
        self._value = value

    @classmethod
    def random(cls) -> CorrelationId:
        return cls.from_bytes(secrets.token_bytes(ID_SIZE))

    @classmethod
    def from_bytes(cls, data: bytes) -> CorrelationId:
        if len(data) != ID_SIZE:
            raise InvalidLength(f"Expected {ID_SIZE} bytes, got {len(data)}")
        return cls(int.from_bytes(data, "little"))

    @classmethod
    def decode(cls, text: str) -> CorrelationId:
        """Parse the text form produced by ``encode``."""
        if not _URLSAFE.fullmatch(text):
            raise InvalidEncoding(f"Not URL-safe base64: {text!r}")

        stripped = text.rstrip("=")
        padded = stripped + "=" * (-len(stripped) % 4)
        try:
            data = base64.urlsafe_b64decode(padded)
        except (binascii.Error, ValueError) as e:
            raise InvalidEncoding(f"Not URL-safe base64: {text!r}") from e

        return cls.from_bytes(data)

    def to_bytes(self) -> bytes:
        return self._value.to_bytes(ID_SIZE, "little")

    def encode(self) -> str:
        return base64.urlsafe_b64encode(self.to_bytes()).rstrip(b"=").decode("ascii")

    def __int__(self) -> int:
        return self._value

    def __str__(self) -> str:
        return self.encode()

    def __repr__(self) -> str:
        return f"CorrelationId({self.encode()!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CorrelationId):
            return NotImplemented
        return self._value == other._value

    def __hash__(self) -> int:
        return hash(self._value)
