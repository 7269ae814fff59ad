"""Wire formats for the two listener flavours.

Both codecs turn a ``Request`` into bytes and bytes back into a ``Response``;
the channel never looks at raw wire data itself.
"""

from __future__ import annotations

import json

from uwu.errors import UnknownResponse
from uwu.models.protocol import Command, Request, Response, ResponseKind

STATUS_FAILURE = 0x00
STATUS_SUCCESS = 0x01


class StreamCodec:
    """Plain-text command names out, a status byte or text token back.

    The editor listener answers with a single byte. Text tokens (``OK``,
    ``ERR <reason>``, ``WAIT``) are newline-terminated so a ``WAIT`` and the
    final token may arrive in one read.
    """

    wire_names = {Command.CHECK_ALIVE: "confirm_restart"}

    def encode_request(self, request: Request) -> bytes:
        name = self.wire_names.get(request.command, request.command.value)
        return name.encode("utf-8")

    def is_complete(self, buffer: bytes) -> bool:
        """True once ``buffer`` starts with a status byte or a whole text line."""
        if not buffer:
            return False
        return buffer[0] in (STATUS_SUCCESS, STATUS_FAILURE) or b"\n" in buffer

    def decode_response(self, buffer: bytes) -> tuple[Response, bytes]:
        """Decode the first response in ``buffer``; return it with the rest."""
        if buffer[0] == STATUS_SUCCESS:
            return Response.success(), buffer[1:]
        if buffer[0] == STATUS_FAILURE:
            return Response.error(), buffer[1:]

        line, _, rest = buffer.partition(b"\n")
        text = line.decode("utf-8", errors="replace").strip()
        token, _, reason = text.partition(" ")

        if token == "OK":
            return Response.success(), rest
        elif token == "ERR":
            return Response.error(reason.strip() or None), rest
        elif token == "WAIT":
            return Response.wait(), rest
        else:
            raise UnknownResponse(text)


class DatagramCodec:
    """JSON request objects and JSON response tags, one per datagram."""

    def encode_request(self, request: Request) -> bytes:
        message = {"id": str(request.correlation_id), "cmd": request.command.value}
        return json.dumps(message).encode("utf-8")

    def decode_response(self, data: bytes) -> Response:
        try:
            message = json.loads(data.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError):
            raise UnknownResponse(data) from None

        if isinstance(message, str):
            try:
                kind = ResponseKind(message)
            except ValueError:
                raise UnknownResponse(message) from None
            return Response(kind=kind)

        # {"Error": "reason"}
        if isinstance(message, dict) and list(message) == [ResponseKind.ERROR.value]:
            reason = message[ResponseKind.ERROR.value]
            return Response.error(str(reason) if reason is not None else None)

        raise UnknownResponse(message)
