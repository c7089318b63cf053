"""Demo command set served by ``dsc server``.

Any callable taking a request Packet and returning a response Packet can
be handed to a ServerEndpoint; this module provides the stock one.
"""

from __future__ import annotations

import logging
import struct
from typing import Callable

from .constants import GET_MSG_SIZE, PUT_MSG_SIZE, VERSION_MAJOR, VERSION_MINOR, Command, Status
from .packet import Packet

log = logging.getLogger(__name__)

SERVER_MESSAGE = "Hello, this is a message from the server."

_VERSION = struct.Struct("<BB")


def encode_message(text: str, limit: int = PUT_MSG_SIZE) -> bytes:
    """Encode ``text`` NUL-terminated, as the message commands expect."""
    data = text.encode("utf-8") + b"\x00"
    if len(data) > limit:
        raise ValueError(f"message too long: {len(data)} > {limit} bytes")
    return data


def decode_message(payload: bytes) -> str:
    return payload.split(b"\x00", 1)[0].decode("utf-8", errors="replace")


def decode_version(payload: bytes) -> tuple[int, int]:
    if len(payload) < _VERSION.size:
        raise ValueError(f"version payload too short: {len(payload)} bytes")
    return _VERSION.unpack_from(payload)


def get_version(request: Packet) -> Packet:
    log.info("CMD_GET_VERSION")
    return Packet.response(Status.SUCCESS, _VERSION.pack(VERSION_MAJOR, VERSION_MINOR))


def get_message(request: Packet) -> Packet:
    log.info("CMD_GET_MESSAGE")
    return Packet.response(Status.SUCCESS, SERVER_MESSAGE.encode("utf-8")[: GET_MSG_SIZE - 1])


def put_message(request: Packet) -> Packet:
    log.info("CMD_PUT_MESSAGE")
    log.info("Message: %s", decode_message(request.payload[:PUT_MSG_SIZE]))
    return Packet.response(Status.SUCCESS)


def unknown_command(request: Packet) -> Packet:
    log.info("unknown request type 0x%04X", request.command)
    return Packet.response(Status.INVALID_COMMAND)


class CommandHandler:
    """Dispatches on the command code; unrecognized codes get INVALID_COMMAND."""

    def __init__(self, routes: dict[int, Callable[[Packet], Packet]] | None = None):
        self.routes: dict[int, Callable[[Packet], Packet]] = dict(routes or {})

    def register(self, command: int, fn: Callable[[Packet], Packet]) -> None:
        self.routes[int(command)] = fn

    def __call__(self, request: Packet) -> Packet:
        return self.routes.get(request.command, unknown_command)(request)


default_handler = CommandHandler(
    {
        Command.GET_VERSION: get_version,
        Command.GET_MESSAGE: get_message,
        Command.PUT_MESSAGE: put_message,
    }
)
