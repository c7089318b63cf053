from __future__ import annotations

import pytest

from dsc.constants import GET_MSG_SIZE, Command, Status
from dsc.handlers import (
    SERVER_MESSAGE,
    CommandHandler,
    decode_message,
    decode_version,
    default_handler,
    encode_message,
)
from dsc.packet import Packet


def test_get_version():
    resp = default_handler(Packet.request(Command.GET_VERSION))
    assert resp.status == Status.SUCCESS
    assert resp.payload == b"\x01\x00"


def test_get_message_is_bounded_and_unterminated():
    resp = default_handler(Packet.request(Command.GET_MESSAGE))
    assert resp.payload == SERVER_MESSAGE.encode()
    assert len(resp.payload) < GET_MSG_SIZE


def test_put_message_answers_empty_success():
    resp = default_handler(Packet.request(Command.PUT_MESSAGE, encode_message("hi")))
    assert resp == Packet.response(Status.SUCCESS)


@pytest.mark.parametrize("code", [0, 0x8000, 0x8004, 0xFFFF, 0xFFFFFFFF])
def test_dispatch_is_total(code):
    resp = default_handler(Packet.request(code))
    assert resp.status == Status.INVALID_COMMAND
    assert resp.payload == b""


def test_register_custom_command():
    handler = CommandHandler()
    handler.register(0x9000, lambda req: Packet.response(Status.SUCCESS, req.payload[::-1]))
    assert handler(Packet.request(0x9000, b"abc")).payload == b"cba"
    assert handler(Packet.request(Command.GET_VERSION)).status == Status.INVALID_COMMAND


def test_message_helpers():
    assert encode_message("hello") == b"hello\x00"
    assert decode_message(b"hello\x00garbage") == "hello"
    assert decode_message(b"no terminator") == "no terminator"
    with pytest.raises(ValueError):
        encode_message("x" * 256)


def test_decode_version_rejects_short_payload():
    assert decode_version(b"\x02\x07") == (2, 7)
    with pytest.raises(ValueError):
        decode_version(b"\x01")
