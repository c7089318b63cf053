from __future__ import annotations

import pytest

from dsc.constants import BUF_SIZE, HEADER_SIZE, MAX_PAYLOAD, SIGNATURE, Command, Status
from dsc.errors import ChecksumError, EncodeError, IntegrityError, LengthError, PayloadTooLarge, SignatureError
from dsc.packet import Packet, decode_and_verify, encode, internet_checksum


def test_roundtrip_request():
    p = Packet.request(Command.PUT_MESSAGE, b"hello\x00")
    raw = p.to_bytes()
    q = Packet.from_bytes(raw)
    assert q == p
    assert q.command == Command.PUT_MESSAGE
    assert q.payload == b"hello\x00"
    assert q.payload_length == 6
    assert q.signature == SIGNATURE


def test_roundtrip_response_without_payload():
    raw = encode(Packet.response(Status.INVALID_COMMAND))
    assert len(raw) == HEADER_SIZE
    p = decode_and_verify(raw)
    assert p.status == Status.INVALID_COMMAND
    assert p.payload == b""


def test_wire_layout_matches_reference_peer():
    raw = encode(Packet.request(Command.GET_VERSION))
    assert raw == bytes.fromhex("efbeadde" "01800000" "00000000" "60e2")
    assert decode_and_verify(raw).checksum == 0xE260


def test_checksum_rfc1071_example():
    # RFC 1071 section 3 data, summed as little-endian words
    assert internet_checksum(bytes.fromhex("0001f203f4f5f6f7")) == 0x0D22


def test_checksum_odd_length_pads_with_zero():
    assert internet_checksum(b"\x01") == 0xFFFE
    assert internet_checksum(b"\x12\x34\x56") == internet_checksum(b"\x12\x34\x56\x00")


def test_checksum_of_whole_packet_is_zero():
    raw = encode(Packet.request(0x1234, b"abc"))
    assert internet_checksum(raw) == 0


def test_every_single_bit_flip_is_rejected():
    raw = encode(Packet.request(Command.PUT_MESSAGE, b"Hello, world\x00"))
    for bit in range(len(raw) * 8):
        corrupted = bytearray(raw)
        corrupted[bit // 8] ^= 1 << (bit % 8)
        with pytest.raises(IntegrityError):
            decode_and_verify(bytes(corrupted))


def test_payload_bit_flip_is_checksum_error():
    raw = bytearray(encode(Packet.request(Command.GET_MESSAGE, b"x")))
    raw[-1] ^= 0xFF
    with pytest.raises(ChecksumError):
        decode_and_verify(bytes(raw))


def test_truncation_is_length_error():
    raw = encode(Packet.request(Command.PUT_MESSAGE, b"some payload"))
    for n in range(len(raw)):
        with pytest.raises(LengthError):
            decode_and_verify(raw[:n])


def test_trailing_bytes_are_length_error():
    raw = encode(Packet.request(Command.GET_VERSION))
    with pytest.raises(LengthError):
        decode_and_verify(raw + b"\x00")
    with pytest.raises(LengthError):
        decode_and_verify(raw + b"\x00\x00")


def test_foreign_signature_rejected_even_with_valid_checksum():
    raw = encode(Packet(code=Command.GET_VERSION, signature=0xCAFEBABE))
    assert internet_checksum(raw) == 0
    with pytest.raises(SignatureError):
        decode_and_verify(raw)


def test_short_foreign_datagram_is_signature_error():
    with pytest.raises(SignatureError):
        decode_and_verify(b"GET / HTTP/1.0")
    with pytest.raises(SignatureError):
        decode_and_verify(b"\x00\x00\x00\x00")


def test_integrity_errors_are_value_errors():
    with pytest.raises(ValueError):
        decode_and_verify(b"")


def test_max_payload_fits_buffer():
    raw = encode(Packet.request(Command.PUT_MESSAGE, b"a" * MAX_PAYLOAD))
    assert len(raw) == BUF_SIZE
    assert decode_and_verify(raw).payload_length == MAX_PAYLOAD


def test_oversized_payload_is_rejected_at_encode():
    with pytest.raises(PayloadTooLarge):
        encode(Packet.request(Command.PUT_MESSAGE, b"a" * (MAX_PAYLOAD + 1)))


@pytest.mark.parametrize(
    "packet",
    [
        Packet(code=-1),
        Packet(code=2**32),
        Packet(code=0, signature=2**32),
        Packet(code=0, payload="text"),
    ],
    ids=["negative-code", "code-over-u32", "signature-over-u32", "text-payload"],
)
def test_unrepresentable_fields_are_encode_errors(packet):
    with pytest.raises(EncodeError):
        encode(packet)


def test_payload_too_large_is_an_encode_error():
    assert issubclass(PayloadTooLarge, EncodeError)
    assert issubclass(EncodeError, ValueError)


def test_command_and_status_share_one_field():
    p = Packet(code=3)
    assert p.command == p.status == 3
    assert Packet.generic_error().status == Status.ERROR
