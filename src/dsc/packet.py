from __future__ import annotations

import struct
from dataclasses import dataclass, field

from .constants import CHECKSUM_OFFSET, HEADER_FORMAT, HEADER_SIZE, MAX_PAYLOAD, SIGNATURE, Status
from .errors import ChecksumError, EncodeError, LengthError, PayloadTooLarge, SignatureError

_HEADER = struct.Struct(HEADER_FORMAT)
_SIGNATURE = struct.Struct("<I")
_U32_MAX = 0xFFFFFFFF


def internet_checksum(data: bytes) -> int:
    """16-bit one's-complement checksum (RFC 1071).

    Words are read little-endian, the same order the header fields are
    written in. An odd trailing byte is summed as if padded with a zero.
    """
    if len(data) % 2:
        data = data + b"\x00"
    s = sum(struct.unpack(f"<{len(data) // 2}H", data))
    # fold carries back in until the sum fits in 16 bits
    while s >> 16:
        s = (s & 0xFFFF) + (s >> 16)
    return ~s & 0xFFFF


@dataclass(frozen=True, slots=True)
class Packet:
    """One request or response.

    ``code`` holds the command on a request and the status on a response;
    which one is decided by the direction the packet travels.
    """

    code: int
    payload: bytes = b""
    signature: int = SIGNATURE
    checksum: int = field(default=0, compare=False)

    @property
    def command(self) -> int:
        return self.code

    @property
    def status(self) -> int:
        return self.code

    @property
    def payload_length(self) -> int:
        return len(self.payload)

    def to_bytes(self) -> bytes:
        return encode(self)

    @staticmethod
    def from_bytes(raw: bytes) -> "Packet":
        return decode_and_verify(raw)

    @staticmethod
    def request(command: int, payload: bytes = b"") -> "Packet":
        return Packet(code=int(command), payload=bytes(payload))

    @staticmethod
    def response(status: int, payload: bytes = b"") -> "Packet":
        return Packet(code=int(status), payload=bytes(payload))

    @staticmethod
    def generic_error() -> "Packet":
        return Packet(code=int(Status.ERROR))


def encode(packet: Packet) -> bytes:
    for name in ("signature", "code"):
        value = getattr(packet, name)
        if not isinstance(value, int) or not 0 <= value <= _U32_MAX:
            raise EncodeError(f"{name} must be an unsigned 32-bit integer, got {value!r}")
    if not isinstance(packet.payload, (bytes, bytearray, memoryview)):
        raise EncodeError(f"payload must be bytes, got {type(packet.payload).__name__}")
    if len(packet.payload) > MAX_PAYLOAD:
        raise PayloadTooLarge(f"payload too large: {len(packet.payload)} > {MAX_PAYLOAD}")

    buf = bytearray(_HEADER.pack(packet.signature, packet.code, len(packet.payload), 0))
    buf += packet.payload
    struct.pack_into("<H", buf, CHECKSUM_OFFSET, internet_checksum(bytes(buf)))
    return bytes(buf)


def decode_and_verify(raw: bytes) -> Packet:
    """Validate a received datagram and return it as a Packet.

    Checks run in a fixed order (signature, length, checksum) and the
    first failure is raised; nothing from the datagram is returned unless
    all three pass.
    """
    raw = bytes(raw)

    if len(raw) >= _SIGNATURE.size:
        (signature,) = _SIGNATURE.unpack_from(raw)
        if signature != SIGNATURE:
            raise SignatureError(f"invalid signature of packet (0x{signature:08X})")

    if len(raw) < HEADER_SIZE:
        raise LengthError(f"datagram too small to be a valid packet ({len(raw)} bytes)")

    signature, code, payload_len, checksum = _HEADER.unpack_from(raw)
    if HEADER_SIZE + payload_len != len(raw):
        raise LengthError(f"invalid length of packet ({HEADER_SIZE + payload_len}:{len(raw)})")

    if internet_checksum(raw) != 0:
        raise ChecksumError("invalid checksum of packet")

    return Packet(code=code, payload=raw[HEADER_SIZE:], signature=signature, checksum=checksum)
