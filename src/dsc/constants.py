from __future__ import annotations

import enum
import struct

SIGNATURE = 0xDEADBEEF
HEADER_FORMAT = "<IIIH"  # signature, command/status, payload_len, checksum
HEADER_SIZE = struct.calcsize(HEADER_FORMAT)
CHECKSUM_OFFSET = 12

BUF_SIZE = 4096  # read/write buffer shared by both peers
MAX_PAYLOAD = BUF_SIZE - HEADER_SIZE

VERSION_MAJOR = 1
VERSION_MINOR = 0

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 6666
DEFAULT_CLIENT_TIMEOUT_MS = 1000
DEFAULT_SERVER_TIMEOUT_MS = 2000

GET_MSG_SIZE = 256
PUT_MSG_SIZE = 256


class Command(enum.IntEnum):
    GET_VERSION = 0x8001
    GET_MESSAGE = 0x8002
    PUT_MESSAGE = 0x8003


class Status(enum.IntEnum):
    SUCCESS = 0
    ERROR = 1
    INIT_ERROR = 2
    INVALID_COMMAND = 3


class EndpointState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    OPEN = "open"
    CLOSED = "closed"
