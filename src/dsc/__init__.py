"""Request/response over datagram sockets.

A packet codec with an RFC 1071 checksum, a client endpoint that sends one
request and waits for one response, and a server endpoint that answers one
datagram per call. The transport may drop packets; loss surfaces as a
timeout and is never retried inside the library.
"""

from .client import ClientEndpoint, open_client
from .constants import Command, EndpointState, Status
from .errors import (
    ChecksumError,
    ConnectError,
    DscError,
    IntegrityError,
    InvalidStateError,
    LengthError,
    PayloadTooLarge,
    RequestTimeout,
    SignatureError,
    TransportError,
)
from .packet import Packet, decode_and_verify, encode, internet_checksum
from .server import AcceptOutcome, ServerEndpoint, ServerStats, open_server

__all__ = [
    "AcceptOutcome",
    "ChecksumError",
    "ClientEndpoint",
    "Command",
    "ConnectError",
    "DscError",
    "EndpointState",
    "IntegrityError",
    "InvalidStateError",
    "LengthError",
    "Packet",
    "PayloadTooLarge",
    "RequestTimeout",
    "ServerEndpoint",
    "ServerStats",
    "SignatureError",
    "Status",
    "TransportError",
    "decode_and_verify",
    "encode",
    "internet_checksum",
    "open_client",
    "open_server",
]
