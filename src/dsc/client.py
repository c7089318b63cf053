from __future__ import annotations

import logging
import socket

from .constants import DEFAULT_CLIENT_TIMEOUT_MS, EndpointState
from .errors import ConnectError, IntegrityError, InvalidStateError, RequestTimeout, TransportError
from .net import Address, Impairment, UdpEndpoint
from .packet import Packet, decode_and_verify, encode

log = logging.getLogger(__name__)


class ClientEndpoint:
    """Sends requests to one server and waits for each response.

    The protocol has no correlation tag: whatever datagram arrives during
    the receive window is taken as the response. Only one ``send_request``
    may be outstanding per endpoint; concurrent calls on the same endpoint
    can receive each other's responses.
    """

    def __init__(
        self,
        host: str,
        port: int,
        timeout_ms: int = DEFAULT_CLIENT_TIMEOUT_MS,
        impairment: Impairment | None = None,
    ):
        if timeout_ms <= 0:
            raise ValueError(f"timeout_ms must be positive, got {timeout_ms}")
        self.host = host
        self.port = port
        self.timeout_ms = timeout_ms
        self.impairment = impairment
        self.peer: Address | None = None
        self.state = EndpointState.UNINITIALIZED
        self._udp: UdpEndpoint | None = None

    def open(self) -> "ClientEndpoint":
        if self.state is not EndpointState.UNINITIALIZED:
            raise InvalidStateError(f"cannot open a client endpoint in state {self.state.value}")
        try:
            self.peer = (socket.gethostbyname(self.host), self.port)
            self._udp = UdpEndpoint.sending(timeout_ms=self.timeout_ms, impairment=self.impairment)
        except OSError as e:
            raise ConnectError(f"cannot open client for {self.host}:{self.port}: {e}") from e
        self.state = EndpointState.OPEN
        log.debug("client open; peer=%s:%d timeout_ms=%d", *self.peer, self.timeout_ms)
        return self

    def send_request(self, command: int, payload: bytes = b"") -> Packet:
        """Send one request and return the verified response.

        Raises RequestTimeout if nothing arrives in time, TransportError on
        socket failure and IntegrityError if the response fails
        verification. Never retries.
        """
        if self.state is not EndpointState.OPEN or self._udp is None:
            raise InvalidStateError(f"send_request on a {self.state.value} client endpoint")

        raw = encode(Packet.request(command, payload))
        try:
            sent = self._udp.sendto(raw, self.peer)
        except OSError as e:
            raise TransportError(f"sendto error: {e}") from e
        if sent != len(raw):
            raise TransportError(f"sendto error: wrote {sent} of {len(raw)} bytes")

        try:
            data, addr = self._udp.recvfrom()
        except TimeoutError as e:
            log.debug("no response to command 0x%04X within %d ms", command, self.timeout_ms)
            raise RequestTimeout(f"no response within {self.timeout_ms} ms") from e
        except OSError as e:
            raise TransportError(f"recvfrom error: {e}") from e

        try:
            return decode_and_verify(data)
        except IntegrityError as e:
            log.warning("unusable response from %s: %s", addr, e)
            raise

    def request(self, command: int, payload: bytes = b"", *, retries: int = 0) -> Packet:
        """``send_request`` with caller-side retries on timeout or a bad response."""
        attempt = 0
        while True:
            try:
                return self.send_request(command, payload)
            except (RequestTimeout, IntegrityError):
                if attempt >= retries:
                    raise
                attempt += 1
                log.debug("retrying command 0x%04X; attempt=%d", command, attempt)

    def close(self) -> None:
        if self._udp is not None:
            self._udp.close()
            self._udp = None
        self.state = EndpointState.CLOSED

    def __enter__(self) -> "ClientEndpoint":
        if self.state is EndpointState.UNINITIALIZED:
            self.open()
        return self

    def __exit__(self, *exc) -> None:
        self.close()


def open_client(
    host: str,
    port: int,
    timeout_ms: int = DEFAULT_CLIENT_TIMEOUT_MS,
    impairment: Impairment | None = None,
) -> ClientEndpoint:
    return ClientEndpoint(host, port, timeout_ms=timeout_ms, impairment=impairment).open()
