from __future__ import annotations

import enum
import logging
import threading
from dataclasses import dataclass
from typing import Callable

from .constants import DEFAULT_SERVER_TIMEOUT_MS, EndpointState
from .errors import ConnectError, EncodeError, IntegrityError, InvalidStateError
from .net import Address, Impairment, UdpEndpoint
from .packet import Packet, decode_and_verify, encode

log = logging.getLogger(__name__)

RequestHandler = Callable[[Packet], Packet | None]


class AcceptOutcome(enum.Enum):
    IDLE = "idle"  # nothing received before the timeout
    DISCARDED = "discarded"
    RESPONDED = "responded"
    SEND_FAILED = "send_failed"


@dataclass(slots=True)
class ServerStats:
    received: int = 0
    discarded: int = 0
    responded: int = 0
    idle: int = 0
    send_failures: int = 0
    handler_fallbacks: int = 0

    def as_dict(self) -> dict[str, int]:
        return {
            "received": self.received,
            "discarded": self.discarded,
            "responded": self.responded,
            "idle": self.idle,
            "send_failures": self.send_failures,
            "handler_fallbacks": self.handler_fallbacks,
        }


class ServerEndpoint:
    """Answers requests one datagram at a time.

    Each ``accept_once`` call waits at most ``timeout_ms`` for a datagram,
    so a loop around it can notice a shutdown request between packets.
    """

    def __init__(
        self,
        port: int,
        handler: RequestHandler,
        timeout_ms: int = DEFAULT_SERVER_TIMEOUT_MS,
        host: str = "0.0.0.0",
        impairment: Impairment | None = None,
    ):
        if handler is None:
            raise ValueError("a request handler is required")
        if timeout_ms <= 0:
            raise ValueError(f"timeout_ms must be positive, got {timeout_ms}")
        self.host = host
        self.port = port
        self.handler = handler
        self.timeout_ms = timeout_ms
        self.impairment = impairment
        self.state = EndpointState.UNINITIALIZED
        self.stats = ServerStats()
        self.last_peer: Address | None = None
        self._udp: UdpEndpoint | None = None

    @property
    def address(self) -> Address:
        if self._udp is None:
            raise InvalidStateError(f"no address for a {self.state.value} server endpoint")
        return self._udp.address

    def open(self) -> "ServerEndpoint":
        if self.state is not EndpointState.UNINITIALIZED:
            raise InvalidStateError(f"cannot open a server endpoint in state {self.state.value}")
        try:
            self._udp = UdpEndpoint.listening(
                self.host,
                self.port,
                timeout_ms=self.timeout_ms,
                impairment=self.impairment,
            )
        except OSError as e:
            raise ConnectError(f"cannot bind {self.host}:{self.port}: {e}") from e
        self.state = EndpointState.OPEN
        log.info("server listening on %s:%d", *self.address)
        return self

    def accept_once(self) -> AcceptOutcome:
        """Receive at most one datagram and answer it if it verifies."""
        if self.state is not EndpointState.OPEN or self._udp is None:
            raise InvalidStateError(f"accept_once on a {self.state.value} server endpoint")

        try:
            data, addr = self._udp.recvfrom()
        except TimeoutError:
            self.stats.idle += 1
            return AcceptOutcome.IDLE
        except OSError as e:
            log.debug("recvfrom error: %s", e)
            self.stats.idle += 1
            return AcceptOutcome.IDLE

        self.stats.received += 1
        self.last_peer = addr

        try:
            request = decode_and_verify(data)
        except IntegrityError as e:
            log.warning("discarding %d bytes from %s:%d: %s", len(data), *addr, e)
            self.stats.discarded += 1
            return AcceptOutcome.DISCARDED

        raw = self._build_response(request)
        try:
            sent = self._udp.sendto(raw, addr)
        except OSError as e:
            log.error("sendto %s:%d failed: %s", *addr, e)
            self.stats.send_failures += 1
            return AcceptOutcome.SEND_FAILED
        if sent != len(raw):
            log.error("sendto %s:%d wrote %d of %d bytes", *addr, sent, len(raw))
            self.stats.send_failures += 1
            return AcceptOutcome.SEND_FAILED

        self.stats.responded += 1
        return AcceptOutcome.RESPONDED

    def _build_response(self, request: Packet) -> bytes:
        try:
            response = self.handler(request)
        except Exception:
            log.exception("handler failed on command 0x%04X", request.command)
            response = None
        else:
            if response is None:
                log.error("handler produced no response to command 0x%04X", request.command)

        if response is not None:
            try:
                return encode(Packet(code=response.status, payload=response.payload, signature=request.signature))
            except (EncodeError, AttributeError, TypeError) as e:
                log.error("handler response to command 0x%04X not sendable: %s", request.command, e)

        self.stats.handler_fallbacks += 1
        return encode(Packet(code=Packet.generic_error().status, signature=request.signature))

    def serve(self, stop: threading.Event) -> ServerStats:
        """Accept datagrams until ``stop`` is set."""
        while not stop.is_set():
            self.accept_once()
        return self.stats

    def close(self) -> None:
        if self._udp is not None:
            self._udp.close()
            self._udp = None
        self.state = EndpointState.CLOSED

    def __enter__(self) -> "ServerEndpoint":
        if self.state is EndpointState.UNINITIALIZED:
            self.open()
        return self

    def __exit__(self, *exc) -> None:
        self.close()


def open_server(
    port: int,
    handler: RequestHandler,
    timeout_ms: int = DEFAULT_SERVER_TIMEOUT_MS,
    host: str = "0.0.0.0",
    impairment: Impairment | None = None,
) -> ServerEndpoint:
    return ServerEndpoint(port, handler, timeout_ms=timeout_ms, host=host, impairment=impairment).open()
