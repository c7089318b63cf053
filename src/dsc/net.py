from __future__ import annotations

import logging
import random
import socket
import time
from dataclasses import dataclass
from typing import Tuple

from .constants import BUF_SIZE

log = logging.getLogger(__name__)

Address = Tuple[str, int]


@dataclass(frozen=True, slots=True)
class Impairment:
    """Simulated network faults applied to one endpoint's traffic."""

    loss_rate: float = 0.0
    delay_ms: int = 0
    corrupt_rate: float = 0.0

    def should_drop(self) -> bool:
        return self.loss_rate > 0 and random.random() < self.loss_rate

    def should_corrupt(self) -> bool:
        return self.corrupt_rate > 0 and random.random() < self.corrupt_rate

    def sleep_if_needed(self) -> None:
        if self.delay_ms > 0:
            time.sleep(self.delay_ms / 1000.0)

    def corrupt(self, data: bytes) -> bytes:
        if not data:
            return data
        buf = bytearray(data)
        bit = random.randrange(len(buf) * 8)
        buf[bit // 8] ^= 1 << (bit % 8)
        return bytes(buf)

    def apply(self, data: bytes) -> bytes | None:
        """Return the bytes to deliver, or None if the datagram is lost."""
        if self.should_drop():
            return None
        self.sleep_if_needed()
        if self.should_corrupt():
            return self.corrupt(data)
        return data


class UdpEndpoint:
    def __init__(self, sock: socket.socket, impairment: Impairment | None = None):
        self.sock = sock
        self.impairment = impairment or Impairment()

    @classmethod
    def listening(
        cls,
        host: str,
        port: int,
        timeout_ms: int = 0,
        impairment: Impairment | None = None,
    ) -> "UdpEndpoint":
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            if timeout_ms > 0:
                sock.settimeout(timeout_ms / 1000.0)
            sock.bind((host, port))
        except OSError:
            sock.close()
            raise
        return cls(sock, impairment)

    @classmethod
    def sending(
        cls,
        timeout_ms: int = 0,
        impairment: Impairment | None = None,
    ) -> "UdpEndpoint":
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        if timeout_ms > 0:
            sock.settimeout(timeout_ms / 1000.0)
        return cls(sock, impairment)

    @property
    def address(self) -> Address:
        return self.sock.getsockname()

    def sendto(self, data: bytes, addr: Address) -> int:
        """Send one datagram; returns the number of bytes written."""
        wire = self.impairment.apply(data)
        if wire is None:
            log.debug("dropped outbound %d bytes to %s", len(data), addr)
            return len(data)
        return self.sock.sendto(wire, addr)

    def recvfrom(self, bufsize: int = BUF_SIZE) -> Tuple[bytes, Address]:
        """Receive one datagram within the socket timeout.

        Datagrams lost to the impairment do not extend the wait; once the
        timeout has elapsed ``TimeoutError`` is raised.
        """
        timeout = self.sock.gettimeout()
        deadline = None if timeout is None else time.monotonic() + timeout
        try:
            while True:
                data, addr = self.sock.recvfrom(bufsize)
                wire = self.impairment.apply(data)
                if wire is not None:
                    return wire, addr
                log.debug("dropped inbound %d bytes from %s", len(data), addr)
                if deadline is not None:
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        raise TimeoutError("timed out")
                    self.sock.settimeout(remaining)
        finally:
            if self.sock.fileno() != -1:
                self.sock.settimeout(timeout)

    def close(self) -> None:
        self.sock.close()
