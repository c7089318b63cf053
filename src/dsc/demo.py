from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable

from .client import ClientEndpoint, open_client
from .constants import Command, Status
from .errors import DscError
from .handlers import decode_message, decode_version, default_handler, encode_message
from .net import Impairment
from .packet import Packet
from .server import RequestHandler, open_server

log = logging.getLogger(__name__)

CLIENT_MESSAGE = "Hello, this is a message from client."
UNKNOWN_COMMAND = 0xFFFF

DEMO_CLIENT_TIMEOUT_MS = 250
DEMO_SERVER_TIMEOUT_MS = 100


@dataclass(frozen=True, slots=True)
class StepResult:
    name: str
    status: int | None
    detail: str

    @property
    def ok(self) -> bool:
        return self.status is not None


def _describe_version(resp: Packet) -> str:
    if resp.status != Status.SUCCESS:
        return f"CMD_GET_VERSION error({resp.status})"
    major, minor = decode_version(resp.payload)
    return f"Version: {major}.{minor}"


def _describe_message(resp: Packet) -> str:
    if resp.status != Status.SUCCESS:
        return f"CMD_GET_MESSAGE error({resp.status})"
    return f"Message: {decode_message(resp.payload)}"


def _describe_put(resp: Packet) -> str:
    if resp.status != Status.SUCCESS:
        return f"CMD_PUT_MESSAGE error({resp.status})"
    return "CMD_PUT_MESSAGE OK"


def _describe_unknown(resp: Packet) -> str:
    return f"Response status({resp.status})"


def run_exchange(client: ClientEndpoint, *, retries: int = 0) -> list[StepResult]:
    """Issue the reference request sequence, stopping at the first failure."""
    steps: list[tuple[str, int, bytes, Callable[[Packet], str]]] = [
        ("CMD_GET_VERSION", Command.GET_VERSION, b"", _describe_version),
        ("CMD_GET_MESSAGE", Command.GET_MESSAGE, b"", _describe_message),
        ("CMD_PUT_MESSAGE", Command.PUT_MESSAGE, encode_message(CLIENT_MESSAGE), _describe_put),
        ("unknown request", UNKNOWN_COMMAND, b"", _describe_unknown),
    ]

    results: list[StepResult] = []
    for name, command, payload, describe in steps:
        log.info("send %s", name)
        try:
            resp = client.request(command, payload, retries=retries)
            results.append(StepResult(name, resp.status, describe(resp)))
        except (DscError, ValueError) as e:
            log.error("%s failed: %s", name, e)
            results.append(StepResult(name, None, f"client send request error: {e}"))
            break
    return results


@dataclass(slots=True)
class DemoResult:
    steps: list[StepResult]
    duration_s: float
    server: dict[str, int] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return all(s.ok for s in self.steps)

    def as_dict(self) -> dict:
        return {
            "role": "demo",
            "ok": self.ok,
            "seconds": self.duration_s,
            "steps": [{"name": s.name, "status": s.status, "detail": s.detail} for s in self.steps],
            "server": self.server,
        }


def run_demo(
    *,
    loss_rate: float = 0.0,
    corrupt_rate: float = 0.0,
    delay_ms: int = 0,
    retries: int = 0,
    timeout_ms: int = DEMO_CLIENT_TIMEOUT_MS,
    handler: RequestHandler = default_handler,
) -> DemoResult:
    impair = Impairment(loss_rate=loss_rate, delay_ms=delay_ms, corrupt_rate=corrupt_rate)

    # faults are injected on the client only; it carries both directions of traffic
    server = open_server(0, handler, timeout_ms=DEMO_SERVER_TIMEOUT_MS, host="127.0.0.1")
    _, port = server.address
    stop = threading.Event()

    def server_runner():
        try:
            server.serve(stop)
        finally:
            server.close()

    t = threading.Thread(target=server_runner, daemon=True)
    t.start()

    start = time.monotonic()
    try:
        with open_client("127.0.0.1", port, timeout_ms=timeout_ms, impairment=impair) as client:
            steps = run_exchange(client, retries=retries)
    finally:
        stop.set()
        t.join(timeout=10.0)

    return DemoResult(
        steps=steps,
        duration_s=max(0.0, time.monotonic() - start),
        server=server.stats.as_dict(),
    )
