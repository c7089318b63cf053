from __future__ import annotations

import socket
import threading

import pytest

from dsc.client import open_client
from dsc.handlers import default_handler
from dsc.server import open_server


@pytest.fixture
def running_server():
    """
    Demo-handler server on an ephemeral loopback port, served from a
    daemon thread until the test finishes.
    """
    server = open_server(0, default_handler, timeout_ms=50, host="127.0.0.1")
    stop = threading.Event()
    t = threading.Thread(target=server.serve, args=(stop,), daemon=True)
    t.start()
    try:
        yield server
    finally:
        stop.set()
        t.join(timeout=5.0)
        server.close()


@pytest.fixture
def client(running_server):
    _, port = running_server.address
    c = open_client("127.0.0.1", port, timeout_ms=1000)
    try:
        yield c
    finally:
        c.close()


@pytest.fixture
def raw_peer():
    """Plain UDP socket for talking to endpoints at the wire level."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    sock.bind(("127.0.0.1", 0))
    sock.settimeout(0.5)
    try:
        yield sock
    finally:
        sock.close()
