from __future__ import annotations

import argparse
import json
import logging
import signal
import sys
import threading

from .client import open_client
from .constants import VERSION_MAJOR, VERSION_MINOR, Status
from .demo import DEMO_CLIENT_TIMEOUT_MS, run_demo, run_exchange
from .errors import ConnectError
from .handlers import default_handler
from .server import open_server
from .settings import LOG_LEVELS, get_settings

log = logging.getLogger(__name__)


def _port(value: str) -> int:
    port = int(value)
    if not 0 < port < 65536:
        raise argparse.ArgumentTypeError(f"invalid port number: {value}")
    return port


def _positive_int(value: str) -> int:
    try:
        n = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an integer: {value}") from None
    if n <= 0:
        raise argparse.ArgumentTypeError(f"must be positive: {value}")
    return n


def cmd_server(args: argparse.Namespace) -> int:
    try:
        server = open_server(args.port, default_handler, timeout_ms=args.timeout_ms)
    except ConnectError as e:
        log.error("server init error: %s", e)
        return int(Status.INIT_ERROR)

    stop = threading.Event()
    previous = signal.signal(signal.SIGINT, lambda signum, frame: stop.set())
    try:
        stats = server.serve(stop)
    finally:
        signal.signal(signal.SIGINT, previous)
        server.close()

    log.info("server stopped; %s", stats.as_dict())
    return int(Status.SUCCESS)


def cmd_client(args: argparse.Namespace) -> int:
    print(f"Connect server {args.host}:{args.port}")
    try:
        client = open_client(args.host, args.port, timeout_ms=args.timeout_ms)
    except ConnectError as e:
        log.error("client init error: %s", e)
        return int(Status.INIT_ERROR)

    with client:
        steps = run_exchange(client, retries=args.retries)

    for step in steps:
        print(step.detail if step.ok else f"Error: {step.detail}")
    return int(Status.SUCCESS) if all(s.ok for s in steps) else int(Status.ERROR)


def cmd_demo(args: argparse.Namespace) -> int:
    r = run_demo(
        loss_rate=args.loss_rate,
        corrupt_rate=args.corrupt_rate,
        delay_ms=args.delay_ms,
        retries=args.retries,
        timeout_ms=args.timeout_ms,
    )
    payload = r.as_dict()
    print(json.dumps(payload, indent=2) if args.json else payload)
    return int(Status.SUCCESS) if r.ok else int(Status.ERROR)


def build_parser() -> argparse.ArgumentParser:
    settings = get_settings()

    p = argparse.ArgumentParser(
        prog="dsc",
        description=f"Request/response over datagram sockets (v{VERSION_MAJOR}.{VERSION_MINOR}).",
    )
    p.add_argument("--log-level", default=settings.log_level, choices=LOG_LEVELS)
    sub = p.add_subparsers(dest="cmd", required=True)

    server = sub.add_parser("server", help="serve the demo command set until interrupted")
    server.add_argument("-p", "--port", type=_port, default=settings.server_port)
    server.add_argument("--timeout-ms", type=_positive_int, default=settings.server_timeout_ms)
    server.set_defaults(func=cmd_server)

    client = sub.add_parser("client", help="run the reference request sequence against a server")
    client.add_argument("-s", "--host", default=settings.server_host)
    client.add_argument("-p", "--port", type=_port, default=settings.server_port)
    client.add_argument("--timeout-ms", type=_positive_int, default=settings.client_timeout_ms)
    client.add_argument("--retries", type=int, default=0)
    client.set_defaults(func=cmd_client)

    demo = sub.add_parser("demo", help="run server and client over loopback")
    demo.add_argument("--timeout-ms", type=_positive_int, default=DEMO_CLIENT_TIMEOUT_MS)
    demo.add_argument("--loss-rate", type=float, default=0.0)
    demo.add_argument("--corrupt-rate", type=float, default=0.0)
    demo.add_argument("--delay-ms", type=int, default=0)
    demo.add_argument("--retries", type=int, default=0)
    demo.add_argument("--json", action="store_true")
    demo.set_defaults(func=cmd_demo)

    return p


def main(argv: list[str] | None = None) -> int:
    try:
        parser = build_parser()
    except ValueError as e:
        print(f"dsc: error: {e}", file=sys.stderr)
        return int(Status.ERROR)
    args = parser.parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(asctime)s [%(levelname)s] %(message)s")
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
