"""Command-line entry point for the echo benchmark servers and clients."""

from __future__ import annotations

import argparse
import sys
from collections.abc import Callable, Sequence

from echobench.arq import ArqServer, format_arq_report, run_arq_client
from echobench.common import (
    DEFAULT_HOST,
    DEFAULT_PORT,
    DEFAULT_REQUESTS,
    DEFAULT_THREADS,
    ClientConfig,
    Summary,
    format_report,
)
from echobench.tcp import TcpEchoServer, run_tcp_client
from echobench.udp import UdpEchoServer, format_udp_report, run_udp_client

PROG = "echobench"
USAGE = (
    f"Usage: {PROG} [--protocol tcp|udp|arq] <server|client> "
    "[server_ip server_port num_client_threads num_requests]"
)

_SERVERS: dict[str, Callable[[str, int], object]] = {
    "tcp": TcpEchoServer,
    "udp": UdpEchoServer,
    "arq": ArqServer,
}

_CLIENTS: dict[str, Callable[[ClientConfig], Summary]] = {
    "tcp": run_tcp_client,
    "udp": run_udp_client,
    "arq": run_arq_client,
}

_REPORTS: dict[str, Callable[[Summary], str]] = {
    "tcp": format_report,
    "udp": format_udp_report,
    "arq": format_arq_report,
}


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=PROG,
        description="Run an echo benchmark server or client.",
    )
    parser.add_argument(
        "-p",
        "--protocol",
        choices=sorted(_CLIENTS),
        default="tcp",
        help="transport and protocol to use (default: tcp)",
    )
    parser.add_argument("mode", nargs="?", help="server or client")
    parser.add_argument("host", nargs="?", default=DEFAULT_HOST, help="server IPv4 address")
    parser.add_argument("port", nargs="?", type=int, default=DEFAULT_PORT, help="server port")
    parser.add_argument(
        "threads", nargs="?", type=int, default=DEFAULT_THREADS, help="client worker threads"
    )
    parser.add_argument(
        "requests", nargs="?", type=int, default=DEFAULT_REQUESTS, help="requests per thread"
    )
    return parser


def parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    """Parse command-line arguments into protocol, mode, host, port, threads and requests."""
    return _build_parser().parse_args(argv)


def _serve(protocol: str, host: str, port: int) -> int:
    try:
        server = _SERVERS[protocol](host, port)
    except (OSError, ValueError) as exc:
        print(f"Server setup failed: {exc}", file=sys.stderr)
        return 1
    with server:
        try:
            server.serve_forever()
        except KeyboardInterrupt:
            pass
    return 0


def _run_client(args: argparse.Namespace) -> int:
    try:
        config = ClientConfig(
            host=args.host,
            port=args.port,
            threads=args.threads,
            requests=args.requests,
        )
        summary = _CLIENTS[args.protocol](config)
        report = _REPORTS[args.protocol](summary)
    except ValueError as exc:
        print(f"Client failed: {exc}", file=sys.stderr)
        return 1
    print(report)
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Start a server or client as the arguments say; return the exit status."""
    args = parse_args(argv)
    if args.mode == "server":
        return _serve(args.protocol, args.host, args.port)
    if args.mode == "client":
        return _run_client(args)
    print(USAGE)
    return 0


if __name__ == "__main__":
    sys.exit(main())