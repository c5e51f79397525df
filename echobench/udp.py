"""UDP echo server and multi-threaded UDP benchmark client with loss counting."""

from __future__ import annotations

import logging
import selectors
import socket
from collections.abc import Callable

from echobench.common import (
    MESSAGE_SIZE,
    PAYLOAD,
    ClientConfig,
    Summary,
    ThreadStats,
    format_report,
)
from echobench.tcp import (
    _EventServer,
    _now_us,
    _open_bound,
    _open_sockets,
    _run_workers,
    _timeout_for,
)

logger = logging.getLogger(__name__)

UDP_TIMEOUT = 1.0


class UdpEchoServer(_EventServer):
    """Single-threaded, event-driven UDP server echoing each datagram to its sender.

    Datagrams longer than the message size are truncated to it.
    """

    def __init__(self, host: str, port: int) -> None:
        super().__init__(_open_bound(host, port, socket.SOCK_DGRAM, socket.IPPROTO_UDP))

    def serve_forever(self) -> None:
        """Echo incoming datagrams until :meth:`close` is called."""
        self._serve()

    def close(self) -> None:
        """Stop serving and close the server socket."""
        self._shutdown()

    def _on_ready(self, sock: socket.socket) -> None:
        try:
            data, client = sock.recvfrom(MESSAGE_SIZE)
        except OSError as exc:
            logger.error("Receive message failed: %s", exc)
            return
        try:
            sock.sendto(data, client)
        except OSError as exc:
            logger.error("Send message failed: %s", exc)


def _exchange_datagrams(
    sock: socket.socket,
    address: tuple[str, int],
    requests: int,
    timeout: float,
    payload: Callable[[], bytes],
    on_reply: Callable[[bytes], bool],
    reply_size: int,
    resend_on_timeout: bool,
) -> ThreadStats:
    """Send one datagram per request and wait up to ``timeout`` for its reply.

    ``on_reply`` tells whether a reply counts as an answer. Requests that time
    out are not timed; with ``resend_on_timeout`` they are not counted as sent
    either. Sent datagrams left unanswered end up in ``packets_lost``. The
    socket is closed on return.
    """
    stats = ThreadStats()
    sent = 0
    answered = 0
    with sock, selectors.DefaultSelector() as selector:
        selector.register(sock, selectors.EVENT_READ)
        for _ in range(requests):
            start = _now_us()
            try:
                sock.sendto(payload(), address)
            except OSError as exc:
                logger.error("Send failure: %s", exc)
                continue
            sent += 1
            try:
                events = selector.select(timeout)
            except OSError as exc:
                logger.error("Event wait failure: %s", exc)
                continue
            if not events:
                if resend_on_timeout:
                    sent -= 1
                continue
            try:
                raw, _ = sock.recvfrom(reply_size)
                if on_reply(raw):
                    answered += 1
            except (OSError, ValueError) as exc:
                logger.error("Recv failure: %s", exc)
            stats.record(_now_us() - start)
    stats.packets_lost = sent - answered
    return stats


def udp_worker(
    sock: socket.socket,
    address: tuple[str, int],
    requests: int,
    timeout: float = UDP_TIMEOUT,
) -> ThreadStats:
    """Send ``requests`` datagrams to ``address`` and time each echo.

    A request whose send fails or whose reply does not arrive within
    ``timeout`` seconds is skipped and not timed. Datagrams sent without a
    reply are counted in ``packets_lost``. The socket is closed on return.
    """
    return _exchange_datagrams(
        sock,
        address,
        requests,
        timeout,
        payload=lambda: PAYLOAD,
        on_reply=lambda _raw: True,
        reply_size=MESSAGE_SIZE,
        resend_on_timeout=False,
    )


def _udp_socket() -> socket.socket:
    return socket.socket(socket.AF_INET, socket.SOCK_DGRAM)


def run_udp_client(config: ClientConfig) -> Summary:
    """Run the UDP benchmark with one socket per worker thread."""
    timeout = _timeout_for(config, UDP_TIMEOUT)
    address = (config.host, config.port)
    jobs = _open_sockets(config.threads, _udp_socket, "Socket creation has failed")
    return _run_workers(
        lambda _index, sock: udp_worker(sock, address, config.requests, timeout), jobs
    )


def format_udp_report(summary: Summary) -> str:
    """Render the common report lines followed by the packet loss line."""
    return (
        f"{format_report(summary)}\n"
        f"Total Packets Lost: {summary.total_packets_lost} packets"
    )