"""Stop-and-wait ARQ server and multi-threaded ARQ benchmark client."""

from __future__ import annotations

import logging
import socket

from echobench.common import (
    PAYLOAD,
    ClientConfig,
    Summary,
    ThreadStats,
    format_report,
)
from echobench.frame import FRAME_SIZE, Frame, FrameType, next_seq
from echobench.tcp import (
    _EventServer,
    _open_bound,
    _open_sockets,
    _run_workers,
    _timeout_for,
)
from echobench.udp import _exchange_datagrams, _udp_socket

logger = logging.getLogger(__name__)

ARQ_TIMEOUT = 1.0
MAX_THREADS = 500


class ArqServer(_EventServer):
    """UDP server acknowledging frames per client thread with alternating sequence numbers."""

    def __init__(self, host: str, port: int, max_threads: int = MAX_THREADS) -> None:
        self._expected = [0] * max_threads
        super().__init__(_open_bound(host, port, socket.SOCK_DGRAM, socket.IPPROTO_UDP))

    def handle(self, frame: Frame) -> Frame:
        """Return the ACK or NACK answering ``frame`` and advance the sender's state.

        Raises ValueError if the frame's thread id is outside the tracked range.
        """
        thread_id = frame.thread_id
        if not 0 <= thread_id < len(self._expected):
            raise ValueError(f"client thread id out of range: {thread_id}")
        if frame.seq == self._expected[thread_id]:
            self._expected[thread_id] = next_seq(self._expected[thread_id])
            kind = FrameType.ACK
        else:
            kind = FrameType.NACK
        ack = (1 - self._expected[thread_id]) & 0xFFFFFFFF
        return Frame(type=kind, thread_id=thread_id, ack=ack)

    def serve_forever(self) -> None:
        """Acknowledge incoming frames until :meth:`close` is called."""
        self._serve()

    def close(self) -> None:
        """Stop serving and close the server socket."""
        self._shutdown()

    def _on_ready(self, sock: socket.socket) -> None:
        try:
            raw, client = sock.recvfrom(FRAME_SIZE)
        except OSError as exc:
            logger.error("Receive message failed: %s", exc)
            return
        try:
            reply = self.handle(Frame.from_bytes(raw))
        except ValueError as exc:
            logger.error("Rejected frame: %s", exc)
            return
        try:
            sock.sendto(reply.to_bytes(), client)
        except OSError as exc:
            logger.error("Acknowledgement failed to transmit: %s", exc)


def arq_worker(
    sock: socket.socket,
    address: tuple[str, int],
    thread_id: int,
    requests: int,
    timeout: float = ARQ_TIMEOUT,
) -> ThreadStats:
    """Send ``requests`` data frames to ``address`` using stop-and-wait ARQ.

    The sequence number advances only when a matching acknowledgement arrives,
    so a timed-out frame is sent again on the next request. Timed-out requests
    are neither timed nor counted as sent. Frames sent whose acknowledgement
    did not match are counted in ``packets_lost``. The socket is closed on return.
    """
    seq = 0

    def payload() -> bytes:
        return Frame(FrameType.DATA, thread_id, seq, 0, PAYLOAD).to_bytes()

    def on_reply(raw: bytes) -> bool:
        nonlocal seq
        if Frame.from_bytes(raw).ack != seq:
            return False
        seq = next_seq(seq)
        return True

    return _exchange_datagrams(
        sock,
        address,
        requests,
        timeout,
        payload=payload,
        on_reply=on_reply,
        reply_size=FRAME_SIZE,
        resend_on_timeout=True,
    )


def run_arq_client(config: ClientConfig) -> Summary:
    """Run the ARQ benchmark with one socket and thread id per worker thread."""
    timeout = _timeout_for(config, ARQ_TIMEOUT)
    address = (config.host, config.port)
    jobs = _open_sockets(config.threads, _udp_socket, "Socket creation has failed")
    return _run_workers(
        lambda thread_id, sock: arq_worker(sock, address, thread_id, config.requests, timeout),
        jobs,
    )


def format_arq_report(summary: Summary) -> str:
    """Render the common report lines followed by the packet loss verdict."""
    if summary.total_packets_lost == 0:
        loss = "No packets lost"
    else:
        loss = f"{summary.total_packets_lost} packets lost"
    return f"{format_report(summary)}\n{loss}"