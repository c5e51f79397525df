"""Shared configuration, per-thread statistics and report formatting."""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass

MESSAGE_SIZE = 16
PAYLOAD = b"ABCDEFGHIJKMLNOP"
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 12345
DEFAULT_THREADS = 4
DEFAULT_REQUESTS = 1_000_000


@dataclass(frozen=True)
class ClientConfig:
    """Settings for one benchmark client run.

    ``timeout`` is in seconds; ``None`` selects the protocol's own default.
    """

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    threads: int = DEFAULT_THREADS
    requests: int = DEFAULT_REQUESTS
    timeout: float | None = None

    def __post_init__(self) -> None:
        if not 0 <= self.port <= 65535:
            raise ValueError(f"port out of range: {self.port}")
        if self.threads < 0:
            raise ValueError(f"thread count must not be negative: {self.threads}")
        if self.requests < 0:
            raise ValueError(f"request count must not be negative: {self.requests}")
        if self.timeout is not None and self.timeout <= 0:
            raise ValueError(f"timeout must be positive: {self.timeout}")


@dataclass
class ThreadStats:
    """Measurements gathered by one client worker.

    ``total_rtt`` is in microseconds. ``error`` holds the reason the worker
    stopped early, if it did.
    """

    total_rtt: int = 0
    total_messages: int = 0
    packets_lost: int = 0
    error: str | None = None

    def record(self, rtt_us: int) -> None:
        """Account for one completed request that took ``rtt_us`` microseconds."""
        self.total_rtt += rtt_us
        self.total_messages += 1

    @property
    def request_rate(self) -> float:
        """Requests per second over the accumulated round-trip time."""
        if self.total_rtt == 0:
            return math.inf if self.total_messages else 0.0
        return self.total_messages / (self.total_rtt / 1_000_000)


@dataclass(frozen=True)
class Summary:
    """Metrics aggregated over all client workers."""

    total_rtt: int = 0
    total_messages: int = 0
    total_request_rate: float = 0.0
    total_packets_lost: int = 0

    @property
    def average_rtt_us(self) -> int:
        """Mean round-trip time in whole microseconds."""
        if self.total_messages == 0:
            raise ValueError("no messages were exchanged")
        return self.total_rtt // self.total_messages


def aggregate(stats: Iterable[ThreadStats]) -> Summary:
    """Combine the statistics of several workers into one summary."""
    total_rtt = 0
    total_messages = 0
    total_rate = 0.0
    total_lost = 0
    for item in stats:
        total_rtt += item.total_rtt
        total_messages += item.total_messages
        total_rate += item.request_rate
        total_lost += item.packets_lost
    return Summary(total_rtt, total_messages, total_rate, total_lost)


def format_report(summary: Summary) -> str:
    """Render the average RTT and total request rate lines."""
    return "\n".join(
        [
            f"Average RTT: {summary.average_rtt_us} us",
            f"Total Request Rate: {summary.total_request_rate:f} messages/s",
        ]
    )