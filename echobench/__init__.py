"""Echo server benchmarks over TCP, UDP and stop-and-wait ARQ."""

__version__ = "0.1.0"