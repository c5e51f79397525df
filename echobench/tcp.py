"""TCP echo server and multi-threaded TCP benchmark client.

Also holds the event-loop server base and the client plumbing that the UDP
and ARQ variants share.
"""

from __future__ import annotations

import abc
import logging
import selectors
import socket
import threading
import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor

from echobench.common import (
    DEFAULT_THREADS,
    MESSAGE_SIZE,
    PAYLOAD,
    ClientConfig,
    Summary,
    ThreadStats,
    aggregate,
)

logger = logging.getLogger(__name__)

TCP_TIMEOUT = 5.0


def _now_us() -> int:
    return time.monotonic_ns() // 1000


def _open_bound(
    host: str, port: int, kind: int, proto: int, backlog: int | None = None
) -> socket.socket:
    """Create an IPv4 socket bound to ``(host, port)``, listening if ``backlog`` is given."""
    try:
        socket.inet_pton(socket.AF_INET, host)
    except OSError as exc:
        raise ValueError(f"invalid IPv4 address: {host!r}") from exc
    sock = socket.socket(socket.AF_INET, kind, proto)
    try:
        sock.bind((host, port))
        if backlog is not None:
            sock.listen(backlog)
    except OSError:
        sock.close()
        raise
    return sock


class _EventServer(abc.ABC):
    """Single-threaded selector loop over a bound socket, stoppable from any thread."""

    def __init__(self, sock: socket.socket) -> None:
        self._sock = sock
        try:
            self._waker_r, self._waker_w = socket.socketpair()
        except OSError:
            sock.close()
            raise
        self._selector = selectors.DefaultSelector()
        self._selector.register(self._sock, selectors.EVENT_READ)
        self._selector.register(self._waker_r, selectors.EVENT_READ)
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._serving = False
        self._closed = False
        self._released = False

    @property
    def address(self) -> tuple[str, int]:
        """The (host, port) the server is bound to."""
        host, port = self._sock.getsockname()[:2]
        return host, port

    def __enter__(self):
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _serve(self) -> None:
        with self._lock:
            if self._closed:
                raise RuntimeError("server is closed")
            self._serving = True
        try:
            while not self._stop.is_set():
                try:
                    events = self._selector.select()
                except OSError as exc:
                    logger.error("Event wait failed: %s", exc)
                    break
                for key, _ in events:
                    if key.fileobj is not self._waker_r:
                        self._on_ready(key.fileobj)
        finally:
            with self._lock:
                self._serving = False
            self._release()

    def _shutdown(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._stop.set()
            serving = self._serving
        if serving:
            try:
                self._waker_w.send(b"\0")
            except OSError:
                pass
        else:
            self._release()

    def serve_forever(self) -> None:
        """Handle events until :meth:`close` is called."""
        self._serve()

    def close(self) -> None:
        """Stop serving and release every socket."""
        self._shutdown()

    @abc.abstractmethod
    def _on_ready(self, sock: socket.socket) -> None:
        """Handle a socket that is ready to read."""

    def _release(self) -> None:
        with self._lock:
            if self._released:
                return
            self._released = True
            self._closed = True
        for key in list(self._selector.get_map().values()):
            key.fileobj.close()
        self._selector.close()
        self._waker_w.close()


class TcpEchoServer(_EventServer):
    """Single-threaded, event-driven TCP server echoing whatever it reads."""

    def __init__(self, host: str, port: int, backlog: int = DEFAULT_THREADS) -> None:
        super().__init__(
            _open_bound(host, port, socket.SOCK_STREAM, socket.IPPROTO_TCP, backlog)
        )

    def serve_forever(self) -> None:
        """Accept connections and echo their data until :meth:`close` is called."""
        self._serve()

    def close(self) -> None:
        """Stop serving and close the listening socket and every connection."""
        self._shutdown()

    def _on_ready(self, sock: socket.socket) -> None:
        if sock is self._sock:
            self._accept()
        else:
            self._echo(sock)

    def _accept(self) -> None:
        try:
            conn, _ = self._sock.accept()
        except OSError as exc:
            logger.error("Accept failed: %s", exc)
            return
        self._selector.register(conn, selectors.EVENT_READ)

    def _echo(self, conn: socket.socket) -> None:
        try:
            data = conn.recv(MESSAGE_SIZE)
        except OSError:
            data = b""
        if not data:
            self._selector.unregister(conn)
            conn.close()
            return
        try:
            conn.send(data)
        except OSError as exc:
            logger.error("Echo failed: %s", exc)


def _timeout_for(config: ClientConfig, default: float) -> float:
    return default if config.timeout is None else config.timeout


def _open_sockets(
    count: int, factory: Callable[[], socket.socket], failure: str
) -> list[tuple[int, socket.socket]]:
    """Open ``count`` sockets, keeping each one's index; failures are logged and skipped."""
    opened = []
    for index in range(count):
        try:
            opened.append((index, factory()))
        except OSError as exc:
            logger.error("%s: %s", failure, exc)
    return opened


def _run_workers(
    work: Callable[[int, socket.socket], ThreadStats],
    jobs: list[tuple[int, socket.socket]],
) -> Summary:
    """Run ``work`` on every (index, socket) job in its own thread and aggregate."""
    with ThreadPoolExecutor(max_workers=max(len(jobs), 1)) as pool:
        return aggregate(list(pool.map(lambda job: work(*job), jobs)))


def tcp_worker(sock: socket.socket, requests: int, timeout: float = TCP_TIMEOUT) -> ThreadStats:
    """Send ``requests`` fixed messages over ``sock``, timing each echo.

    The socket is closed on return. If a request fails the worker stops and
    the returned statistics carry the reason in ``error``.
    """
    stats = ThreadStats()
    with sock, selectors.DefaultSelector() as selector:
        selector.register(sock, selectors.EVENT_READ)
        for _ in range(requests):
            start = _now_us()
            try:
                sock.sendall(PAYLOAD)
                if not selector.select(timeout):
                    raise TimeoutError("timed out waiting for echo")
                if not sock.recv(MESSAGE_SIZE):
                    raise ConnectionError("connection closed by server")
            except OSError as exc:
                logger.error("Request failed: %s", exc)
                stats.error = str(exc) or type(exc).__name__
                return stats
            stats.record(_now_us() - start)
    return stats


def run_tcp_client(config: ClientConfig) -> Summary:
    """Run the TCP benchmark with one connection per worker thread."""
    timeout = _timeout_for(config, TCP_TIMEOUT)
    jobs = _open_sockets(
        config.threads,
        lambda: socket.create_connection((config.host, config.port)),
        "Connection failed",
    )
    return _run_workers(lambda _index, sock: tcp_worker(sock, config.requests, timeout), jobs)