import socket
import threading

import pytest

from echobench.common import MESSAGE_SIZE, PAYLOAD, ClientConfig, Summary, format_report
from echobench.udp import (
    UdpEchoServer,
    format_udp_report,
    run_udp_client,
    udp_worker,
)


@pytest.fixture
def server():
    with UdpEchoServer("127.0.0.1", 0) as srv:
        thread = threading.Thread(target=srv.serve_forever, daemon=True)
        thread.start()
        yield srv
    thread.join(5)


def _client_socket():
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    sock.settimeout(5)
    return sock


@pytest.mark.parametrize(
    "message, expected",
    [
        (PAYLOAD, PAYLOAD),
        (PAYLOAD + b"0123456789abcdef", PAYLOAD[:MESSAGE_SIZE]),
    ],
)
def test_server_echoes_to_sender(server, message, expected):
    with _client_socket() as sock:
        sock.sendto(message, server.address)
        data, origin = sock.recvfrom(64)
    assert data == expected
    assert origin == server.address


def test_invalid_host_and_closed_server_are_rejected():
    with pytest.raises(ValueError):
        UdpEchoServer("not-an-ip", 0)
    srv = UdpEchoServer("127.0.0.1", 0)
    srv.close()
    srv.close()
    with pytest.raises(RuntimeError):
        srv.serve_forever()


def test_worker_against_echo_server(server):
    sock = _client_socket()
    stats = udp_worker(sock, server.address, 20, timeout=2.0)
    assert stats.total_messages == 20
    assert stats.packets_lost == 0
    assert stats.total_rtt >= 0
    assert stats.error is None
    assert sock.fileno() == -1


def test_worker_counts_lost_packets_when_nothing_replies():
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as silent:
        silent.bind(("127.0.0.1", 0))
        stats = udp_worker(_client_socket(), silent.getsockname(), 3, timeout=0.05)
    assert stats.packets_lost == 3
    assert stats.total_messages == 0
    assert stats.total_rtt == 0


def test_worker_with_zero_requests(server):
    stats = udp_worker(_client_socket(), server.address, 0)
    assert (stats.total_messages, stats.packets_lost) == (0, 0)


@pytest.mark.parametrize("threads", [0, 3])
def test_run_udp_client_aggregates_threads(server, threads):
    host, port = server.address
    config = ClientConfig(host=host, port=port, threads=threads, requests=10, timeout=2.0)
    summary = run_udp_client(config)
    assert summary.total_messages == threads * 10
    assert summary.total_packets_lost == 0
    if threads == 0:
        assert summary == Summary()
    else:
        assert summary.total_request_rate > 0


def test_format_udp_report_extends_common_report():
    summary = Summary(total_rtt=50, total_messages=5, total_request_rate=1.5, total_packets_lost=7)
    lines = format_udp_report(summary).split("\n")
    assert "\n".join(lines[:2]) == format_report(summary)
    assert lines[2:] == ["Total Packets Lost: 7 packets"]


def test_format_udp_report_without_messages_raises():
    with pytest.raises(ValueError):
        format_udp_report(Summary())