# echobench

`echobench` measures round-trip time and request rate against a small echo
server. It runs a server or a multi-threaded client using one of three
protocols:

- **tcp** (the default): each client thread opens a TCP connection and sends
  16-byte messages, waiting up to 5 seconds for each echo before sending the
  next. A thread stops at its first failed request.
- **udp**: the same over UDP datagrams, waiting up to 1 second for each
  reply. Requests whose reply does not arrive are not timed, and datagrams
  sent without a reply are counted as lost packets.
- **arq**: UDP with a stop-and-wait protocol. Each message travels in a
  frame carrying the client thread's id and a sequence number that
  alternates between 0 and 1. The server answers with an ACK when the
  sequence number is the one it expected from that thread and a NACK
  otherwise. The client moves to the next sequence number only when the
  acknowledgement matches, so a frame whose reply times out is sent again on
  the next request. Frames sent without a matching acknowledgement are
  counted as lost.

The servers are single-threaded and event-driven.

## Installation

```
pip install .
```

## Usage

```
echobench [-p {arq,tcp,udp}] <server|client> [server_ip server_port num_client_threads num_requests]
```

Start a server:

```
echobench server 127.0.0.1 12345
```

Then run a client against it from another terminal:

```
echobench client 127.0.0.1 12345 4 100000
```

The positional arguments after the role are the server address (IPv4), the
port, the number of client threads and the number of requests each thread
sends. They can be left off from the right; the defaults are `127.0.0.1`,
`12345`, 4 threads and 1,000,000 requests. A server uses only the address and
port and runs until interrupted with Ctrl-C.

Choose the protocol with `-p` / `--protocol`:

```
echobench --protocol udp server
echobench --protocol udp client 127.0.0.1 12345 8 50000
echobench -p arq server
echobench -p arq client
```

When the client finishes it prints, for example:

```
Average RTT: 42 us
Total Request Rate: 95000.000000 messages/s
```

The udp client adds `Total Packets Lost: N packets`; the arq client adds
either `No packets lost` or `N packets lost`. If no request completed at all,
the client reports `Client failed: no messages were exchanged` on standard
error and exits with status 1. A server that cannot bind its address also
exits with status 1. Run without a role, `echobench` prints its usage line.

## Library use

The client and server pieces can be used directly from Python:

```python
from echobench.common import ClientConfig, format_report
from echobench.tcp import run_tcp_client

summary = run_tcp_client(ClientConfig(host="127.0.0.1", port=12345, threads=2, requests=1000))
print(format_report(summary))
```

`echobench.udp.run_udp_client` and `echobench.arq.run_arq_client` take the
same `ClientConfig` and return a `Summary`; print their results with
`format_udp_report` and `format_arq_report`. `ClientConfig.timeout` (in
seconds) overrides the per-request wait of the chosen protocol.

The servers are `TcpEchoServer`, `UdpEchoServer` and `ArqServer`, each
constructed with a host and port. They are context managers; `serve_forever()`
runs the event loop, `close()` stops it from any thread, and `address` gives
the bound address. `ArqServer.handle(frame)` computes the reply to a single
`echobench.frame.Frame` without any networking.

## Limitations

- Only IPv4 addresses are accepted.
- The ARQ server tracks at most 500 client thread ids (0 to 499); frames from
  other ids are logged and dropped.
- Messages are fixed at 16 bytes; the UDP server truncates longer datagrams.

## Running the tests

```
pip install .[test]
pytest
```