# wsrelay

Pure-Python building blocks for a WebSocket relay: a peer model with
stackable overlays, parsing of address strings such as
`ws-l:127.0.0.1:8080`, shaping of outgoing and incoming WebSocket messages
(modes, prefixes, base64, compression), ping/pong round-trip measurement,
and the decisions a client or server makes during the upgrade handshake.

It has no dependencies outside the standard library.

## Modules

| Module | Contents |
| --- | --- |
| `wsrelay.util` | `Peer`, `PeerConstructor` with `map` and `get_only_first_conn`, `once`, `multi`, `peer_error`, `wouldblock`, `brokenpipe`, `simple_err` |
| `wsrelay.timestamp` | `TimestampReader` and `timestamp_peer`, which prefix every read with a wall-clock or monotonic timestamp |
| `wsrelay.wscodec` | `CompressionMethod`, `Mode`, `MessageKind`, `Message`, `WsOutgoing`, `select_compression`, `add_prefix_and_base64` |
| `wsrelay.ws` | `WsIncoming`, `WsPinger`, `ping_payload`, `pong_rtt`, `format_rtt` |
| `wsrelay.specparse` | `SpecifierClass`, `SpecifierStack`, `SpecParseError`, `check_address`, `parse_stack` |
| `wsrelay.wsserver` | `UpgradeDecision`, `choose_protocol`, `check_restrict_uri`, `headers_to_env`, `reply_headers` |
| `wsrelay.wsclient` | `ClientOptions`, `parse_client_url`, `handshake_headers` |

## Peers and overlays

A `Peer` is a reader, a writer and an optional hang-up token. A
`PeerConstructor` serves one connection (`once`), a sequence of them
(`multi`) or an error (`peer_error`); `map` adds an overlay that is applied
to each peer as it is produced.

```python
import io
from wsrelay.util import Peer, once
from wsrelay.timestamp import timestamp_peer

constructor = once(lambda: Peer(io.BytesIO(b"hello"), io.BytesIO()))
constructor = constructor.map(lambda peer, l2r: timestamp_peer(peer, monotonic=True))
peer = constructor.get_only_first_conn(None)
print(peer.reader.read(64))   # b"<seconds since creation> hello"
```

`TimestampReader.read` raises `ValueError` for a size of 1 or less and
truncates the result to the requested size.

## Address strings

`parse_stack` peels known prefixes off a string: an alias class rewrites
its prefix, an overlay class is pushed onto the stack, and any other class
ends parsing and takes the rest as its argument. `SpecifierStack.build`
constructs the address and wraps it in the overlays, innermost first.

```python
from wsrelay.specparse import SpecifierClass, parse_stack

classes = [
    SpecifierClass("ws-listen", ("ws-l:",), alias="ws-u:tcp-l:"),
    SpecifierClass("ws-upgrade", ("ws-u:",), overlay=True,
                   overlay_factory=lambda inner: ("ws", inner)),
    SpecifierClass("tcp-listen", ("tcp-l:",), factory=lambda addr: ("tcp-l", addr)),
]
stack = parse_stack("ws-l:127.0.0.1:8080", classes)
print(stack.build())   # ('ws', ('tcp-l', '127.0.0.1:8080'))
```

`check_address` rejects strings such as `open:...`, and those that need a
feature not in the enabled set (`ssl`, `unix`, `process`, `crypto`,
`prometheus`).

## WebSocket messages

`WsOutgoing.encode` turns a written buffer into a `Message`: a matching
text or binary prefix switches the mode, base64 is decoded when enabled,
and binary payloads are compressed. `close_message` gives the close message
to send on shutdown.

```python
from wsrelay.wscodec import WsOutgoing, Mode, select_compression

out = WsOutgoing(mode=Mode.BINARY, text_prefix="T:")
print(out.encode(b"T:hello"))            # a TEXT message with "hello"

method = select_compression(deflate=False, gzip=True, zlib=False)
assert method.uncompress(method.compress(b"some data")) == b"some data"
```

`WsIncoming.process` handles one incoming message: data messages come back
as bytes (prefixed, base64-encoded or uncompressed as configured), pings
are answered through the `send` callback, pongs report round-trip times and
push back the ping-timeout deadline, and a close or the end of the stream
raises `BrokenPipeError`. `WsPinger.next_ping` yields the periodic pings,
stopping after `max_sent_pings`.

```python
from wsrelay.ws import ping_payload, pong_rtt, format_rtt

payload = ping_payload(1.5)
print(format_rtt(pong_rtt(payload, 1.75)))   # RTT 0.250000 s
```

## Handshake decisions

```python
from wsrelay.wsserver import choose_protocol, check_restrict_uri, reply_headers
from wsrelay.wsclient import ClientOptions, parse_client_url, handshake_headers

decision = choose_protocol(["chat", "superchat"])        # echoes "chat"
headers = reply_headers(decision.protocol, [("X-Server", "relay")])
check_restrict_uri("/ws", "/ws")                          # True

url = parse_client_url("ws", "example.com/chat")          # "ws://example.com/chat"
request = handshake_headers(url, ClientOptions(origin="http://example.com"))
```

A configured server protocol that differs from the client's first choice
gives an `UpgradeDecision` with `accepted=False` and a reason.

## Errors

`SpecParseError` (a `ValueError`) for unknown or unavailable address types;
`BlockingIOError` from `wouldblock`; `BrokenPipeError` from `brokenpipe` and
from `WsIncoming` on close; `RuntimeError` when a repeated-connection
constructor has no connection to give; `ValueError` for unsupported
WebSocket URL schemes or empty hosts.

## What this package does not do

It opens no sockets and performs no network I/O: there are no TCP, UNIX
socket or TLS endpoints, no WebSocket frame encoder or decoder, no HTTP
server, and no command-line program. The pieces here are meant to be
driven by code that owns the connections.

## Testing

The test suite uses pytest and is installed with the `test` extra.