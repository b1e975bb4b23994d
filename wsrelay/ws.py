"""Handling of incoming WebSocket messages, pings, pongs and round-trip times."""

from __future__ import annotations

import logging
import sys
import time
from dataclasses import dataclass, field
from typing import Callable, Optional, TextIO

from .util import brokenpipe
from .wscodec import CompressionMethod, Message, MessageKind, add_prefix_and_base64

logger = logging.getLogger(__name__)

_NANOS = 1_000_000_000


def _split_seconds(seconds: float) -> tuple:
    nanos = max(0, round(seconds * _NANOS))
    return nanos // _NANOS, nanos % _NANOS


def ping_payload(elapsed: float) -> bytes:
    """Encode ``elapsed`` seconds as 8 bytes of whole seconds and 4 bytes of nanoseconds, big endian."""
    secs, nanos = _split_seconds(elapsed)
    return secs.to_bytes(8, "big") + nanos.to_bytes(4, "big")


def pong_rtt(payload: bytes, elapsed: float) -> Optional[float]:
    """Round-trip time in seconds for a pong carrying a ping payload, or ``None`` if it is not one."""
    if len(payload) != 12:
        return None
    secs = int.from_bytes(payload[:8], "big")
    nanos = int.from_bytes(payload[8:12], "big")
    sent = secs + nanos / _NANOS
    return max(0.0, elapsed - sent)


def format_rtt(delta: float) -> str:
    """Render a round-trip time as ``RTT <seconds>.<microseconds> s``."""
    secs, nanos = _split_seconds(delta)
    return f"RTT {secs}.{nanos // 1000:06d} s"


@dataclass
class WsPinger:
    """Produces the periodic pings, up to ``max_sent_pings`` of them when that is set."""

    interval: float
    max_sent_pings: Optional[int] = None
    aborted: bool = False

    def next_ping(self, elapsed: float) -> Optional[Message]:
        """The ping to send when the timer fires at ``elapsed`` seconds, or ``None`` to send nothing."""
        if self.aborted:
            logger.debug("Pinger aborted")
            return None
        if self.max_sent_pings is not None:
            if self.max_sent_pings > 0:
                self.max_sent_pings -= 1
            else:
                logger.info("Not sending WebSocket pings anymore")
                return None
        logger.info("Sending WebSocket ping")
        return Message(MessageKind.PING, ping_payload(elapsed))


@dataclass
class WsIncoming:
    """Turns incoming WebSocket messages into data for the reader.

    Control messages are handled here: pings are answered through ``send``,
    pongs report round-trip times and push back the pong deadline, and a close
    or the end of the stream ends reading with ``BrokenPipeError``.
    """

    send: Optional[Callable[[Message], None]] = None
    text_prefix: Optional[str] = None
    binary_prefix: Optional[str] = None
    text_base64: bool = False
    binary_base64: bool = False
    print_rtts: bool = False
    inhibit_pongs: Optional[int] = None
    uncompress: CompressionMethod = CompressionMethod.NONE
    ping_timeout: Optional[float] = None
    pinger: Optional[WsPinger] = None
    rtt_stream: Optional[TextIO] = None
    clock: Callable[[], float] = time.monotonic
    creation_time: float = field(init=False)
    deadline: Optional[float] = field(init=False, default=None)

    def __post_init__(self) -> None:
        self.creation_time = self.clock()
        if self.ping_timeout is not None:
            self.deadline = self.creation_time + self.ping_timeout

    @property
    def expired(self) -> bool:
        """Whether the pong deadline has passed."""
        return self.deadline is not None and self.clock() >= self.deadline

    def _abort(self) -> None:
        if self.pinger is not None:
            self.pinger.aborted = True
            self.pinger = None
        brokenpipe()

    def process(self, message: Optional[Message]) -> Optional[bytes]:
        """Handle one message; return data for the reader, or ``None`` for a control message.

        ``None`` as the message means the stream has ended.
        """
        if message is None:
            logger.info("incoming None")
            self._abort()
        kind = message.kind
        if kind is MessageKind.CLOSE:
            logger.info("Received WebSocket close message")
            self._abort()
        if kind is MessageKind.PING:
            self._on_ping(message)
            return None
        if kind is MessageKind.PONG:
            self._on_pong(bytes(message.data))
            return None
        if kind is MessageKind.TEXT:
            logger.debug("incoming text")
            data = message.data
            raw = data.encode("utf-8") if isinstance(data, str) else bytes(data)
            return add_prefix_and_base64(raw, self.text_prefix, self.text_base64)
        logger.debug("incoming binary")
        raw = self.uncompress.uncompress(bytes(message.data))
        return add_prefix_and_base64(raw, self.binary_prefix, self.binary_base64)

    def _on_ping(self, message: Message) -> None:
        if self.inhibit_pongs == 0:
            logger.info("Received and ignored WebSocket ping")
            return
        logger.info("Received WebSocket ping")
        if self.inhibit_pongs is not None:
            self.inhibit_pongs -= 1
        if self.send is None:
            return
        try:
            self.send(Message(MessageKind.PONG, bytes(message.data)))
        except BlockingIOError:
            logger.warning("dropped a ping request from websocket due to channel contention")

    def _on_pong(self, payload: bytes) -> None:
        now = self.clock()
        delta = pong_rtt(payload, now - self.creation_time)
        if delta is None:
            logger.warning("Received a pong with a strange content from websocket")
        else:
            logger.info("Received a pong from websocket; RTT = %s", delta)
            if self.print_rtts:
                out = sys.stderr if self.rtt_stream is None else self.rtt_stream
                print(format_rtt(delta), file=out)
        if self.ping_timeout is not None:
            self.deadline = now + self.ping_timeout