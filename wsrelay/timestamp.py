"""Overlay that prepends a timestamp to each incoming message."""

from __future__ import annotations

import logging
import time
from decimal import Decimal
from typing import Any, Callable, Optional

from .util import Peer

logger = logging.getLogger(__name__)


def _format_seconds(x: float) -> str:
    text = repr(x)
    if "e" in text or "E" in text:
        text = format(Decimal(text), "f")
    if text.endswith(".0"):
        text = text[:-2]
    return text


class TimestampReader:
    """Prefixes each chunk read from ``inner`` with ``"<seconds> "``.

    Seconds are wall-clock since the epoch, or, when ``monotonic`` is set,
    seconds since the reader was created.
    """

    def __init__(
        self,
        inner: Any,
        monotonic: bool = False,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self.inner = inner
        self.monotonic = monotonic
        if clock is None:
            clock = time.monotonic if monotonic else time.time
        self._clock = clock
        self._base = clock() if monotonic else None

    def _now(self) -> float:
        now = self._clock()
        return now - self._base if self._base is not None else now

    def read(self, size: int) -> bytes:
        if size <= 1:
            raise ValueError("read size must be greater than 1")
        data = self.inner.read(size)
        if not data:
            return b""
        out = f"{_format_seconds(self._now())} ".encode() + data
        if len(out) > size:
            logger.warning("Buffer too small, timstamp-prepended message may be truncated.")
        return out[:size]


def timestamp_peer(peer: Peer, monotonic: bool = False) -> Peer:
    """Wrap the reading half of ``peer`` with timestamping."""
    return Peer(TimestampReader(peer.reader, monotonic), peer.writer, peer.hup)