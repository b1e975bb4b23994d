"""WebSocket message shaping: compression, prefixes, base64 and outgoing message encoding."""

from __future__ import annotations

import base64 as _b64
import binascii
import enum
import logging
import zlib
from dataclasses import dataclass
from typing import Optional, Union

logger = logging.getLogger(__name__)

_LEVEL = 6
_CHUNK = 1024


class CompressionMethod(enum.Enum):
    """How binary message payloads are compressed or uncompressed."""

    NONE = "none"
    DEFLATE = "deflate"
    ZLIB = "zlib"
    GZIP = "gzip"

    @property
    def _wbits(self) -> int:
        return {
            CompressionMethod.DEFLATE: -15,
            CompressionMethod.ZLIB: 15,
            CompressionMethod.GZIP: 31,
        }[self]

    def compress(self, data: bytes) -> bytes:
        """Compress ``data``; the identity for ``NONE``."""
        if self is CompressionMethod.NONE:
            return bytes(data)
        compressor = zlib.compressobj(_LEVEL, zlib.DEFLATED, self._wbits)
        out = compressor.compress(bytes(data)) + compressor.flush()
        logger.debug("Compressed %d bytes into %d bytes", len(data), len(out))
        return out

    def uncompress(self, data: bytes) -> bytes:
        """Uncompress ``data``; on corrupt input, log and keep what was recovered."""
        if self is CompressionMethod.NONE:
            return bytes(data)
        decompressor = zlib.decompressobj(self._wbits)
        out = bytearray()
        view = bytes(data)
        try:
            for start in range(0, len(view), _CHUNK):
                out += decompressor.decompress(view[start:start + _CHUNK])
            out += decompressor.flush()
            if not decompressor.eof:
                raise zlib.error("unexpected end of compressed stream")
        except zlib.error as exc:
            logger.error("Error uncompressing data: %s", exc)
        logger.debug("Uncompressed %d bytes into %d bytes", len(data), len(out))
        return bytes(out)


class Mode(enum.Enum):
    """Default kind of outgoing WebSocket messages."""

    TEXT = "text"
    BINARY = "binary"


class MessageKind(enum.Enum):
    TEXT = "text"
    BINARY = "binary"
    PING = "ping"
    PONG = "pong"
    CLOSE = "close"


@dataclass(frozen=True)
class Message:
    """A WebSocket message. ``data`` is ``str`` for text messages, ``bytes`` otherwise."""

    kind: MessageKind
    data: Union[bytes, str] = b""
    close_code: Optional[int] = None
    close_reason: str = ""


def select_compression(deflate: bool, gzip: bool, zlib: bool) -> CompressionMethod:
    """Pick the single requested method; more than one is an error reported as ``NONE``."""
    chosen = [
        method
        for flag, method in (
            (deflate, CompressionMethod.DEFLATE),
            (gzip, CompressionMethod.GZIP),
            (zlib, CompressionMethod.ZLIB),
        )
        if flag
    ]
    if not chosen:
        return CompressionMethod.NONE
    if len(chosen) > 1:
        logger.error("Multiple compression methods specified")
        return CompressionMethod.NONE
    return chosen[0]


def add_prefix_and_base64(data: bytes, prefix: Optional[str], base64: bool) -> bytes:
    """Shape an incoming payload: optional prefix, optional base64 with a trailing newline."""
    head = prefix.encode() if prefix is not None else b""
    if base64:
        return head + _b64.b64encode(bytes(data)) + b"\n"
    return head + bytes(data)


@dataclass
class WsOutgoing:
    """Turns written buffers into WebSocket messages according to the configured options."""

    mode: Mode = Mode.BINARY
    text_prefix: Optional[str] = None
    binary_prefix: Optional[str] = None
    text_base64: bool = False
    binary_base64: bool = False
    close_on_shutdown: bool = True
    close_status_code: Optional[int] = None
    close_reason: Optional[str] = None
    compress: CompressionMethod = CompressionMethod.NONE

    def encode(self, data: bytes) -> Message:
        """Build the message that a write of ``data`` sends."""
        buf = bytes(data)
        mode = self.mode
        if self.text_prefix is not None and buf.startswith(self.text_prefix.encode()):
            mode = Mode.TEXT
            buf = buf[len(self.text_prefix.encode()):]
        if self.binary_prefix is not None and buf.startswith(self.binary_prefix.encode()):
            mode = Mode.BINARY
            buf = buf[len(self.binary_prefix.encode()):]

        decode = self.binary_base64 if mode is Mode.BINARY else self.text_base64
        if decode:
            if buf.endswith(b"\n"):
                buf = buf[:-1]
            if buf.endswith(b"\r"):
                buf = buf[:-1]
            try:
                buf = _b64.b64decode(buf, validate=True)
            except (binascii.Error, ValueError):
                logger.error("Failed to decode user-supplised base64 buffer. Sending message as is.")

        if mode is Mode.BINARY:
            return Message(MessageKind.BINARY, self.compress.compress(buf))
        try:
            text = buf.decode("utf-8")
        except UnicodeDecodeError:
            logger.error(
                "Invalid UTF-8 in a text WebSocket message. Sending lossy data. "
                "May be caused by unlucky buffer splits."
            )
            text = buf.decode("utf-8", errors="replace")
        return Message(MessageKind.TEXT, text)

    def close_message(self) -> Optional[Message]:
        """The close message sent on shutdown, or ``None`` if closing is disabled."""
        if not self.close_on_shutdown:
            return None
        if self.close_status_code is None:
            return Message(MessageKind.CLOSE)
        return Message(
            MessageKind.CLOSE,
            close_code=self.close_status_code,
            close_reason=self.close_reason or "",
        )