"""Client-side WebSocket handshake: URL parsing, options and request headers."""

from __future__ import annotations

import base64
import logging
import os
from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Union
from urllib.parse import urlsplit

logger = logging.getLogger(__name__)

DEFAULT_VERSION = "13"
_DEFAULT_PORTS = {"ws": 80, "wss": 443}


@dataclass
class ClientOptions:
    """Settings that shape the client's upgrade request and connection."""

    custom_headers: List[Tuple[str, Union[bytes, str]]] = field(default_factory=list)
    origin: Optional[str] = None
    websocket_protocol: Optional[str] = None
    websocket_version: Optional[str] = None
    max_ws_frame_length: Optional[int] = None
    max_ws_message_length: Optional[int] = None
    tls_insecure: bool = False
    client_pkcs12_der: Optional[bytes] = None
    client_pkcs12_passwd: Optional[str] = None
    websocket_dont_close: bool = False

    @property
    def close_on_shutdown(self) -> bool:
        return not self.websocket_dont_close


def parse_client_url(scheme: str, arg: str) -> str:
    """Build the normalised URL for a ``ws://`` or ``wss://`` address whose remainder is ``arg``."""
    if scheme not in _DEFAULT_PORTS:
        raise ValueError(f"unsupported WebSocket scheme {scheme!r}")
    parts = urlsplit(f"{scheme}://{arg.lstrip('/')}")
    if not parts.hostname:
        raise ValueError(f"empty host in WebSocket URL {scheme}://{arg}")
    port = parts.port
    host = parts.hostname
    if ":" in host:
        host = f"[{host}]"
    netloc = host if port is None or port == _DEFAULT_PORTS[scheme] else f"{host}:{port}"
    if parts.username is not None:
        userinfo = parts.username
        if parts.password is not None:
            userinfo += f":{parts.password}"
        netloc = f"{userinfo}@{netloc}"
    url = f"{scheme}://{netloc}{parts.path or '/'}"
    if parts.query:
        url += f"?{parts.query}"
    return url


def _host_header(url: str) -> str:
    parts = urlsplit(url)
    host = parts.hostname or ""
    if ":" in host:
        host = f"[{host}]"
    port = parts.port
    if port is not None and port != _DEFAULT_PORTS.get(parts.scheme):
        return f"{host}:{port}"
    return host


def handshake_headers(
    url: str, options: Optional[ClientOptions] = None, key: Optional[str] = None
) -> List[Tuple[str, bytes]]:
    """Headers of the client's upgrade request for ``url``.

    A random ``Sec-WebSocket-Key`` is made when ``key`` is not given.
    """
    opts = ClientOptions() if options is None else options
    if key is None:
        key = base64.b64encode(os.urandom(16)).decode("ascii")
    headers: List[Tuple[str, bytes]] = [
        ("Host", _host_header(url).encode()),
        ("Connection", b"Upgrade"),
        ("Upgrade", b"websocket"),
        ("Sec-WebSocket-Version", (opts.websocket_version or DEFAULT_VERSION).encode()),
        ("Sec-WebSocket-Key", key.encode()),
    ]
    if opts.origin is not None:
        headers.append(("Origin", opts.origin.encode()))
    if opts.websocket_protocol is not None:
        headers.append(("Sec-WebSocket-Protocol", opts.websocket_protocol.encode()))
    for name, value in opts.custom_headers:
        headers.append((name, value.encode() if isinstance(value, str) else bytes(value)))
    return headers