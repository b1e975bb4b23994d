"""Server-side WebSocket upgrade decisions: subprotocol, URI restriction and reply headers."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Mapping, Optional, Sequence, Tuple, Union

logger = logging.getLogger(__name__)

PROTOCOL_HEADER = "Sec-WebSocket-Protocol"
PROTOCOL_MISMATCH = "Requested Sec-WebSocket-Protocol does not match --server-protocol option"
URI_MISMATCH = "Request URI doesn't match --restrict-uri parameter"

HeaderValue = Union[bytes, str]
Headers = Union[Iterable[Tuple[str, HeaderValue]], Mapping[str, HeaderValue]]


@dataclass(frozen=True)
class UpgradeDecision:
    """Outcome of subprotocol negotiation.

    ``protocol`` is what the reply announces (``None`` for nothing); when
    ``accepted`` is false the upgrade must be rejected for ``reason``.
    """

    protocol: Optional[str]
    accepted: bool = True
    reason: Optional[str] = None


def choose_protocol(
    client_protocols: Optional[Sequence[str]], configured: Optional[str] = None
) -> UpgradeDecision:
    """Negotiate the subprotocol.

    ``client_protocols`` is ``None`` when the client sent no
    ``Sec-WebSocket-Protocol`` header. A configured protocol is always
    announced; it must be the client's first choice if the client named any.
    Without one, the client's first choice is echoed.
    """
    if configured is not None:
        first = next(iter(client_protocols), None) if client_protocols is not None else None
        if first == configured:
            return UpgradeDecision(configured)
        if client_protocols is None:
            logger.warning(
                "Client failed to specify Sec-WebSocket-Protocol header. "
                "Replying with it anyway, against the RFC."
            )
            return UpgradeDecision(configured)
        logger.warning(PROTOCOL_MISMATCH)
        return UpgradeDecision(configured, accepted=False, reason=PROTOCOL_MISMATCH)

    if client_protocols is None:
        return UpgradeDecision(None)
    if len(client_protocols) > 1:
        logger.warning(
            "Multiple `Sec-WebSocket-Protocol`s specified in the request. "
            "Choosing the first one. Use --server-protocol to make it explicit."
        )
    return UpgradeDecision(next(iter(client_protocols), None))


def check_restrict_uri(uri: str, restrict_uri: Optional[str] = None) -> bool:
    """Whether the request target ``uri`` passes the ``restrict_uri`` check.

    Only an absolute path equal to ``restrict_uri`` passes; anything passes
    when no restriction is set.
    """
    if restrict_uri is None:
        return True
    if uri.startswith("/") and uri == restrict_uri:
        return True
    logger.warning("Incoming request URI doesn't match the --restrict-uri value")
    return False


def _header_pairs(headers: Headers) -> List[Tuple[str, HeaderValue]]:
    if isinstance(headers, Mapping):
        return list(headers.items())
    return list(headers)


def headers_to_env(request_headers: Headers, names: Iterable[str]) -> List[Tuple[str, str]]:
    """Collect the values of the request headers listed in ``names``.

    Names match case-insensitively; only the first value of a repeated header
    is kept, and values that are not valid UTF-8 are left out.
    """
    pairs = _header_pairs(request_headers)
    found: List[Tuple[str, str]] = []
    for name in names:
        values = [value for key, value in pairs if key.lower() == name.lower()]
        if not values:
            logger.warning("No request header %s, so no envvar H_%s", name, name)
            continue
        if len(values) > 1:
            logger.warning("Extra request header for %s ignored", name)
        value = values[0]
        if isinstance(value, str):
            found.append((name, value))
            continue
        try:
            found.append((name, bytes(value).decode("utf-8")))
        except UnicodeDecodeError:
            logger.warning("Header %s value contains invalid UTF-8", name)
    return found


def reply_headers(
    protocol: Optional[str], custom_headers: Iterable[Tuple[str, HeaderValue]] = ()
) -> List[Tuple[str, bytes]]:
    """Extra headers of the upgrade reply: the chosen subprotocol, then the custom ones."""
    headers: List[Tuple[str, bytes]] = []
    if protocol is not None:
        headers.append((PROTOCOL_HEADER, protocol.encode()))
    for name, value in custom_headers:
        headers.append((name, value.encode() if isinstance(value, str) else bytes(value)))
    return headers