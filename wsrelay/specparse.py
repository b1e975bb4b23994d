"""Parsing of address specifiers such as ``ws-l:127.0.0.1:8080`` into overlay stacks."""

from __future__ import annotations

import logging
import socket
import sys
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, List, Optional, Tuple

logger = logging.getLogger(__name__)


class SpecParseError(ValueError):
    """An address specifier cannot be used."""


def _default_features() -> frozenset:
    features = {"ssl"}
    if hasattr(socket, "AF_UNIX"):
        features.add("unix")
    return frozenset(features)


DEFAULT_FEATURES = _default_features()


@dataclass(frozen=True)
class SpecifierClass:
    """One kind of address or overlay, recognised by its prefixes.

    An alias class rewrites its prefix to ``alias``; an overlay class wraps the
    specifier that follows it; any other class consumes the rest as its argument.
    """

    name: str
    prefixes: Tuple[str, ...]
    overlay: bool = False
    alias: Optional[str] = None
    factory: Optional[Callable[[str], Any]] = None
    overlay_factory: Optional[Callable[[Any], Any]] = None

    def construct(self, arg: str) -> Any:
        if self.factory is None:
            raise TypeError(f"{self.name} does not take an address argument")
        return self.factory(arg)

    def construct_overlay(self, inner: Any) -> Any:
        if self.overlay_factory is None:
            raise TypeError(f"{self.name} is not an overlay")
        return self.overlay_factory(inner)


@dataclass
class SpecifierStack:
    """An address with the overlays to put on top of it, outermost first."""

    addr: str
    addrtype: SpecifierClass
    overlays: List[SpecifierClass] = field(default_factory=list)

    def build(self) -> Any:
        """Construct the address, then wrap it in the overlays from innermost outwards."""
        result = self.addrtype.construct(self.addr)
        for overlay in reversed(self.overlays):
            result = overlay.construct_overlay(result)
        return result


def check_address(s: str, features: Optional[Iterable[str]] = None) -> None:
    """Reject specifiers that name unavailable or nonexistent address types."""
    enabled = DEFAULT_FEATURES if features is None else frozenset(features)

    if "ssl" not in enabled and s.startswith("wss://"):
        raise SpecParseError(
            "SSL is not compiled in. Use ws:// or get/make another Websocat build.\n"
            "You can also try to workaround missing SSL by using ws-c:cmd:socat trick "
            "(see some ws-c: example)"
        )
    if not sys.platform.startswith("linux") and s.startswith("abstract"):
        logger.warning("Abstract-namespaced UNIX sockets are unlikely to be supported here")
    if s.startswith("open:"):
        raise SpecParseError(
            "There is no `open:` address type. Consider `open-async:` or `readfile:` "
            "or `writefile:` or `appendfile:`"
        )
    if "unix" not in enabled and (s.startswith("unix") or s.startswith("abstract")):
        raise SpecParseError("`unix*:` or `abstract*:` are not supported in this Websocat build")
    if "process" not in enabled:
        if s.startswith("sh-c:"):
            raise SpecParseError("`sh-c:` is not supported in this Websocat build")
        if s.startswith("exec:"):
            raise SpecParseError("`exec:` is not supported in this Websocat build")
    if "crypto" not in enabled and s.startswith("crypto:"):
        raise SpecParseError("`crypto:` support is not compiled in")
    if "prometheus" not in enabled and (s.startswith("metrics:") or s.startswith("prometheus:")):
        raise SpecParseError("`prometheus:` support is not compiled in")


def _match(s: str, classes: List[SpecifierClass]) -> Optional[Tuple[SpecifierClass, str]]:
    for cls in classes:
        for prefix in cls.prefixes:
            if s.startswith(prefix):
                return cls, s[len(prefix):]
    return None


def parse_stack(s: str, classes: Iterable[SpecifierClass]) -> SpecifierStack:
    """Split ``s`` into overlays and a final address using the first matching prefix."""
    check_address(s)
    known = list(classes)
    overlays: List[SpecifierClass] = []
    while True:
        found = _match(s, known)
        if found is None:
            head, colon, _ = s.partition(":")
            if colon:
                raise SpecParseError(f"Unknown address or overlay type of `{head}:`")
            raise SpecParseError(
                f"Unknown address or overlay type of `{s}`\nMaybe you forgot the `:` character?"
            )
        cls, rest = found
        if cls.alias is not None:
            s = cls.alias + rest
        elif cls.overlay:
            overlays.append(cls)
            s = rest
        else:
            return SpecifierStack(addr=rest, addrtype=cls, overlays=overlays)