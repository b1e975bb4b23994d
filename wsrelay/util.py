"""Peers, peer constructors and small error helpers shared by all endpoints."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Any, Callable, Iterable, NoReturn, Optional

Mapper = Callable[["Peer", Any], "Peer"]


@dataclass
class Peer:
    """A connection endpoint: a reading half, a writing half and an optional hang-up token."""

    reader: Any
    writer: Any
    hup: Any = None


@dataclass(frozen=True)
class PeerConstructor:
    """Describes how to obtain peers: once from a factory, many from an iterable, or an error.

    Overlays added with :meth:`map` are applied to each peer as it is produced.
    """

    factory: Optional[Callable[[], Peer]] = None
    peers: Optional[Iterable[Peer]] = None
    error: Optional[BaseException] = None
    mapper: Optional[Mapper] = None

    def __post_init__(self) -> None:
        given = sum(x is not None for x in (self.factory, self.peers, self.error))
        if given != 1:
            raise ValueError("exactly one of factory, peers or error must be given")

    @property
    def multiconnect(self) -> bool:
        return self.peers is not None

    def map(self, func: Mapper) -> "PeerConstructor":
        """Return a constructor that passes every produced peer through ``func``."""
        if self.error is not None:
            return self
        previous = self.mapper
        if previous is None:
            combined = func
        else:
            def combined(peer: Peer, l2r: Any) -> Peer:
                return func(previous(peer, l2r), l2r)
        return dataclasses.replace(self, mapper=combined)

    def get_only_first_conn(self, l2r: Any) -> Peer:
        """Produce the first peer, with all overlays applied."""
        if self.error is not None:
            raise self.error
        if self.factory is not None:
            peer = self.factory()
        else:
            try:
                peer = next(iter(self.peers))
            except StopIteration:
                raise RuntimeError("Nowhere to connect it") from None
        if self.mapper is not None:
            peer = self.mapper(peer, l2r)
        return peer


def once(factory: Callable[[], Peer]) -> PeerConstructor:
    """A constructor that serves a single connection made by ``factory``."""
    return PeerConstructor(factory=factory)


def multi(peers: Iterable[Peer]) -> PeerConstructor:
    """A constructor that serves a sequence of incoming connections."""
    return PeerConstructor(peers=peers)


def peer_error(exc: BaseException) -> PeerConstructor:
    """A constructor that fails with ``exc`` when a connection is requested."""
    return PeerConstructor(error=exc)


def wouldblock() -> NoReturn:
    """Signal that the operation cannot complete now."""
    raise BlockingIOError("operation would block")


def brokenpipe() -> NoReturn:
    """Signal that the other side is gone."""
    raise BrokenPipeError("broken pipe")


def simple_err(message: str) -> OSError:
    """Build an I/O error carrying ``message``."""
    return OSError(message)