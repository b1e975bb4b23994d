import pytest

from wsrelay.util import (
    Peer,
    PeerConstructor,
    brokenpipe,
    multi,
    once,
    peer_error,
    simple_err,
    wouldblock,
)


def test_once_is_lazy_and_returns_peer():
    calls = []

    def factory():
        calls.append(1)
        return Peer("r", "w")

    pc = once(factory)
    assert calls == []
    peer = pc.get_only_first_conn(None)
    assert calls == [1]
    assert (peer.reader, peer.writer, peer.hup) == ("r", "w", None)


def test_map_applies_in_order_with_l2r():
    seen = []

    def first(peer, l2r):
        seen.append(("first", l2r))
        return Peer(peer.reader + "1", peer.writer, peer.hup)

    def second(peer, l2r):
        seen.append(("second", l2r))
        return Peer(peer.reader + "2", peer.writer, peer.hup)

    pc = once(lambda: Peer("r", "w")).map(first).map(second)
    peer = pc.get_only_first_conn("ctx")
    assert peer.reader == "r12"
    assert seen == [("first", "ctx"), ("second", "ctx")]


def test_multi_takes_first_peer():
    peers = [Peer("a", "a"), Peer("b", "b")]
    pc = multi(peers).map(lambda p, _: Peer(p.reader.upper(), p.writer))
    assert pc.multiconnect
    assert pc.get_only_first_conn(None).reader == "A"


def test_multi_empty_raises():
    with pytest.raises(RuntimeError, match="Nowhere to connect it"):
        multi([]).get_only_first_conn(None)


def test_peer_error_raises_and_survives_map():
    exc = ValueError("boom")
    pc = peer_error(exc).map(lambda p, _: p)
    with pytest.raises(ValueError) as info:
        pc.get_only_first_conn(None)
    assert info.value is exc


def test_constructor_requires_exactly_one_source():
    with pytest.raises(ValueError):
        PeerConstructor()


def test_wouldblock_and_brokenpipe():
    with pytest.raises(BlockingIOError):
        wouldblock()
    with pytest.raises(BrokenPipeError):
        brokenpipe()


def test_simple_err_message():
    err = simple_err("Assertion failed")
    assert str(err) == "Assertion failed"