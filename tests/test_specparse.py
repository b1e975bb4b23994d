import pytest

from wsrelay.specparse import (
    SpecifierClass,
    SpecifierStack,
    SpecParseError,
    check_address,
    parse_stack,
)

TCP = SpecifierClass("tcp", ("tcp:", "tcp-connect:"), factory=lambda a: ("tcp", a))
TCP_L = SpecifierClass("tcp-l", ("tcp-l:", "tcp-listen:"), factory=lambda a: ("tcp-l", a))
WS_U = SpecifierClass(
    "ws-u", ("ws-u:", "ws-upgrade:"), overlay=True, overlay_factory=lambda i: ("ws-u", i)
)
LOG = SpecifierClass("log", ("log:",), overlay=True, overlay_factory=lambda i: ("log", i))
WS_L = SpecifierClass("ws-l", ("ws-l:", "ws-listen:"), alias="ws-u:tcp-l:")

CLASSES = [WS_L, WS_U, LOG, TCP_L, TCP]


def test_plain_address():
    st = parse_stack("tcp:127.0.0.1:80", CLASSES)
    assert st.addrtype is TCP
    assert st.addr == "127.0.0.1:80"
    assert st.overlays == []


def test_alias_expands_to_overlay_and_address():
    st = parse_stack("ws-l:127.0.0.1:8080", CLASSES)
    assert st.addrtype is TCP_L
    assert st.addr == "127.0.0.1:8080"
    assert st.overlays == [WS_U]


def test_overlays_outermost_first():
    st = parse_stack("log:ws-u:tcp:host:1", CLASSES)
    assert st.overlays == [LOG, WS_U]
    assert st.build() == ("log", ("ws-u", ("tcp", "host:1")))


def test_first_matching_class_wins():
    st = parse_stack("tcp-l:0.0.0.0:1", [TCP_L, TCP])
    assert st.addrtype is TCP_L


def test_build_without_overlays():
    st = SpecifierStack(addr="x", addrtype=TCP)
    assert st.build() == ("tcp", "x")


def test_unknown_with_colon():
    with pytest.raises(SpecParseError) as info:
        parse_stack("foo:bar", CLASSES)
    assert str(info.value) == "Unknown address or overlay type of `foo:`"


def test_unknown_without_colon():
    with pytest.raises(SpecParseError) as info:
        parse_stack("foo", CLASSES)
    assert "Maybe you forgot the `:` character?" in str(info.value)


def test_overlay_as_address_is_error():
    with pytest.raises(TypeError):
        SpecifierStack(addr="x", addrtype=WS_U).build()


@pytest.mark.parametrize(
    "spec",
    ["open:/tmp/x", "exec:ls", "sh-c:ls", "crypto:tcp:x", "metrics:tcp:x", "prometheus:x"],
)
def test_check_address_rejects(spec):
    with pytest.raises(SpecParseError):
        check_address(spec)


def test_parse_runs_checks():
    with pytest.raises(SpecParseError) as info:
        parse_stack("open:/tmp/x", CLASSES)
    assert "open-async:" in str(info.value)


def test_wss_without_ssl():
    with pytest.raises(SpecParseError) as info:
        check_address("wss://host/", features=set())
    assert "SSL is not compiled in" in str(info.value)


def test_unix_without_feature():
    with pytest.raises(SpecParseError):
        check_address("unix:/tmp/sock", features={"ssl"})


def test_exec_allowed_with_process_feature():
    check_address("exec:ls", features={"process"})
    with pytest.raises(SpecParseError):
        check_address("exec:ls", features={"ssl"})