import base64

import pytest

from wsrelay.wsclient import ClientOptions, handshake_headers, parse_client_url


def _lookup(headers, name):
    return [value for key, value in headers if key == name]


def test_parse_plain_url():
    assert parse_client_url("ws", "echo.websocket.org/") == "ws://echo.websocket.org/"


def test_parse_adds_root_path():
    assert parse_client_url("ws", "example.com") == "ws://example.com/"


def test_parse_keeps_non_default_port_and_query():
    url = parse_client_url("wss", "example.com:8443/some_websocket?x=1")
    assert url == "wss://example.com:8443/some_websocket?x=1"


def test_parse_drops_default_port():
    assert parse_client_url("wss", "example.com:443/a") == parse_client_url("wss", "example.com/a")


@pytest.mark.parametrize("arg", ["", "/", ":80/"])
def test_parse_rejects_empty_host(arg):
    with pytest.raises(ValueError):
        parse_client_url("ws", arg)


def test_parse_rejects_bad_port():
    with pytest.raises(ValueError):
        parse_client_url("ws", "example.com:notaport/")


def test_parse_rejects_unknown_scheme():
    with pytest.raises(ValueError):
        parse_client_url("http", "example.com/")


def test_handshake_basic_headers():
    headers = handshake_headers("ws://example.com/", ClientOptions(), key="placeholder")
    assert _lookup(headers, "Host") == [b"example.com"]
    assert _lookup(headers, "Upgrade") == [b"websocket"]
    assert _lookup(headers, "Sec-WebSocket-Version") == [b"13"]
    assert _lookup(headers, "Sec-WebSocket-Key") == [b"placeholder"]
    assert _lookup(headers, "Origin") == []


def test_handshake_host_includes_non_default_port():
    headers = handshake_headers("ws://example.com:8080/", key="placeholder")
    assert _lookup(headers, "Host") == [b"example.com:8080"]


def test_handshake_options_are_applied():
    opts = ClientOptions(
        custom_headers=[("X-One", b"1"), ("X-Two", "2")],
        origin="http://example.com",
        websocket_protocol="chat",
        websocket_version="8",
    )
    headers = handshake_headers("ws://example.com/", opts, key="placeholder")
    assert _lookup(headers, "Origin") == [b"http://example.com"]
    assert _lookup(headers, "Sec-WebSocket-Protocol") == [b"chat"]
    assert _lookup(headers, "Sec-WebSocket-Version") == [b"8"]
    assert headers[-2:] == [("X-One", b"1"), ("X-Two", b"2")]


def test_handshake_generates_sixteen_byte_key():
    headers = handshake_headers("ws://example.com/")
    (key,) = _lookup(headers, "Sec-WebSocket-Key")
    assert len(base64.b64decode(key)) == 16


def test_close_on_shutdown_follows_dont_close():
    assert ClientOptions().close_on_shutdown
    assert not ClientOptions(websocket_dont_close=True).close_on_shutdown