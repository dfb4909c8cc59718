import os
import socket
import threading

import pytest

from tinyrelay.Core.errors import OriginConnectError
from tinyrelay.Core.header import RelayConfig, SocksProxy
from tinyrelay.Core.UpstreamRelay import UpstreamRelay

from conftest import unused_port

BUFFER_SIZE = 1024


def read_all(sock):
    data = b""
    while True:
        chunk = sock.recv(65536)
        if not chunk:
            return data
        data += chunk


@pytest.mark.parametrize("size", [0, 1, BUFFER_SIZE - 1, BUFFER_SIZE, BUFFER_SIZE + 1, 1024 * 1024 + 7])
def test_response_relayed_byte_for_byte(origin_factory, socket_pair, size):
    payload = os.urandom(size)
    origin = origin_factory(payload)
    left, right = socket_pair
    right.settimeout(10)
    outbound = b"GET / HTTP/1.0\r\nHost: 127.0.0.1\r\n\r\n"

    received = []

    reader = threading.Thread(target=lambda: received.append(read_all(right)))
    reader.start()
    with UpstreamRelay("127.0.0.1", origin.port, RelayConfig(buffer_size=BUFFER_SIZE)) as relay:
        relayed = relay.forward(outbound, left)
    left.shutdown(socket.SHUT_WR)
    reader.join(timeout=10)

    assert relayed == size
    assert received == [payload]
    assert origin.requests == [outbound]


def test_origin_socket_closed_on_exit(origin_factory, socket_pair):
    origin = origin_factory(b"HTTP/1.0 200 OK\r\n\r\n")
    relay = UpstreamRelay("127.0.0.1", origin.port)

    with relay:
        assert relay.origin_socket is not None
        relay.forward(b"GET / HTTP/1.0\r\n\r\n", socket_pair[0])
    assert relay.origin_socket is None


def test_refused_connection_raises():
    with pytest.raises(OriginConnectError) as info:
        UpstreamRelay("127.0.0.1", unused_port()).connect()
    assert info.value.status == 400


def test_unknown_host_raises():
    with pytest.raises(OriginConnectError):
        UpstreamRelay("no-such-host.invalid", 80).connect()


@pytest.mark.parametrize("host", ["a" * 64 + ".test", "a..b.test"])
def test_unencodable_host_raises(host):
    with pytest.raises(OriginConnectError):
        UpstreamRelay(host, 80).connect()


def test_unreachable_socks_proxy_raises():
    config = RelayConfig(socks_proxy=SocksProxy("SOCKS5", "127.0.0.1", unused_port()), timeout=5)

    with pytest.raises(OriginConnectError):
        UpstreamRelay("example.com", 80, config).connect()


def test_socks_proxy_from_url():
    assert SocksProxy.from_url("socks5://127.0.0.1:9050") == SocksProxy("SOCKS5", "127.0.0.1", 9050)
    with pytest.raises(ValueError):
        SocksProxy.from_url("gopher://127.0.0.1:70")
    with pytest.raises(ValueError):
        SocksProxy.from_url("socks5://127.0.0.1")
