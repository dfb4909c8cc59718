import socket
import threading

import pytest

from tinyrelay import RelayConfig, TinyRelayServer


# ============================================================================
# Helpers
# ============================================================================

class OriginServer:
    """
    Minimal origin: reads one request head, optionally waits, sends a canned
    response and closes. Every request received is kept in ``requests``.
    """

    def __init__(self, response=b"", hold=None):
        self.response = response
        self.hold = hold
        self.requests = []
        self.sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self.sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self.sock.bind(("127.0.0.1", 0))
        self.sock.listen(64)
        self.sock.settimeout(0.2)
        self.port = self.sock.getsockname()[1]
        self.running = True
        self.thread = threading.Thread(target=self._serve, daemon=True)
        self.thread.start()

    def _serve(self):
        while self.running:
            try:
                conn, _ = self.sock.accept()
            except socket.timeout:
                continue
            except OSError:
                return
            threading.Thread(target=self._handle, args=(conn,), daemon=True).start()

    def _handle(self, conn):
        with conn:
            conn.settimeout(10)
            data = b""
            while b"\r\n\r\n" not in data:
                chunk = conn.recv(4096)
                if not chunk:
                    break
                data += chunk
            self.requests.append(data)
            if self.hold is not None:
                self.hold.wait(10)
            try:
                conn.sendall(self.response)
            except OSError:
                pass  # relay hung up mid-response

    def close(self):
        self.running = False
        self.thread.join(timeout=2)
        self.sock.close()


def exchange(port, data, timeout=10):
    """Send raw bytes to the relay and read until it closes the connection."""
    with socket.create_connection(("127.0.0.1", port), timeout=timeout) as sock:
        sock.sendall(data)
        received = b""
        while True:
            chunk = sock.recv(65536)
            if not chunk:
                return received
            received += chunk


def unused_port():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


def start_relay(**kwargs):
    config = RelayConfig(listening_addr="127.0.0.1", listening_port=0, **kwargs)
    server = TinyRelayServer(config)
    server.bind()
    threading.Thread(target=server.serve_forever, daemon=True).start()
    return server


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def origin_factory():
    servers = []

    def make(response=b"", hold=None):
        server = OriginServer(response, hold)
        servers.append(server)
        return server

    yield make
    for server in servers:
        server.close()


@pytest.fixture
def relay():
    server = start_relay()
    yield server
    server.stop()


@pytest.fixture
def socket_pair():
    left, right = socket.socketpair()
    yield left, right
    left.close()
    right.close()
