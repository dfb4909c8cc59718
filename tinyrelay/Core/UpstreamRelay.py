import logging
import socket
from typing import Optional

import socks  # PySocks

from .errors import OriginConnectError
from .header import RelayConfig

logger = logging.getLogger(__name__)

PROXY_TYPES = {
    "SOCKS4": socks.SOCKS4,
    "SOCKS5": socks.SOCKS5,
    "HTTP": socks.HTTP,
}


class UpstreamRelay:
    """
    One origin connection: dial, send the request, copy the response back.

    Use as a context manager so the origin socket is closed on every path.

    Attributes:
        host (str): Origin host name or address
        port (int): Origin port
        config (RelayConfig): Buffer size, timeout and optional upstream proxy
        origin_socket (socket): The connected origin socket, once dialled
    """

    def __init__(self, host: str, port, config: Optional[RelayConfig] = None):
        self.host = host
        self.port = int(port)
        self.config = config or RelayConfig()
        self.origin_socket = None

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    def connect(self) -> socket.socket:
        """
        Open the origin connection.

        Raises:
            OriginConnectError: DNS failure, refused or unreachable origin,
                or the upstream proxy would not connect us
        """
        try:
            self.origin_socket = self._dial()
        except (OSError, ValueError, OverflowError, socks.ProxyError) as e:
            logger.warning(f"Could not connect to {self.host}:{self.port}: {e}")
            raise OriginConnectError() from e
        logger.debug(f"Connected to {self.host}:{self.port}")
        return self.origin_socket

    def _dial(self) -> socket.socket:
        proxy = self.config.socks_proxy
        if proxy is None:
            return socket.create_connection((self.host, self.port), timeout=self.config.timeout)

        sock = socks.socksocket()
        try:
            sock.set_proxy(PROXY_TYPES[proxy.proxy_type], proxy.host, proxy.port)
            sock.settimeout(self.config.timeout)
            sock.connect((self.host, self.port))
        except BaseException:
            sock.close()
            raise
        return sock

    def forward(self, outbound: bytes, client_socket: socket.socket) -> int:
        """
        Send the request, then relay the response to the client until the
        origin closes.

        Args:
            outbound (bytes): The complete translated request
            client_socket (socket): Where response bytes go

        Returns:
            int: Number of response bytes relayed

        Raises:
            OSError: a write to either side failed
        """
        self.origin_socket.sendall(outbound)

        relayed = 0
        while True:
            data = self.origin_socket.recv(self.config.buffer_size)
            if not data:
                break
            client_socket.sendall(data)
            relayed += len(data)
        return relayed

    def close(self):
        if self.origin_socket is not None:
            self.origin_socket.close()
            self.origin_socket = None
