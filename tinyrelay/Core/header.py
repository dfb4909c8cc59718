
# =============================================================================
# Core Types & Configuration
# =============================================================================

from dataclasses import dataclass, field
from typing import Optional, Tuple
from urllib.parse import urlparse

DEFAULT_VERSION = "HTTP/1.0"
DEFAULT_PORT = "80"

# Fixed lines the relay always sends, whatever the client asked for
HEADER_USER_AGENT = ("User-Agent: Mozilla/5.0"
                     " (X11; Linux x86_64; rv:3.10.0)"
                     " Gecko/20230411 Firefox/63.0.\r\n")
HEADER_CONNECTION = "Connection: close\r\n"
HEADER_PROXY_CONNECTION = "Proxy-Connection: close\r\n"

# Client headers with these exact names are replaced, not forwarded
MANAGED_HEADERS = ("Host", "User-Agent", "Connection", "Proxy-Connection")

MAXLINE = 8192
MAXBUF = 8192
MAX_OBJECT_SIZE = 100 * 1024
MAX_REQUEST_SIZE = 64 * 1024


@dataclass
class ParsedRequest:
    method: str
    path: str
    version: str
    host: Optional[str] = None
    port: Optional[str] = None
    forwardable: bool = True

    def resolved_port(self) -> str:
        return self.port or DEFAULT_PORT


@dataclass(frozen=True)
class HeaderLine:
    name: str
    value: str

    def serialize(self) -> str:
        return f"{self.name}: {self.value}\r\n"


@dataclass(frozen=True)
class ClientInfo:
    host: str
    serv: str

    def __str__(self):
        return f"{self.host}:{self.serv}"


@dataclass(frozen=True)
class SocksProxy:
    """An upstream proxy that origin dials are routed through."""
    proxy_type: str
    host: str
    port: int

    SCHEMES = {"socks4": "SOCKS4", "socks5": "SOCKS5", "http": "HTTP"}

    @classmethod
    def from_url(cls, url: str) -> "SocksProxy":
        """
        Build from a URL such as ``socks5://127.0.0.1:9050``.

        Raises:
            ValueError: unknown scheme or missing host/port
        """
        parsed = urlparse(url)
        proxy_type = cls.SCHEMES.get(parsed.scheme.lower())
        if proxy_type is None:
            raise ValueError(f"Unsupported proxy scheme: {parsed.scheme!r}")
        if not parsed.hostname or parsed.port is None:
            raise ValueError(f"Proxy URL needs a host and a port: {url!r}")
        return cls(proxy_type=proxy_type, host=parsed.hostname, port=parsed.port)


@dataclass(frozen=True)
class RelayConfig:
    """
    Process-wide settings, fixed at startup and shared read-only by every
    connection handler.

    Attributes:
        listening_addr: address the relay listens on
        listening_port: port the relay listens on (0 picks a free one)
        buffer_size: size of one origin -> client transfer chunk
        max_line: longest request or header line read in one go
        timeout: socket timeout in seconds for client and origin, None blocks
        socks_proxy: optional upstream proxy for origin dials
    """
    listening_addr: str = "0.0.0.0"
    listening_port: int = 8888
    buffer_size: int = MAX_OBJECT_SIZE
    max_line: int = MAXLINE
    timeout: Optional[float] = None
    socks_proxy: Optional[SocksProxy] = None
    max_request_size: int = MAX_REQUEST_SIZE
    backlog: int = field(default=1024, compare=False)

    @property
    def address(self) -> Tuple[str, int]:
        return self.listening_addr, self.listening_port
