from typing import List

from .errors import RequestTooLargeError
from .header import (DEFAULT_VERSION, HEADER_CONNECTION, HEADER_PROXY_CONNECTION,
                     HEADER_USER_AGENT, MANAGED_HEADERS, MAX_REQUEST_SIZE,
                     HeaderLine, ParsedRequest)


def is_managed_header(name: str) -> bool:
    # Exact, case-sensitive comparison: "host" is not "Host"
    return name in MANAGED_HEADERS


class RequestTranslator:
    """
    Builds the request sent to the origin from what the client sent.

    The request line is rewritten to HTTP/1.0, Host, User-Agent, Connection
    and Proxy-Connection are always the relay's own, and every other client
    header is passed through verbatim in arrival order.
    """

    def __init__(self, request: ParsedRequest, max_size: int = MAX_REQUEST_SIZE):
        self.request = request
        self.max_size = max_size
        self.headers: List[HeaderLine] = []

    def add_header(self, header: HeaderLine) -> bool:
        """Keep a client header for pass-through. Returns False if it was dropped."""
        if is_managed_header(header.name):
            return False
        self.headers.append(header)
        return True

    def request_line(self) -> str:
        return f"{self.request.method} {self.request.path} {DEFAULT_VERSION}\r\n"

    def build(self, host: str, port: str) -> bytes:
        """
        Serialize the outbound request.

        Raises:
            RequestTooLargeError: the request would exceed max_size bytes
        """
        parts = [
            self.request_line(),
            f"Host: {host}:{port}\r\n",
            HEADER_USER_AGENT,
            HEADER_CONNECTION,
            HEADER_PROXY_CONNECTION,
        ]
        parts.extend(header.serialize() for header in self.headers)
        parts.append("\r\n")

        outbound = "".join(parts).encode("latin-1")
        if len(outbound) > self.max_size:
            raise RequestTooLargeError()
        return outbound
