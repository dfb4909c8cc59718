import re
from enum import Enum
from typing import List, Optional, Tuple

from .header import HeaderLine, ParsedRequest


class ParserState(Enum):
    START = "start"
    REQUEST = "request"
    HEADER = "header"
    DONE = "done"
    ERROR = "error"


REQUEST_LINE = re.compile(r"^(?P<method>[!#$%&'*+\-.^_`|~0-9A-Za-z]+) "
                          r"(?P<target>\S+) "
                          r"(?P<version>HTTP/\d\.\d)$")
HEADER_LINE = re.compile(r"^(?P<name>[!#$%&'*+\-.^_`|~0-9A-Za-z]+):[ \t]*(?P<value>.*)$")
AUTHORITY = re.compile(r"^(?P<host>[^:/?#\s]+)(?::(?P<port>\d+))?$")
SCHEME = re.compile(r"[A-Za-z][A-Za-z0-9+.\-]*")


def split_authority(authority: str) -> Optional[Tuple[str, Optional[str]]]:
    """Split ``host[:port]``, or return None when it is malformed."""
    match = AUTHORITY.fullmatch(authority)
    if not match:
        return None
    return match.group("host"), match.group("port")


def split_target(target: str) -> Optional[Tuple[Optional[str], Optional[str], str, bool]]:
    """
    Split a request target into (host, port, path, forwardable).

    Origin-form targets (``/index.html``) have no host or port. Absolute
    ``http://`` targets are reduced to their path, ``/`` when empty.
    Asterisk, authority-form (``host:443``) and other-scheme targets are
    well formed but cannot be forwarded; they keep the raw target as path.
    Returns None for anything else.
    """
    if target.startswith("/"):
        return None, None, target, True
    if target == "*":
        return None, None, target, False
    scheme, sep, rest = target.partition("://")
    if not sep:
        hostport = split_authority(target)
        if hostport is None or hostport[1] is None:
            return None
        return None, None, target, False
    if not SCHEME.fullmatch(scheme):
        return None
    if scheme.lower() != "http":
        return None, None, target, False
    slash = rest.find("/")
    if slash == -1:
        authority, path = rest, "/"
    else:
        authority, path = rest[:slash], rest[slash:]
    hostport = split_authority(authority)
    if hostport is None:
        return None
    return hostport[0], hostport[1], path, True


class RequestParser:
    """
    Line-at-a-time HTTP request parser.

    Feed lines with parse_line(); the returned state says what the line was.
    Only syntax is checked here, method support is up to the caller.

    Attributes:
        state (ParserState): Current state
        request (ParsedRequest): Set once the request line is accepted
        headers (list): Every HeaderLine accepted so far, in order
    """

    def __init__(self):
        self.state = ParserState.START
        self.request: Optional[ParsedRequest] = None
        self.headers: List[HeaderLine] = []

    @property
    def last_header(self) -> Optional[HeaderLine]:
        return self.headers[-1] if self.headers else None

    def parse_line(self, line) -> ParserState:
        if isinstance(line, (bytes, bytearray)):
            line = line.decode("latin-1")
        if not line.endswith("\n"):
            # Truncated by the line length limit or by end of stream
            self.state = ParserState.ERROR
            return self.state
        line = line[:-1]
        if line.endswith("\r"):
            line = line[:-1]

        if self.state is ParserState.START:
            self.state = self._on_start(line)
        elif self.state in (ParserState.REQUEST, ParserState.HEADER):
            self.state = self._on_header(line)
        else:
            self.state = ParserState.ERROR
        return self.state

    def _on_start(self, line: str) -> ParserState:
        match = REQUEST_LINE.fullmatch(line)
        if not match:
            return ParserState.ERROR
        target = split_target(match.group("target"))
        if target is None:
            return ParserState.ERROR
        host, port, path, forwardable = target
        self.request = ParsedRequest(method=match.group("method"),
                                     path=path,
                                     version=match.group("version"),
                                     host=host,
                                     port=port,
                                     forwardable=forwardable)
        return ParserState.REQUEST

    def _on_header(self, line: str) -> ParserState:
        if line == "":
            return ParserState.DONE
        match = HEADER_LINE.fullmatch(line)
        if not match:
            return ParserState.ERROR
        header = HeaderLine(match.group("name"), match.group("value"))
        self.headers.append(header)
        if header.name == "Host" and self.request.forwardable and self.request.host is None:
            hostport = split_authority(header.value.strip())
            if hostport is not None:
                self.request.host, self.request.port = hostport
        return ParserState.HEADER
