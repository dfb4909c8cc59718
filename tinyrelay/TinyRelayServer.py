"""
TinyRelay Server
License: MIT License
Description: TinyRelay is a forwarding proxy for HTTP/1.0 GET requests. It
             rewrites each request into a canonical form, sends it to the
             origin server named in the request and relays the response
             back to the client unmodified.
"""

import logging
import socket
import threading
from typing import Optional, Tuple

from .Core.errors import BadRequestError, MethodNotImplementedError, RelayError
from .Core.ErrorResponder import client_error
from .Core.header import ClientInfo, RelayConfig
from .Core.LineReader import LineReader
from .Core.RequestParser import ParserState, RequestParser
from .Core.RequestTranslator import RequestTranslator
from .Core.UpstreamRelay import UpstreamRelay

logger = logging.getLogger(__name__)


def client_info(addr: Tuple) -> ClientInfo:
    """Resolve peer host and service names, falling back to the raw address."""
    try:
        host, serv = socket.getnameinfo(addr[:2], 0)
    except (OSError, ValueError) as e:
        logger.debug(f"getnameinfo failed for {addr}: {e}")
        return ClientInfo(host=str(addr[0]), serv=str(addr[1]))
    return ClientInfo(host=host, serv=serv)


class TinyRelayServer:
    """
    Accepts client connections and runs each one on its own detached thread.

    Handler threads share nothing but the read-only config.

    Attributes:
        config (RelayConfig): Listening address, buffer sizes, timeout
        server_socket (socket): The listening socket, once bound
        running (bool): Flag indicating if the accept loop should keep going
    """

    ACCEPT_TIMEOUT = 0.5

    def __init__(self, config: Optional[RelayConfig] = None):
        self.config = config or RelayConfig()
        self.server_socket = None
        self.running = False

    @property
    def port(self) -> int:
        return self.server_socket.getsockname()[1]

    def bind(self):
        """Create the listening socket. Raises OSError if the address is taken."""
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind(self.config.address)
            sock.listen(self.config.backlog)
            sock.settimeout(self.ACCEPT_TIMEOUT)
        except OSError:
            sock.close()
            raise
        self.server_socket = sock
        self.running = True
        logger.info(f"🚀 TinyRelay listening on {self.config.listening_addr}:{self.port}")

    def start(self):
        """Bind and serve until stop() is called."""
        self.bind()
        try:
            self.serve_forever()
        finally:
            self.cleanup()

    def serve_forever(self):
        while self.running:
            try:
                client_socket, addr = self.server_socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if self.running:
                    logger.error(f"Error accepting connections: {e}")
                    continue
                break

            threading.Thread(
                target=self.handle_client,
                args=(client_socket, addr),
                daemon=True
            ).start()

    def stop(self):
        """Stop the accept loop. Handlers already running finish on their own."""
        self.running = False
        self.cleanup()

    def cleanup(self):
        if self.server_socket:
            self.server_socket.close()
            self.server_socket = None

    def handle_client(self, client_socket: socket.socket, addr: Tuple):
        """
        Serve one client connection to completion and close it.

        Args:
            client_socket (socket): The socket connected to the client
            addr (tuple): Peer address as returned by accept()
        """
        with client_socket:
            info = client_info(addr)
            logger.info(f"Accepted connection from {info}")
            try:
                client_socket.settimeout(self.config.timeout)
                self.process_request(client_socket, info)
            except RelayError as e:
                logger.warning(f"{info} {e.status} {e.reason}: {e.message}")
                client_error(client_socket, e.status, e.reason, e.message)
            except OSError as e:
                logger.warning(f"{info} connection aborted: {e}")
            except Exception:
                logger.exception(f"{info} handler error")

    def process_request(self, client_socket: socket.socket, info: ClientInfo):
        """
        Read one request from the client, forward it and relay the response.

        Raises:
            RelayError: the request was rejected or the origin unreachable
            OSError: a transport failure after the origin was dialled
        """
        reader = LineReader(client_socket, self.config.max_line)
        line = reader.readline()
        if not line:
            logger.debug(f"{info} closed before sending a request")
            return

        parser = RequestParser()
        if parser.parse_line(line) is not ParserState.REQUEST:
            raise BadRequestError()

        request = parser.request
        logger.info(f"{info} {request.method} {request.path} {request.version}")
        if request.method != "GET":
            raise MethodNotImplementedError()
        if not request.forwardable:
            raise BadRequestError()

        translator = RequestTranslator(request, self.config.max_request_size)
        while True:
            line = reader.readline()
            if not line:
                break
            state = parser.parse_line(line)
            if state is ParserState.DONE:
                break
            if state is ParserState.ERROR:
                logger.warning(f"{info} malformed header, forwarding the headers read so far")
                # No error page here: the origin's response is still relayed
                break
            translator.add_header(parser.last_header)

        if request.host is None:
            raise BadRequestError("Proxy could not determine the requested host")
        port = request.resolved_port()
        outbound = translator.build(request.host, port)
        logger.debug(f"Generated request for {request.host}:{port}:\n{outbound.decode('latin-1')}")

        with UpstreamRelay(request.host, port, self.config) as relay:
            relayed = relay.forward(outbound, client_socket)
        logger.info(f"{info} relayed {relayed} bytes from {request.host}:{port}")
