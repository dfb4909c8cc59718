import logging
import socket

from .header import MAXLINE

logger = logging.getLogger(__name__)


class LineReader:
    """
    Buffered line reader over a connected socket.

    Attributes:
        sock (socket): The socket to read from
        max_line (int): Longest line returned by one readline() call
        chunk_size (int): Bytes requested from the socket per recv()
    """

    def __init__(self, sock: socket.socket, max_line: int = MAXLINE, chunk_size: int = 8192):
        self.sock = sock
        self.max_line = max_line
        self.chunk_size = chunk_size
        self._buffer = bytearray()
        self._eof = False

    def readline(self) -> bytes:
        """
        Read the next line, newline included.

        Returns:
            bytes: up to and including the next ``\\n``, at most ``max_line``
            bytes, or the remaining data once the peer has closed. An empty
            result means end of stream or an I/O error.
        """
        while True:
            newline = self._buffer.find(b"\n", 0, self.max_line)
            if newline != -1:
                return self._take(newline + 1)
            if len(self._buffer) >= self.max_line:
                return self._take(self.max_line)
            if self._eof:
                return self._take(len(self._buffer))
            if not self._fill():
                self._eof = True

    def _fill(self) -> bool:
        try:
            data = self.sock.recv(self.chunk_size)
        except OSError as e:
            logger.debug(f"Read failed: {e}")
            self._buffer.clear()
            return False
        self._buffer += data
        return bool(data)

    def _take(self, size: int) -> bytes:
        line = bytes(self._buffer[:size])
        del self._buffer[:size]
        return line
