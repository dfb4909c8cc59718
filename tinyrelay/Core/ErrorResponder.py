import logging
import socket

from .header import MAXBUF, MAXLINE

logger = logging.getLogger(__name__)

ERROR_BODY = ("<!DOCTYPE html>\r\n"
              "<html>\r\n"
              "<head><title>Tiny Error</title></head>\r\n"
              "<body bgcolor=\"ffffff\">\r\n"
              "<h1>{errnum}: {shortmsg}</h1>\r\n"
              "<p>{longmsg}</p>\r\n"
              "<hr /><em>The Tiny Web server</em>\r\n"
              "</body></html>\r\n")

ERROR_HEADERS = ("HTTP/1.0 {errnum} {shortmsg}\r\n"
                 "Content-Type: text/html\r\n"
                 "Content-Length: {bodylen}\r\n\r\n")


def build_error(errnum, shortmsg: str, longmsg: str):
    """
    Serialize an error page.

    Returns:
        tuple: (headers, body) as bytes, or None if either block would not
        fit its size bound
    """
    body = ERROR_BODY.format(errnum=errnum, shortmsg=shortmsg, longmsg=longmsg).encode("latin-1", "replace")
    if len(body) >= MAXBUF:
        return None

    headers = ERROR_HEADERS.format(errnum=errnum, shortmsg=shortmsg, bodylen=len(body)).encode("latin-1", "replace")
    if len(headers) >= MAXLINE:
        return None
    return headers, body


def client_error(sock: socket.socket, errnum, shortmsg: str, longmsg: str) -> bool:
    """
    Send an HTTP/1.0 error page to the client.

    Args:
        sock (socket): The socket connected to the client
        errnum: Status code, e.g. 400
        shortmsg (str): Reason phrase
        longmsg (str): Explanation shown in the page body

    Returns:
        bool: True if the whole page was written
    """
    page = build_error(errnum, shortmsg, longmsg)
    if page is None:
        logger.debug(f"Error page for {errnum} too large, not sent")
        return False

    headers, body = page
    try:
        sock.sendall(headers)
    except OSError as e:
        logger.warning(f"Error writing error response headers to client: {e}")
        return False
    try:
        sock.sendall(body)
    except OSError as e:
        logger.warning(f"Error writing error response body to client: {e}")
        return False
    return True
