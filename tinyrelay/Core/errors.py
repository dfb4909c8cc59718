"""Errors a connection handler reports back to its client."""


class RelayError(Exception):
    """Base class: carries the status line and message of the error page."""
    status = 500
    reason = "Internal Server Error"
    message = "Proxy failed to handle the request"

    def __init__(self, message=None):
        super().__init__(message or self.message)
        if message:
            self.message = message


class BadRequestError(RelayError):
    status = 400
    reason = "Bad Request"
    message = "Proxy received a malformed request"


class RequestTooLargeError(BadRequestError):
    message = "Proxy received an oversized request"


class MethodNotImplementedError(RelayError):
    status = 501
    reason = "Not Implemented"
    message = "Proxy does not implement this method"


class OriginConnectError(BadRequestError):
    message = "Proxy could not connect to the requested server"
