"""Service exceptions."""


class HTTPError(Exception):
    """Base exception for conditions answered with an HTTP error response."""

    status_code = 500

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class BadRequest(HTTPError):
    """Raised when a request body cannot be decoded."""

    status_code = 400


class NotFound(HTTPError):
    """Raised when no registered route matches the request."""

    status_code = 404


class PayloadTooLarge(HTTPError):
    """Raised when a request body exceeds the configured limit."""

    status_code = 413


class MalformedRequest(Exception):
    """Raised when the client sends a request that is not well formed."""
    pass


class BindFailure(Exception):
    """Raised when the listening socket cannot be bound."""

    def __init__(self, host: str, port: int, reason: str):
        super().__init__(f"Cannot bind {host}:{port}: {reason}")
        self.host = host
        self.port = port
        self.reason = reason
