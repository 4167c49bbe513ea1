"""HTTP/1.1 wire format: request model, response builder and parser."""

from .parser import read_request
from .request import HTTPRequest
from .response import HTTPResponse

__all__ = ["HTTPRequest", "HTTPResponse", "read_request"]
