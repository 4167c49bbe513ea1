"""Reading HTTP/1.1 requests off an asyncio stream."""
import asyncio
from typing import Optional
from urllib.parse import parse_qs, urlparse

from multidict import CIMultiDict

from userapi.exceptions import MalformedRequest, PayloadTooLarge
from userapi.protocol.request import HTTPRequest

HTTP_PROTOCOL = "HTTP/"
HEADERS_END = b"\r\n\r\n"
HTTP_METHODS = frozenset(
    ["GET", "HEAD", "POST", "PUT", "DELETE", "CONNECT", "OPTIONS", "TRACE", "PATCH"]
)


async def read_request(
    reader: asyncio.StreamReader, client_address=None, body_limit: Optional[int] = None
) -> Optional[HTTPRequest]:
    """Read one request from the stream.

    Returns None when the peer closed the connection before sending anything.
    Raises MalformedRequest on framing errors, PayloadTooLarge when the body
    would exceed body_limit, and asyncio.IncompleteReadError when the peer
    goes away in the middle of a request.
    """
    try:
        head = await reader.readuntil(HEADERS_END)
    except asyncio.IncompleteReadError as e:
        if not e.partial.strip():
            return None
        raise
    except asyncio.LimitOverrunError:
        raise MalformedRequest("Request headers are too large")

    request = parse_head(head, client_address)
    request.body = await read_body(reader, request.headers, body_limit)
    return request


def parse_head(data: bytes, client_address=None) -> HTTPRequest:
    text = data.decode("latin-1")
    lines = text.rstrip("\r\n").split("\r\n")
    # tolerate blank lines before the request line
    while lines and not lines[0].strip():
        lines.pop(0)
    if not lines:
        raise MalformedRequest("Empty request")

    parts = lines[0].split()
    if len(parts) != 3:
        raise MalformedRequest(f"Bad request line: {lines[0]!r}")
    method, raw_path, version = parts
    if method.upper() not in HTTP_METHODS:
        raise MalformedRequest(f"Unknown method: {method!r}")
    if not version.startswith(HTTP_PROTOCOL):
        raise MalformedRequest(f"Bad protocol version: {version!r}")

    parsed_url = urlparse(raw_path)
    path = parsed_url.path or "/"
    params = {k: v[0] for k, v in parse_qs(parsed_url.query).items()}

    headers = CIMultiDict()
    for line in lines[1:]:
        if not line.strip():
            continue
        if "\r" in line or "\n" in line:
            raise MalformedRequest(f"Bare CR or LF in header line: {line!r}")
        if ":" not in line:
            raise MalformedRequest(f"Bad header line: {line!r}")
        key, value = line.split(":", 1)
        if not key or key != key.strip():
            raise MalformedRequest(f"Bad header name: {key!r}")
        headers.add(key, value.strip())

    return HTTPRequest(
        src=client_address,
        method=method,
        path=path,
        params=params,
        version=version,
        headers=headers,
        body=b"",
    )


async def read_body(
    reader: asyncio.StreamReader, headers: CIMultiDict, limit: Optional[int] = None
) -> bytes:
    transfer_encoding = (headers.get("Transfer-Encoding") or "").lower()
    if transfer_encoding:
        if transfer_encoding.split(",")[-1].strip() != "chunked":
            raise MalformedRequest(f"Unsupported transfer encoding: {transfer_encoding}")
        return await read_chunked(reader, limit)

    content_length = headers.get("Content-Length")
    if content_length is None:
        return b""
    content_length = content_length.strip()
    if not (content_length.isascii() and content_length.isdigit()):
        raise MalformedRequest(f"Bad Content-Length: {content_length!r}")
    length = int(content_length)
    if length == 0:
        return b""
    if limit is not None and length > limit:
        raise PayloadTooLarge(
            f"Request body of {length} bytes exceeds the {limit} byte limit"
        )
    return await reader.readexactly(length)


async def read_chunked(reader: asyncio.StreamReader, limit: Optional[int] = None) -> bytes:
    body = bytearray()
    while True:
        size_line = await reader.readuntil(b"\r\n")
        size_text = size_line[:-2].split(b";", 1)[0].strip()
        try:
            chunk_length = int(size_text, base=16)
        except ValueError:
            raise MalformedRequest(f"Bad chunk size: {size_text!r}")
        if chunk_length < 0:
            raise MalformedRequest(f"Bad chunk size: {size_text!r}")

        if chunk_length == 0:
            # skip trailers up to the terminating empty line
            while (await reader.readuntil(b"\r\n")) != b"\r\n":
                pass
            return bytes(body)

        if limit is not None and len(body) + chunk_length > limit:
            raise PayloadTooLarge(f"Chunked request body exceeds the {limit} byte limit")
        body.extend(await reader.readexactly(chunk_length))
        if await reader.readexactly(2) != b"\r\n":
            raise MalformedRequest("Chunk is not terminated by CRLF")
