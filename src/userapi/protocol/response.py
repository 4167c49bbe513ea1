from dataclasses import dataclass, field
from email.utils import formatdate
from http import HTTPStatus
from typing import Any

import orjson
from multidict import CIMultiDict

SERVER_NAME = "UserApi/1.0"
JSON_CONTENT_TYPE = "application/json; charset=utf-8"


@dataclass
class HTTPResponse:
    """Response builder shared by every pipeline stage.

    Stages and handlers only add or overwrite headers; nothing removes one
    once it is set.
    """

    status_code: int = 200
    headers: CIMultiDict = field(default_factory=CIMultiDict)
    body: Any = None
    finished: bool = False

    def __post_init__(self):
        if not isinstance(self.headers, CIMultiDict):
            self.headers = CIMultiDict(self.headers)

    def status(self, code: int) -> "HTTPResponse":
        self.status_code = int(code)
        return self

    def set_header(self, name: str, value) -> "HTTPResponse":
        value = str(value)
        if any(c in "\r\n" for c in name + value):
            raise ValueError(f"Header {name!r} contains CR or LF")
        self.headers[name] = value
        return self

    def get_header(self, name: str):
        return self.headers.get(name)

    def append_vary(self, value: str) -> "HTTPResponse":
        current = self.headers.get("Vary")
        if not current:
            return self.set_header("Vary", value)
        fields = [v.strip() for v in current.split(",")]
        if "*" not in fields and value.lower() not in (f.lower() for f in fields):
            self.set_header("Vary", f"{current}, {value}")
        return self

    def json(self, value: Any) -> "HTTPResponse":
        self.headers["Content-Type"] = JSON_CONTENT_TYPE
        self.body = orjson.dumps(value)
        self.finished = True
        return self

    def send(self, body) -> "HTTPResponse":
        if isinstance(body, (bytes, bytearray)):
            self.headers.setdefault("Content-Type", "application/octet-stream")
            self.body = bytes(body)
            self.finished = True
        elif isinstance(body, str):
            self.headers.setdefault("Content-Type", "text/html; charset=utf-8")
            self.body = body.encode("utf-8")
            self.finished = True
        elif body is None:
            self.end()
        else:
            self.json(body)
        return self

    def end(self) -> "HTTPResponse":
        self.finished = True
        return self

    @property
    def reason(self) -> str:
        try:
            return HTTPStatus(self.status_code).phrase
        except ValueError:
            return "Unknown"

    def payload(self) -> bytes:
        if self.body is None:
            return b""
        if isinstance(self.body, bytes):
            return self.body
        if isinstance(self.body, (bytearray, memoryview)):
            return bytes(self.body)
        if isinstance(self.body, str):
            return self.body.encode("utf-8")
        return orjson.dumps(self.body)

    def to_bytes(self, include_body: bool = True) -> bytes:
        response_line = f"HTTP/1.1 {self.status_code} {self.reason}\r\n"
        default_headers = {
            "Date": formatdate(usegmt=True),
            "Server": SERVER_NAME,
        }
        merged_headers = CIMultiDict(default_headers)
        merged_headers.update(self.headers)

        body = self.payload()
        if self.body is not None and not isinstance(
            self.body, (bytes, bytearray, memoryview, str)
        ):
            merged_headers.setdefault("Content-Type", JSON_CONTENT_TYPE)
        merged_headers["Content-Length"] = str(len(body))

        header_lines = "".join(f"{k}: {v}\r\n" for k, v in merged_headers.items())
        return (response_line + header_lines + "\r\n").encode("latin-1") + (
            body if include_body else b""
        )
