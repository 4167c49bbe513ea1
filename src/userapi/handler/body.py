import logging

import orjson

from userapi.exceptions import BadRequest, PayloadTooLarge
from userapi.protocol.request import HTTPRequest
from userapi.protocol.response import HTTPResponse

logger = logging.getLogger(__name__)

JSON_MEDIA_TYPE = "application/json"
DEFAULT_BODY_LIMIT = 100 * 1024
JSON_WHITESPACE = b" \t\r\n"


def media_type(content_type: str) -> str:
    return content_type.split(";", 1)[0].strip().lower()


class JsonBodyDecoder:
    """Replaces a raw JSON body with its decoded value.

    Only top-level objects and arrays are accepted. An empty body decodes
    to an empty dict.
    """

    def __init__(self, limit: int = DEFAULT_BODY_LIMIT):
        self.limit = limit

    def __call__(self, request: HTTPRequest, response: HTTPResponse) -> bool:
        content_type = request.get_header("Content-Type")
        if not content_type or media_type(content_type) != JSON_MEDIA_TYPE:
            return True
        if not isinstance(request.body, (bytes, bytearray)):
            return True

        raw = bytes(request.body)
        if len(raw) > self.limit:
            raise PayloadTooLarge(
                f"Request body of {len(raw)} bytes exceeds the {self.limit} byte limit"
            )

        stripped = raw.lstrip(JSON_WHITESPACE)
        if not stripped:
            request.body = {}
            return True
        if stripped[:1] not in (b"{", b"["):
            raise BadRequest("JSON body must be an object or an array")

        try:
            request.body = orjson.loads(raw)
        except orjson.JSONDecodeError as e:
            logger.debug(f"Malformed JSON body for {request.method} {request.path}: {e}")
            raise BadRequest(f"Malformed JSON body: {e}")
        return True
