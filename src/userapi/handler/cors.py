import logging
from dataclasses import dataclass
from typing import Collection, Optional, Union

from userapi.protocol.request import HTTPRequest
from userapi.protocol.response import HTTPResponse

logger = logging.getLogger(__name__)

DEFAULT_METHODS = ("GET", "HEAD", "PUT", "PATCH", "POST", "DELETE")


@dataclass(frozen=True)
class CorsPolicy:
    """Cross-origin permissions.

    ``origins="*"`` allows every origin and the requesting origin is echoed
    back. ``allowed_headers=None`` reflects whatever the preflight asks for.
    """

    origins: Union[str, Collection[str]] = "*"
    methods: Collection[str] = DEFAULT_METHODS
    allowed_headers: Optional[Collection[str]] = None
    exposed_headers: Collection[str] = ()
    credentials: bool = False
    max_age: Optional[int] = None

    def allows(self, origin: str) -> bool:
        if self.origins == "*":
            return True
        if isinstance(self.origins, str):
            return origin == self.origins
        return origin in self.origins


class CorsFilter:
    def __init__(self, policy: Optional[CorsPolicy] = None):
        self.policy = policy or CorsPolicy()

    def __call__(self, request: HTTPRequest, response: HTTPResponse) -> bool:
        origin = request.get_header("Origin")
        preflight = request.method == "OPTIONS"

        if origin:
            self._add_origin_headers(origin, response)
            if preflight:
                self._add_preflight_headers(request, response)

        if preflight:
            logger.debug(f"Preflight {request.path} from origin {origin!r}")
            response.status(204).set_header("Content-Length", "0").end()
            return False
        return True

    def _add_origin_headers(self, origin: str, response: HTTPResponse):
        policy = self.policy
        response.append_vary("Origin")
        if not policy.allows(origin):
            logger.info(f"Origin {origin!r} is not allowed")
            return
        response.set_header("Access-Control-Allow-Origin", origin)
        if policy.credentials:
            response.set_header("Access-Control-Allow-Credentials", "true")
        if policy.exposed_headers:
            response.set_header(
                "Access-Control-Expose-Headers", ",".join(policy.exposed_headers)
            )

    def _add_preflight_headers(self, request: HTTPRequest, response: HTTPResponse):
        policy = self.policy
        if "Access-Control-Allow-Origin" not in response.headers:
            return
        response.set_header("Access-Control-Allow-Methods", ",".join(policy.methods))

        if policy.allowed_headers is None:
            requested = request.get_header("Access-Control-Request-Headers")
            response.append_vary("Access-Control-Request-Headers")
            if requested:
                response.set_header("Access-Control-Allow-Headers", requested)
        elif policy.allowed_headers:
            response.set_header(
                "Access-Control-Allow-Headers", ",".join(policy.allowed_headers)
            )

        if policy.max_age is not None:
            response.set_header("Access-Control-Max-Age", str(policy.max_age))
