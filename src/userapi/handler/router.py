import inspect
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, List, Optional, Tuple, Union
from urllib.parse import unquote

from userapi.exceptions import NotFound
from userapi.protocol.request import HTTPRequest
from userapi.protocol.response import HTTPResponse

logger = logging.getLogger(__name__)

Handler = Callable[[HTTPRequest, HTTPResponse], Optional[Awaitable[None]]]


def _split(path: str) -> List[str]:
    # a single trailing slash is ignored, every other slash delimits a segment
    if len(path) > 1 and path.endswith("/"):
        path = path[:-1]
    return path.split("/")[1:]


@dataclass(frozen=True)
class ExactPattern:
    """Pattern without parameters, matched segment by segment."""

    path: str

    def match(self, path: str) -> Optional[Dict[str, str]]:
        if _split(path) == _split(self.path):
            return {}
        return None


@dataclass(frozen=True)
class LiteralSegment:
    value: str


@dataclass(frozen=True)
class ParamSegment:
    name: str


@dataclass(frozen=True)
class ParamPattern:
    """Pattern with ``:name`` segments, e.g. ``/users/:id``."""

    path: str
    segments: Tuple[Union[LiteralSegment, ParamSegment], ...]

    def match(self, path: str) -> Optional[Dict[str, str]]:
        parts = _split(path)
        if len(parts) != len(self.segments):
            return None
        captured = {}
        for segment, part in zip(self.segments, parts):
            if isinstance(segment, ParamSegment):
                if not part:
                    return None
                captured[segment.name] = unquote(part)
            elif segment.value != part:
                return None
        return captured


Pattern = Union[ExactPattern, ParamPattern]


def compile_pattern(pattern: str) -> Pattern:
    if not pattern.startswith("/"):
        raise ValueError(f"Route pattern must start with '/': {pattern!r}")

    segments = []
    for part in _split(pattern):
        if part.startswith(":"):
            name = part[1:]
            if not name.isidentifier():
                raise ValueError(f"Bad parameter name {name!r} in {pattern!r}")
            segments.append(ParamSegment(name))
        else:
            segments.append(LiteralSegment(part))

    if any(isinstance(s, ParamSegment) for s in segments):
        return ParamPattern(pattern, tuple(segments))
    return ExactPattern(pattern)


@dataclass(frozen=True)
class Route:
    method: str
    pattern: Pattern
    handler: Handler

    def matches(self, request: HTTPRequest) -> Optional[Dict[str, str]]:
        method = request.method
        if method != self.method and not (method == "HEAD" and self.method == "GET"):
            return None
        return self.pattern.match(request.path)


class Router:
    """Lookup table of routes, first registered match wins."""

    def __init__(self):
        self._routes: List[Route] = []
        self._frozen = False

    @property
    def routes(self) -> Tuple[Route, ...]:
        return tuple(self._routes)

    def add(self, method: str, pattern: str, handler: Handler):
        if self._frozen:
            raise RuntimeError("Routes cannot be registered after startup")
        route = Route(method.upper(), compile_pattern(pattern), handler)
        self._routes.append(route)
        logger.debug(f"Registered route {route.method} {pattern}")
        return self

    def get(self, pattern: str, handler: Handler):
        return self.add("GET", pattern, handler)

    def post(self, pattern: str, handler: Handler):
        return self.add("POST", pattern, handler)

    def put(self, pattern: str, handler: Handler):
        return self.add("PUT", pattern, handler)

    def patch(self, pattern: str, handler: Handler):
        return self.add("PATCH", pattern, handler)

    def delete(self, pattern: str, handler: Handler):
        return self.add("DELETE", pattern, handler)

    def freeze(self):
        self._frozen = True
        return self

    def resolve(self, request: HTTPRequest) -> Tuple[Route, Dict[str, str]]:
        for route in self._routes:
            captured = route.matches(request)
            if captured is not None:
                return route, captured
        raise NotFound(f"Cannot {request.method} {request.path}")

    async def dispatch(self, request: HTTPRequest, response: HTTPResponse) -> bool:
        route, captured = self.resolve(request)
        request.path_params = captured
        result = route.handler(request, response)
        if inspect.isawaitable(result):
            await result
        return False

    __call__ = dispatch
