"""
Request pipeline.

A pipeline is a fixed, ordered tuple of stages. Each stage receives the
request and the response being built and returns True to hand control to
the next stage or False when the response is complete. Errors raised as
``HTTPError`` are answered with their status code; anything else is a 500.
"""
import inspect
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Iterable, Optional, Tuple, Union

from userapi.exceptions import HTTPError
from userapi.handler.body import DEFAULT_BODY_LIMIT, JsonBodyDecoder
from userapi.handler.cors import CorsFilter, CorsPolicy
from userapi.handler.router import Router
from userapi.protocol.request import HTTPRequest
from userapi.protocol.response import HTTPResponse

logger = logging.getLogger(__name__)

StageFunc = Callable[[HTTPRequest, HTTPResponse], Union[bool, Awaitable[bool]]]


@dataclass(frozen=True)
class Stage:
    name: str
    func: StageFunc


class Pipeline:
    def __init__(self, stages: Iterable[Stage]):
        self.stages: Tuple[Stage, ...] = tuple(stages)

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(stage.name for stage in self.stages)

    def freeze(self):
        """Freeze stages that accept registrations, such as the router."""
        for stage in self.stages:
            freeze = getattr(stage.func, "freeze", None)
            if freeze is not None:
                freeze()
        return self

    async def run(self, request: HTTPRequest) -> HTTPResponse:
        response = HTTPResponse()
        try:
            for stage in self.stages:
                proceed = stage.func(request, response)
                if inspect.isawaitable(proceed):
                    proceed = await proceed
                if not proceed:
                    break
        except HTTPError as e:
            logger.info(f"{request.method} {request.path} rejected with {e.status_code}: {e}")
            response.status(e.status_code).json({"error": e.message})
        except Exception:
            logger.exception(f"Unhandled error while processing {request.method} {request.path}")
            response.status(500).json({"error": "Internal Server Error"})
        return response


def build_pipeline(
    router: Router,
    cors: Optional[CorsPolicy] = None,
    body_limit: int = DEFAULT_BODY_LIMIT,
) -> Pipeline:
    return Pipeline(
        [
            Stage("cors", CorsFilter(cors)),
            Stage("json_body", JsonBodyDecoder(body_limit)),
            Stage("router", router),
        ]
    )
