"""Pytest configuration and shared fixtures."""
import asyncio
from unittest.mock import Mock

import pytest

from userapi.handler.router import Router
from userapi.pipeline import build_pipeline
from userapi.protocol.request import HTTPRequest
from userapi.server.server import HTTPServer


@pytest.fixture
def make_request():
    """Factory for requests as they come out of the wire parser."""

    def factory(method="GET", path="/", headers=None, body=b"", params=None):
        return HTTPRequest(
            src="test",
            method=method,
            path=path,
            params=params or {},
            version="HTTP/1.1",
            headers=headers or {},
            body=body,
        )

    return factory


@pytest.fixture
def make_reader():
    def factory(data: bytes) -> asyncio.StreamReader:
        reader = asyncio.StreamReader()
        reader.feed_data(data)
        reader.feed_eof()
        return reader

    return factory


@pytest.fixture
def list_users():
    """GET /users handler doubling as an invocation counter."""
    return Mock(side_effect=lambda request, response: response.json([{"name": "a"}]))


@pytest.fixture
def create_user():
    """POST /users handler echoing the decoded body back."""
    return Mock(side_effect=lambda request, response: response.status(201).json(request.body))


@pytest.fixture
def router(list_users, create_user):
    return Router().get("/users", list_users).post("/users", create_user)


@pytest.fixture
def app(router):
    return build_pipeline(router)


@pytest.fixture
async def server(app):
    """Live server on an ephemeral port."""
    async with HTTPServer(app, ("127.0.0.1", 0)) as server:
        yield server
