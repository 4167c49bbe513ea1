from unittest.mock import AsyncMock, Mock

import pytest

from userapi.exceptions import NotFound
from userapi.handler.router import (
    ExactPattern,
    LiteralSegment,
    ParamPattern,
    ParamSegment,
    Router,
    compile_pattern,
)
from userapi.protocol.response import HTTPResponse


def test_compile_exact_pattern():
    assert compile_pattern("/users") == ExactPattern("/users")


def test_compile_param_pattern():
    pattern = compile_pattern("/users/:id/posts")
    assert isinstance(pattern, ParamPattern)
    assert pattern.segments == (
        LiteralSegment("users"),
        ParamSegment("id"),
        LiteralSegment("posts"),
    )


@pytest.mark.parametrize("pattern", ["users", "/users/:", "/users/:1id"])
def test_compile_rejects_bad_patterns(pattern):
    with pytest.raises(ValueError):
        compile_pattern(pattern)


def test_exact_pattern_ignores_trailing_slash():
    pattern = compile_pattern("/users")
    assert pattern.match("/users/") == {}
    assert pattern.match("/users/1") is None
    assert pattern.match("/") is None


def test_param_pattern_captures_decoded_segment():
    pattern = compile_pattern("/users/:id")
    assert pattern.match("/users/42") == {"id": "42"}
    assert pattern.match("/users/a%20b") == {"id": "a b"}
    assert pattern.match("/users") is None
    assert pattern.match("/groups/42") is None


@pytest.mark.asyncio
async def test_dispatch_invokes_matching_handler(make_request):
    handler = Mock()
    router = Router().get("/users", handler)
    request = make_request("GET", "/users")
    response = HTTPResponse()

    await router.dispatch(request, response)

    handler.assert_called_once_with(request, response)


@pytest.mark.asyncio
async def test_dispatch_awaits_async_handler(make_request):
    handler = AsyncMock()
    router = Router().post("/users", handler)

    await router.dispatch(make_request("POST", "/users"), HTTPResponse())

    handler.assert_awaited_once()


@pytest.mark.asyncio
async def test_first_registered_match_wins(make_request):
    first, second = Mock(), Mock()
    router = Router().get("/users/:id", first).get("/users/me", second)

    await router.dispatch(make_request("GET", "/users/me"), HTTPResponse())

    first.assert_called_once()
    second.assert_not_called()


@pytest.mark.asyncio
async def test_dispatch_sets_path_params(make_request):
    router = Router().delete("/users/:id", Mock())
    request = make_request("DELETE", "/users/7")

    await router.dispatch(request, HTTPResponse())

    assert request.path_params == {"id": "7"}


@pytest.mark.asyncio
async def test_method_must_match(make_request):
    handler = Mock()
    router = Router().get("/users", handler)

    with pytest.raises(NotFound) as exc_info:
        await router.dispatch(make_request("PUT", "/users"), HTTPResponse())

    assert exc_info.value.status_code == 404
    assert str(exc_info.value) == "Cannot PUT /users"
    handler.assert_not_called()


@pytest.mark.asyncio
async def test_head_falls_back_to_get(make_request):
    handler = Mock()
    router = Router().get("/users", handler)

    await router.dispatch(make_request("HEAD", "/users"), HTTPResponse())

    handler.assert_called_once()


@pytest.mark.asyncio
async def test_unknown_path_raises_not_found(make_request):
    router = Router().get("/users", Mock())

    with pytest.raises(NotFound):
        await router.dispatch(make_request("GET", "/missing"), HTTPResponse())


def test_registration_after_freeze_is_rejected():
    router = Router().get("/users", Mock()).freeze()

    with pytest.raises(RuntimeError):
        router.post("/users", Mock())
    assert len(router.routes) == 1


@pytest.mark.parametrize("path", ["//users", "/users//", "/users///"])
def test_empty_segments_do_not_match(path):
    assert compile_pattern("/users").match(path) is None


def test_param_segment_must_not_be_empty():
    pattern = compile_pattern("/users/:id")

    assert pattern.match("/users/") is None
    assert pattern.match("/users//") is None
    assert pattern.match("//7") is None


def test_routes_table_is_read_only():
    router = Router().get("/users", Mock())

    assert isinstance(router.routes, tuple)
    assert router.routes[0].method == "GET"
