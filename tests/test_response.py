import pytest

from userapi.protocol.response import HTTPResponse


@pytest.mark.parametrize(
    "name, value",
    [
        ("Access-Control-Allow-Origin", "http://a.example\nSet-Cookie: session=1"),
        ("Access-Control-Allow-Origin", "http://a.example\r\nSet-Cookie: session=1"),
        ("X-Bad\r\nSet-Cookie", "1"),
    ],
)
def test_set_header_rejects_line_breaks(name, value):
    response = HTTPResponse()

    with pytest.raises(ValueError):
        response.set_header(name, value)

    assert len(response.headers) == 0


def test_to_bytes_computes_length_and_json_type():
    response = HTTPResponse().status(201).json({"name": "a"})

    data = response.to_bytes()

    head, _, body = data.partition(b"\r\n\r\n")
    assert head.startswith(b"HTTP/1.1 201 Created\r\n")
    assert b"Content-Length: 12" in head
    assert b"Content-Type: application/json; charset=utf-8" in head
    assert body == b'{"name":"a"}'


def test_append_vary_merges_without_duplicates():
    response = HTTPResponse().append_vary("Origin").append_vary("origin")
    response.append_vary("Access-Control-Request-Headers")

    assert response.headers["Vary"] == "Origin, Access-Control-Request-Headers"
