from collections.abc import AsyncGenerator, MutableMapping

import pytest
from pyrelay.client import Client
from pyrelay.exceptions import DecodeError, JSONDecodeError
from pyrelay.http import HeaderMap
from pyrelay.response import Response, ResponseBuilder

from .servers.echo_body_parts_server import EchoBodyPartsServer
from .servers.echo_server import EchoServer


async def test_status(client: Client, echo_server: EchoServer) -> None:
    resp = await client.get(echo_server.url).send()
    assert resp.status == 200 and resp.is_success

    resp.status = 404
    assert resp.status == 404 and not resp.is_success

    resp = await client.get(echo_server.url).query({"status": 503}).send()
    assert resp.status == 503


async def test_headers(client: Client, echo_server: EchoServer) -> None:
    req = client.get(echo_server.url).query(
        [("header_x_test1", "Value1"), ("header_x_test1", "Value2"), ("header_x_test2", "Value3")],
    )
    resp = await req.send()

    assert type(resp.headers) is HeaderMap and isinstance(resp.headers, MutableMapping)

    assert resp.headers.getall("X-Test1") == ["Value1", "Value2"] and resp.headers["x-test1"] == "Value1"
    assert resp.headers.getall("X-Test2") == ["Value3"] and resp.headers["x-test2"] == "Value3"

    resp.headers["X-Test2"] = "Value4"
    assert resp.headers["X-Test2"] == "Value4" and resp.headers["x-test2"] == "Value4"

    assert resp.headers.popall("x-test1") == ["Value1", "Value2"]
    assert "X-Test1" not in resp.headers and "x-test1" not in resp.headers


async def test_version(client: Client, echo_server: EchoServer) -> None:
    resp = await client.get(echo_server.url).send()
    assert resp.version == "HTTP/1.1"
    resp.version = "HTTP/2"
    assert resp.version == "HTTP/2"


async def test_extensions(client: Client, echo_server: EchoServer) -> None:
    resp = await client.get(echo_server.url).extensions({"a": "b"}).send()
    assert resp.extensions == {}
    resp.extensions["c"] = "d"
    assert resp.extensions == {"c": "d"}
    resp.extensions = {"foo": "bar", "test": "value"}
    assert resp.extensions.pop("test") == "value"
    assert resp.extensions == {"foo": "bar"}


@pytest.mark.parametrize("kind", ["chunk", "bytes", "text", "json"])
async def test_body(body_parts_client: Client, echo_body_parts_server: EchoBodyPartsServer, kind: str) -> None:
    async def stream_gen() -> AsyncGenerator[bytes, None]:
        yield b'{"foo": "bar", "test": "value"'
        yield b', "baz": 123}'

    resp = await body_parts_client.post(echo_body_parts_server.url).body_stream(stream_gen()).send()
    if kind == "chunk":
        assert [chunk async for chunk in resp.iter_chunks()] == [b'{"foo": "bar", "test": "value"', b', "baz": 123}']
        with pytest.raises(RuntimeError, match="Response body was already consumed"):
            await resp.bytes()
        with pytest.raises(RuntimeError, match="Response body was already consumed"):
            await resp.text()
        with pytest.raises(RuntimeError, match="Response body was already consumed"):
            await resp.json()
    elif kind == "bytes":
        assert (await resp.bytes()) == b'{"foo": "bar", "test": "value", "baz": 123}'
        assert (await resp.bytes()) == b'{"foo": "bar", "test": "value", "baz": 123}'
        assert [chunk async for chunk in resp.iter_chunks()] == [b'{"foo": "bar", "test": "value", "baz": 123}']
    elif kind == "text":
        assert (await resp.text()) == '{"foo": "bar", "test": "value", "baz": 123}'
        assert (await resp.text()) == '{"foo": "bar", "test": "value", "baz": 123}'
    else:
        assert kind == "json"
        assert (await resp.json()) == {"foo": "bar", "test": "value", "baz": 123}
        assert (await resp.json()) == {"foo": "bar", "test": "value", "baz": 123}


@pytest.mark.parametrize(
    "body",
    [
        pytest.param("", id="empty"),
        pytest.param('{"a": "qwe", "d: "qwe"}', id="ascii"),
        pytest.param('["æ±äº¬", "a" ', id="two-byte"),
        pytest.param('["tab	character	in	string	"]', id="tabs"),
    ],
)
async def test_bad_json(body_parts_client: Client, echo_body_parts_server: EchoBodyPartsServer, body: str) -> None:
    resp = await body_parts_client.post(echo_body_parts_server.url).body_text(body).send()
    with pytest.raises(JSONDecodeError, match="failed to decode response body as JSON") as e:
        await resp.json()
    assert isinstance(e.value, DecodeError)
    assert e.value.details["cause"]


@pytest.mark.parametrize(
    ("body", "charset", "expect"),
    [
        pytest.param(b"ascii text", "ascii", "ascii text", id="ascii"),
        pytest.param("latin-1 text \xe4".encode("latin-1"), "latin-1", "latin-1 text \xe4", id="latin1"),
        pytest.param("utf-8 text 😊".encode(), "utf-8", "utf-8 text 😊", id="utf8"),
        pytest.param("utf-8 text 😊".encode(), None, "utf-8 text 😊", id="utf8_default"),
        pytest.param(b"quoted", '"utf-8"', "quoted", id="quoted"),
    ],
)
async def test_text(
    body_parts_client: Client,
    echo_body_parts_server: EchoBodyPartsServer,
    body: bytes,
    charset: str | None,
    expect: str,
) -> None:
    content_type = f"text/plain; charset={charset}" if charset else "text/plain"
    resp = await (
        body_parts_client.post(echo_body_parts_server.url).body_bytes(body).query({"content_type": content_type}).send()
    )
    assert resp.charset == (charset.strip('"') if charset else None)
    assert await resp.text() == expect


@pytest.mark.parametrize(
    ("body", "charset"),
    [
        pytest.param("ascii bäd".encode(), "ascii", id="ascii_bad"),
        pytest.param(b"utf-8 bad \xe2\x82", "utf-8", id="utf8_bad"),
        pytest.param(b"unknown", "not-a-charset", id="unknown_charset"),
    ],
)
async def test_text_decode_error(
    body_parts_client: Client, echo_body_parts_server: EchoBodyPartsServer, body: bytes, charset: str
) -> None:
    resp = (
        await body_parts_client.post(echo_body_parts_server.url)
        .body_bytes(body)
        .query({"content_type": f"text/plain; charset={charset}"})
        .send()
    )
    with pytest.raises(DecodeError, match=f"failed to decode response body as {charset}"):
        await resp.text()


async def test_aclose() -> None:
    closed: list[bool] = []

    async def on_close() -> None:
        closed.append(True)

    async def stream() -> AsyncGenerator[bytes]:
        yield b"a"

    async with Response(200, body=stream(), on_close=on_close) as resp:
        assert resp.status == 200
    assert closed == [True]

    resp = Response(200, body=stream(), on_close=on_close)
    assert await resp.bytes() == b"a"
    await resp.aclose()
    assert closed == [True, True]


def test_repr() -> None:
    assert repr(Response(404)) == "<Response [404]>"


async def test_builder() -> None:
    builder = (
        ResponseBuilder()
        .status(201)
        .header("X-Test", "a")
        .header("X-Test", "b")
        .headers({"X-Other": "c"})
        .version("HTTP/2")
        .extensions({"ext": 1})
        .body_json({"foo": "bar"})
    )
    resp = builder.build()
    assert resp.status == 201
    assert resp.headers.getall("x-test") == ["a", "b"]
    assert resp.headers["x-other"] == "c"
    assert resp.headers["content-type"] == "application/json"
    assert resp.version == "HTTP/2"
    assert resp.extensions == {"ext": 1}
    assert await resp.json() == {"foo": "bar"}

    resp2 = builder.build()
    assert resp2 is not resp
    resp2.headers["x-test"] = "changed"
    assert resp.headers.getall("x-test") == ["a", "b"]
    assert await resp2.json() == {"foo": "bar"}


async def test_builder_text_keeps_content_type() -> None:
    resp = ResponseBuilder().header("Content-Type", "text/html").body_text("<p>hi</p>").build()
    assert resp.headers.getall("content-type") == ["text/html"]
    assert await resp.text() == "<p>hi</p>"

    resp = ResponseBuilder().build()
    assert resp.status == 200 and await resp.bytes() == b""


@pytest.mark.parametrize("sync", [False, True])
async def test_builder_stream(sync: bool) -> None:
    async def async_gen() -> AsyncGenerator[bytes]:
        yield b"part1"
        yield bytearray(b"part2")

    stream = iter([b"part1", memoryview(b"part2")]) if sync else async_gen()
    builder = ResponseBuilder().body_stream(stream)
    resp = builder.build()
    assert [chunk async for chunk in resp.iter_chunks()] == [b"part1", b"part2"]

    assert await builder.build().bytes() == b""
