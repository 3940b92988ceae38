from collections.abc import AsyncGenerator

import httpx
import pytest
from pyrelay.client import Client, ClientBuilder
from pyrelay.transport import ASGITransport, HttpxTransport

from .servers.echo_body_parts_server import EchoBodyPartsServer
from .servers.echo_server import EchoServer


@pytest.fixture
def echo_server() -> EchoServer:
    return EchoServer()


@pytest.fixture
def echo_body_parts_server() -> EchoBodyPartsServer:
    return EchoBodyPartsServer()


@pytest.fixture
async def client(echo_server: EchoServer) -> AsyncGenerator[Client]:
    async with ClientBuilder().transport(ASGITransport(echo_server)).build() as client:
        yield client


@pytest.fixture
async def body_parts_client(echo_body_parts_server: EchoBodyPartsServer) -> AsyncGenerator[Client]:
    async with ClientBuilder().transport(ASGITransport(echo_body_parts_server)).build() as client:
        yield client


@pytest.fixture
async def httpx_client(echo_server: EchoServer) -> AsyncGenerator[Client]:
    """Client sending through the httpx stack into the echo server, without sockets."""
    httpx_async_client = httpx.AsyncClient(transport=httpx.ASGITransport(app=echo_server))
    async with (
        HttpxTransport(httpx_async_client) as transport,
        httpx_async_client,
        ClientBuilder().transport(transport).build() as client,
    ):
        yield client
