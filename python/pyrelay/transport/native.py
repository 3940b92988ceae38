"""Transport backed by httpx."""

import logging
from collections.abc import AsyncIterator
from typing import Any, Self

import httpx

from pyrelay.exceptions import (
    ConnectError,
    ConnectTimeoutError,
    PoolTimeoutError,
    ReadError,
    ReadTimeoutError,
    TransportError,
    WriteError,
)
from pyrelay.http import HeaderMap
from pyrelay.request import Request
from pyrelay.response import Response

logger = logging.getLogger(__name__)

_ERROR_MAP: list[tuple[type[httpx.TransportError], type[TransportError]]] = [
    (httpx.ConnectTimeout, ConnectTimeoutError),
    (httpx.ReadTimeout, ReadTimeoutError),
    (httpx.PoolTimeout, PoolTimeoutError),
    (httpx.ConnectError, ConnectError),
    (httpx.ReadError, ReadError),
    (httpx.WriteError, WriteError),
]


class HttpxTransport:
    """Sends requests with an `httpx.AsyncClient`.

    The transport owns the httpx client it creates and closes it in `aclose`. A client passed in by the caller is
    left open.
    """

    def __init__(self, client: httpx.AsyncClient | None = None, **client_kwargs: Any) -> None:
        """Initialize the transport.

        Args:
            client: httpx client to send with. Mutually exclusive with client_kwargs.
            client_kwargs: Arguments for creating an owned httpx.AsyncClient, for example `timeout` or `verify`
        """
        if client is not None and client_kwargs:
            raise ValueError("client and client_kwargs are mutually exclusive")
        self._owns_client = client is None
        self._client = client if client is not None else httpx.AsyncClient(**client_kwargs)

    async def send(self, request: Request) -> Response:
        httpx_request = self._client.build_request(
            request.method,
            request.url,
            headers=request.headers.to_httpx(),
            content=_request_content(request),
        )
        logger.debug("sending %s %s", request.method, request.url)
        try:
            httpx_response = await self._client.send(httpx_request, stream=True)
        except httpx.TransportError as e:
            raise _map_error(e, request) from e

        logger.debug("received %s for %s %s", httpx_response.status_code, request.method, request.url)
        return Response(
            httpx_response.status_code,
            HeaderMap(httpx_response.headers),
            _response_stream(httpx_response, request),
            version=httpx_response.http_version,
            on_close=httpx_response.aclose,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
            logger.debug("transport closed")

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()


def _request_content(request: Request) -> bytes | AsyncIterator[bytes] | None:
    if request.body is None:
        return None
    if (content := request.body.copy_bytes()) is not None:
        return content
    return aiter(request.body)


async def _response_stream(response: httpx.Response, request: Request) -> AsyncIterator[bytes]:
    try:
        async for chunk in response.aiter_bytes():
            yield chunk
    except httpx.TransportError as e:
        raise _map_error(e, request) from e
    except httpx.DecodingError as e:
        raise ReadError(f"failed to decode response content: {e}", {"url": str(request.url)}) from e


def _map_error(error: httpx.TransportError, request: Request) -> TransportError:
    details = {"method": request.method, "url": str(request.url), "cause": error}
    for httpx_error, error_type in _ERROR_MAP:
        if isinstance(error, httpx_error):
            return error_type(str(error) or type(error).__name__, details)
    return TransportError(str(error) or type(error).__name__, details)
