import base64
from collections.abc import Generator
from typing import TYPE_CHECKING, Any, Self

import orjson

from pyrelay.http import HeaderMap, Method, RequestBody, UrlType, parse_url
from pyrelay.http.types import normalize_method
from pyrelay.middleware.chain import Middleware, as_middleware
from pyrelay.request.request import Request
from pyrelay.types import ExtensionsType, HeadersType, QueryParams, Stream

if TYPE_CHECKING:
    from pyrelay.client import Client
    from pyrelay.middleware.types import MiddlewareLike
    from pyrelay.response import Response


class RequestBuilder:
    """Builder for a single request, bound to the client that created it.

    The URL is parsed when the builder is created so a malformed URL fails before any middleware or transport is
    involved. Awaiting the builder sends the request.
    """

    def __init__(self, client: "Client", method: Method | str, url: UrlType) -> None:
        """Do not use directly. Instead, use Client.request() or the per-method helpers like Client.get()."""
        self._client = client
        self._method = normalize_method(method)
        self._url = parse_url(url, client.base_url)
        self._headers: HeaderMap = client.default_headers
        self._body: RequestBody | None = None
        self._extensions: dict[str, Any] = {}
        self._middleware: list[Middleware] = []

    def with_middleware(self, middleware: "MiddlewareLike") -> Self:
        """Attach a middleware to this request. Middleware attached first runs first."""
        self._middleware.append(as_middleware(middleware))
        return self

    def header(self, name: str, value: str) -> Self:
        """Add a header, keeping existing values of the same name."""
        self._headers.append(name, value)
        return self

    def headers(self, headers: HeadersType) -> Self:
        """Add multiple headers."""
        self._headers.extend(headers)
        return self

    def basic_auth(self, username: str, password: str | None) -> Self:
        credentials = f"{username}:{password or ''}".encode()
        self._headers.insert("authorization", f"Basic {base64.b64encode(credentials).decode()}")
        return self

    def bearer_auth(self, token: str) -> Self:
        self._headers.insert("authorization", f"Bearer {token}")
        return self

    def query(self, query: QueryParams) -> Self:
        """Add query parameters. Existing parameters are kept."""
        self._url = self._url.copy_merge_params(query)
        return self

    def extensions(self, extensions: ExtensionsType) -> Self:
        """Set data passed along with the request to middleware and transports."""
        self._extensions.update(extensions)
        return self

    def body_bytes(self, body: bytes | bytearray | memoryview) -> Self:
        self._body = RequestBody.from_bytes(body)
        return self

    def body_text(self, body: str) -> Self:
        self._set_default_content_type("text/plain; charset=utf-8")
        self._body = RequestBody.from_text(body)
        return self

    def body_json(self, body: Any) -> Self:
        self._set_default_content_type("application/json")
        self._body = RequestBody.from_bytes(orjson.dumps(body))
        return self

    def body_stream(self, stream: Stream) -> Self:
        """Streamed body. The stream is consumed when the request is sent so the request can be sent only once."""
        self._body = RequestBody.from_stream(stream)
        return self

    def build(self) -> Request:
        """Build the request without sending it."""
        return Request(
            self._method,
            self._url,
            headers=self._headers.copy(),
            body=self._body,
            extensions=self._extensions.copy(),
        )

    async def send(self) -> "Response":
        """Send the request through the client and request middleware, and return the response.

        Raises errors from the middleware and the transport unchanged.
        """
        return await self._client.execute(self.build(), self._middleware)

    async def recv_bytes(self) -> bytes:
        """Send the request and read the response body."""
        return await (await self.send()).bytes()

    async def recv_string(self) -> str:
        """Send the request and read the response body as text."""
        return await (await self.send()).text()

    async def recv_json(self) -> Any:
        """Send the request and read the response body as JSON."""
        return await (await self.send()).json()

    def __await__(self) -> Generator[Any, None, "Response"]:
        return self.send().__await__()

    def _set_default_content_type(self, content_type: str) -> None:
        if "content-type" not in self._headers:
            self._headers["content-type"] = content_type

    def __repr__(self) -> str:
        return f"<RequestBuilder {self._method} {self._url}>"
