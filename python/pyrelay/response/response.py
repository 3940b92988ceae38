from collections.abc import AsyncIterable, AsyncIterator, Awaitable, Callable
from typing import Any, Self

import orjson

from pyrelay.exceptions import DecodeError, JSONDecodeError
from pyrelay.http import HeaderMap
from pyrelay.types import ExtensionsType, HeadersType, ResponseBody, Stream


class Response:
    """HTTP response.

    Created once by a transport or by a middleware that short-circuits the chain. Middleware may modify the status,
    headers and extensions on the way out. The body is a stream that is read at most once; `bytes`, `text` and `json`
    buffer it so those can be called repeatedly.
    """

    def __init__(
        self,
        status: int = 200,
        headers: HeadersType | None = None,
        body: ResponseBody | None = None,
        *,
        version: str = "HTTP/1.1",
        extensions: ExtensionsType | None = None,
        on_close: Callable[[], Awaitable[None]] | None = None,
    ) -> None:
        self.status = status
        self.headers = headers if isinstance(headers, HeaderMap) else HeaderMap(headers)
        self.version = version
        self.extensions: dict[str, Any] = dict(extensions or {})
        self._content: bytes | None = bytes(body) if isinstance(body, bytes | bytearray | memoryview) else None
        self._stream = body if self._content is None else None
        if body is None:
            self._content = b""
        self._on_close = on_close
        self._stream_consumed = False

    @property
    def is_success(self) -> bool:
        return 200 <= self.status < 300

    async def iter_chunks(self) -> AsyncIterator[bytes]:
        """Iterate over the body chunks. A streamed body can be iterated once unless it was already buffered."""
        if self._content is not None:
            if self._content:
                yield self._content
            return

        if self._stream_consumed:
            raise RuntimeError("Response body was already consumed")
        self._stream_consumed = True

        if self._stream is None:
            raise RuntimeError("Response has no body stream")
        try:
            async for chunk in self._stream:
                yield bytes(chunk)
        finally:
            await self.aclose()

    async def bytes(self) -> bytes:
        """Read the whole body."""
        if self._content is None:
            self._content = b"".join([chunk async for chunk in self.iter_chunks()])
            self._stream = None
        return self._content

    async def text(self) -> str:
        """Read the body as text using the charset of the content-type header, utf-8 by default."""
        content = await self.bytes()
        encoding = self.charset or "utf-8"
        try:
            return content.decode(encoding)
        except (UnicodeDecodeError, LookupError) as e:
            raise DecodeError(f"failed to decode response body as {encoding}", {"cause": e}) from e

    async def json(self) -> Any:
        """Read the body as JSON."""
        content = await self.bytes()
        try:
            return orjson.loads(content)
        except orjson.JSONDecodeError as e:
            raise JSONDecodeError(f"failed to decode response body as JSON: {e}", {"cause": e}) from e

    @property
    def charset(self) -> str | None:
        content_type = self.headers.get("content-type")
        if not content_type:
            return None
        for param in content_type.split(";")[1:]:
            key, _, value = param.strip().partition("=")
            if key.lower() == "charset" and value:
                return value.strip('"')
        return None

    async def aclose(self) -> None:
        """Release the underlying transport resources without reading the rest of the body."""
        on_close, self._on_close = self._on_close, None
        if on_close is not None:
            await on_close()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    def __repr__(self) -> str:
        return f"<Response [{self.status}]>"


class ResponseBuilder:
    """Builder for responses created without a transport, for example by a short-circuiting middleware or a mock."""

    def __init__(self) -> None:
        self._status = 200
        self._headers = HeaderMap()
        self._version = "HTTP/1.1"
        self._extensions: dict[str, Any] = {}
        self._content: bytes | None = None
        self._stream: Stream | None = None

    def status(self, status: int) -> Self:
        self._status = status
        return self

    def header(self, name: str, value: str) -> Self:
        self._headers.append(name, value)
        return self

    def headers(self, headers: HeadersType) -> Self:
        self._headers.extend(headers)
        return self

    def version(self, version: str) -> Self:
        self._version = version
        return self

    def extensions(self, extensions: ExtensionsType) -> Self:
        self._extensions.update(extensions)
        return self

    def body_bytes(self, body: bytes | bytearray | memoryview) -> Self:
        self._content, self._stream = bytes(body), None
        return self

    def body_text(self, body: str) -> Self:
        if "content-type" not in self._headers:
            self._headers["content-type"] = "text/plain; charset=utf-8"
        return self.body_bytes(body.encode())

    def body_json(self, body: Any) -> Self:
        if "content-type" not in self._headers:
            self._headers["content-type"] = "application/json"
        return self.body_bytes(orjson.dumps(body))

    def body_stream(self, stream: Stream) -> Self:
        """Streamed body. A response built from a stream can only be built once."""
        self._content, self._stream = None, stream
        return self

    def build(self) -> Response:
        """Build a new response. In-memory bodies can be built any number of times."""
        if self._stream is not None:
            stream, self._stream = self._stream, None
            body: ResponseBody = _as_async_stream(stream)
        elif self._content is not None:
            body = self._content
        else:
            body = b""
        return Response(
            self._status,
            self._headers.copy(),
            body,
            version=self._version,
            extensions=self._extensions,
        )


async def _as_async_stream(stream: Stream) -> AsyncIterator[bytes]:
    if isinstance(stream, AsyncIterable):
        async for chunk in stream:
            yield bytes(chunk)
    else:
        for chunk in stream:
            yield bytes(chunk)
