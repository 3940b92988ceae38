import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Self

from pyrelay.exceptions import ClientClosedError
from pyrelay.http import HeaderMap, Method, Url, UrlType, parse_url
from pyrelay.middleware import Middleware, Next, as_middleware
from pyrelay.request import Request, RequestBuilder
from pyrelay.response import Response
from pyrelay.transport import HttpxTransport, Transport
from pyrelay.types import HeadersType

if TYPE_CHECKING:
    from pyrelay.middleware.types import MiddlewareLike

logger = logging.getLogger(__name__)


async def _send_with_transport(request: Request, transport: Transport) -> Response:
    return await transport.send(request)


class Client:
    """HTTP client, creating requests bound to a shared transport.

    Client middleware wraps the middleware attached to individual requests. The client keeps no per-request state
    so it can be used for any number of concurrent requests.
    """

    def __init__(
        self,
        transport: Transport,
        *,
        middleware: Sequence["MiddlewareLike"] = (),
        default_headers: HeadersType | None = None,
        base_url: UrlType | None = None,
        owns_transport: bool = False,
    ) -> None:
        """Create a client. ClientBuilder is the usual way to configure one.

        Args:
            transport: Transport shared by all requests of this client
            middleware: Middleware applied to every request, outermost first
            default_headers: Headers added to every request
            base_url: Base for relative request URLs
            owns_transport: Whether close() also closes the transport
        """
        self._transport = transport
        self._middleware = tuple(as_middleware(m) for m in middleware)
        self._default_headers = HeaderMap(default_headers)
        self._base_url = parse_url(base_url) if base_url is not None else None
        self._owns_transport = owns_transport
        self._closed = False

    @property
    def transport(self) -> Transport:
        return self._transport

    @property
    def base_url(self) -> Url | None:
        return self._base_url

    @property
    def default_headers(self) -> HeaderMap:
        """Copy of the headers added to every request."""
        return self._default_headers.copy()

    @property
    def middleware(self) -> tuple[Middleware, ...]:
        return self._middleware

    def request(self, method: Method | str, url: UrlType) -> RequestBuilder:
        """Create a request builder.

        Raises:
            BuilderError: The URL or method is malformed.
        """
        return RequestBuilder(self, method, url)

    def get(self, url: UrlType) -> RequestBuilder:
        return self.request(Method.GET, url)

    def head(self, url: UrlType) -> RequestBuilder:
        return self.request(Method.HEAD, url)

    def post(self, url: UrlType) -> RequestBuilder:
        return self.request(Method.POST, url)

    def put(self, url: UrlType) -> RequestBuilder:
        return self.request(Method.PUT, url)

    def delete(self, url: UrlType) -> RequestBuilder:
        return self.request(Method.DELETE, url)

    def connect(self, url: UrlType) -> RequestBuilder:
        return self.request(Method.CONNECT, url)

    def options(self, url: UrlType) -> RequestBuilder:
        return self.request(Method.OPTIONS, url)

    def trace(self, url: UrlType) -> RequestBuilder:
        return self.request(Method.TRACE, url)

    def patch(self, url: UrlType) -> RequestBuilder:
        return self.request(Method.PATCH, url)

    async def execute(self, request: Request, middleware: Sequence[Middleware] = ()) -> Response:
        """Send a request through the client middleware, the given request middleware and the transport."""
        if self._closed:
            raise ClientClosedError("Client was closed", {"method": request.method, "url": str(request.url)})

        chain = Next(self._chain_middleware(middleware), _send_with_transport)
        response = await chain.run(request, self._transport)
        if not isinstance(response, Response):
            raise TypeError(f"'{type(response).__name__}' object cannot be converted to 'Response'")
        return response

    def _chain_middleware(self, request_middleware: Sequence[Middleware]) -> tuple[Middleware, ...]:
        return (*self._middleware, *request_middleware)

    async def close(self) -> None:
        """Close the client. Requests sent after closing fail with ClientClosedError."""
        if self._closed:
            return
        self._closed = True
        if self._owns_transport and (aclose := getattr(self._transport, "aclose", None)) is not None:
            await aclose()
        logger.debug("client closed")

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()

    def __repr__(self) -> str:
        return f"<Client transport={type(self._transport).__name__} middleware={len(self._middleware)}>"


class ClientBuilder:
    """Fluent configuration of a Client."""

    def __init__(self) -> None:
        self._transport: Transport | None = None
        self._middleware: list[Middleware] = []
        self._default_headers = HeaderMap()
        self._base_url: Url | None = None
        self._built = False

    def transport(self, transport: Transport) -> Self:
        """Use the given transport instead of a new HttpxTransport. The client does not close it."""
        self._check_not_built()
        if not isinstance(transport, Transport):
            raise TypeError(f"transport must have an async send(request) method, got {transport!r}")
        self._transport = transport
        return self

    def with_middleware(self, middleware: "MiddlewareLike") -> Self:
        """Add middleware applied to every request. Middleware added first runs first."""
        self._check_not_built()
        self._middleware.append(as_middleware(middleware))
        return self

    def default_headers(self, headers: HeadersType) -> Self:
        self._check_not_built()
        self._default_headers.extend(headers)
        return self

    def user_agent(self, user_agent: str) -> Self:
        self._check_not_built()
        self._default_headers.insert("user-agent", user_agent)
        return self

    def base_url(self, url: UrlType) -> Self:
        """Base URL for relative request URLs. Must be absolute and end with a trailing slash."""
        self._check_not_built()
        parsed = parse_url(url)
        if not parsed.raw_path.split(b"?", 1)[0].endswith(b"/"):
            raise ValueError("base_url must end with a trailing slash '/'")
        self._base_url = parsed
        return self

    def build(self) -> Client:
        self._check_not_built()
        self._built = True
        owns_transport = self._transport is None
        return Client(
            self._transport if self._transport is not None else HttpxTransport(),
            middleware=self._middleware,
            default_headers=self._default_headers,
            base_url=self._base_url,
            owns_transport=owns_transport,
        )

    def _check_not_built(self) -> None:
        if self._built:
            raise RuntimeError("Client was already built")
