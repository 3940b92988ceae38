"""Middleware types and interfaces."""

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Protocol, TypeAlias

from pyrelay.request import Request
from pyrelay.response import Response

if TYPE_CHECKING:
    from pyrelay.middleware import Middleware, Next
    from pyrelay.transport import Transport


class MiddlewareFunc(Protocol):
    """Function middleware interface for processing HTTP requests and responses."""

    async def __call__(self, request: Request, transport: "Transport", next_handler: "Next") -> Response:
        """Invoked with a request before sending it.

        Call `await next_handler.run(request, transport)` to continue processing the request. The request and
        transport may be modified or replaced before they are forwarded, and `run` may be called more than once.
        Alternatively, return a custom response built with `ResponseBuilder` to skip the rest of the chain.
        If you need to forward data down the middleware stack, you can use request.extensions.

        Args:
            request: HTTP request to process
            transport: Transport that the request will be sent with
            next_handler: Rest of the chain, positioned just after this middleware

        Returns:
            HTTP response from the next middleware or a custom response.
        """
        ...


MiddlewareLike: TypeAlias = "Middleware | MiddlewareFunc"
Endpoint: TypeAlias = Callable[[Request, "Transport"], Awaitable[Response]]
