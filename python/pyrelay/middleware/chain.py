"""Middleware chain dispatch.

A chain is an ordered tuple of middleware ending in an endpoint that hands the request to the transport. `Next` is a
cursor into that tuple. Running a cursor calls the middleware at its position with a new cursor for the rest of the
chain, so cursors are never mutated and a middleware may run the remainder of the chain any number of times.

The first middleware wraps all the others: its code before `run` executes first and its code after `run` executes
last.
"""

import inspect
from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pyrelay.request import Request
    from pyrelay.response import Response
    from pyrelay.middleware.types import Endpoint, MiddlewareFunc, MiddlewareLike
    from pyrelay.transport import Transport


class Middleware(ABC):
    """Middleware wrapping the rest of the chain."""

    @abstractmethod
    async def handle(self, request: "Request", transport: "Transport", next_handler: "Next") -> "Response":
        """Handle the request and return a response.

        Either delegate with `await next_handler.run(request, transport)`, return a response of its own, or raise.
        """


class FunctionMiddleware(Middleware):
    """Adapts an async callable `(request, transport, next_handler)` to the Middleware interface."""

    def __init__(self, func: "MiddlewareFunc") -> None:
        self.func = func

    async def handle(self, request: "Request", transport: "Transport", next_handler: "Next") -> "Response":
        return await self.func(request, transport, next_handler)

    def __repr__(self) -> str:
        name = getattr(self.func, "__qualname__", None) or type(self.func).__qualname__
        return f"FunctionMiddleware({name})"


def as_middleware(unit: "MiddlewareLike") -> Middleware:
    """Return `unit` as a Middleware, wrapping plain async callables."""
    if isinstance(unit, Middleware):
        return unit
    if inspect.isclass(unit) or not callable(unit):
        raise TypeError(f"middleware must be a Middleware instance or an async callable, got {unit!r}")
    return FunctionMiddleware(unit)


class Next:
    """The remainder of a middleware chain, including the endpoint."""

    __slots__ = ("_endpoint", "_index", "_middleware")

    def __init__(self, middleware: Sequence[Middleware], endpoint: "Endpoint", index: int = 0) -> None:
        self._middleware = tuple(middleware)
        self._endpoint = endpoint
        self._index = index

    @classmethod
    def from_units(cls, units: Iterable["MiddlewareLike"], endpoint: "Endpoint") -> "Next":
        """Create a cursor at the start of a chain built from middleware objects or functions."""
        return cls(tuple(as_middleware(unit) for unit in units), endpoint)

    @property
    def remaining(self) -> int:
        """Number of middleware left before the endpoint."""
        return len(self._middleware) - self._index

    async def run(self, request: "Request", transport: "Transport") -> "Response":
        """Asynchronously execute the remaining middleware chain."""
        if self._index < len(self._middleware):
            current = self._middleware[self._index]
            return await current.handle(request, transport, Next(self._middleware, self._endpoint, self._index + 1))
        return await self._endpoint(request, transport)

    def __repr__(self) -> str:
        return f"<Next remaining={self.remaining}>"
