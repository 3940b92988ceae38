import inspect
from collections.abc import Awaitable, Callable

from pyrelay.request import Request
from pyrelay.response import Response

MockHandler = Callable[[Request], Awaitable[Response]] | Callable[[Request], Response]


class MockTransport:
    """Transport answering every request with a handler, for tests.

    The handler may be sync or async and may raise to simulate transport failures. Every request the transport
    receives is recorded in `requests`.
    """

    def __init__(self, handler: MockHandler) -> None:
        self._handler = handler
        self.requests: list[Request] = []

    @property
    def call_count(self) -> int:
        return len(self.requests)

    async def send(self, request: Request) -> Response:
        self.requests.append(request)
        response = self._handler(request)
        if inspect.isawaitable(response):
            response = await response
        return response
