from pyrelay.middleware import Next
from pyrelay.middleware.types import MiddlewareFunc
from pyrelay.request import Request
from pyrelay.response import Response, ResponseBuilder
from pyrelay.transport import MockTransport, Transport


def echo_headers_transport() -> MockTransport:
    """Transport double responding with the headers it received."""

    def handler(request: Request) -> Response:
        return ResponseBuilder().headers(list(request.headers.items())).body_bytes(b"echo").build()

    return MockTransport(handler)


def recording_middleware(name: str, log: list[str]) -> MiddlewareFunc:
    async def middleware(request: Request, transport: Transport, next_handler: Next) -> Response:
        log.append(f"{name}:before")
        resp = await next_handler.run(request, transport)
        log.append(f"{name}:after")
        return resp

    return middleware
