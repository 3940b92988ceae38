import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Coroutine
from datetime import timedelta
from typing import Any, Self
from urllib.parse import unquote

from pyrelay.exceptions import TransportError
from pyrelay.request import Request
from pyrelay.response import Response

logger = logging.getLogger(__name__)

ASGIApp = Callable[
    [dict[str, Any], Callable[[], Awaitable[dict[str, Any]]], Callable[[dict[str, Any]], Awaitable[None]]],
    Awaitable[None],
]


class ASGITransport:
    """Transport that routes requests into an ASGI application in-process."""

    def __init__(
        self,
        app: ASGIApp,
        *,
        timeout: timedelta | None = None,
        scope_update: Callable[[dict[str, Any], Request], Coroutine[Any, Any, None]] | None = None,
    ):
        """Initialize the ASGI transport.

        Use the transport as an async context manager to run the application lifespan startup and shutdown.

        Args:
            app: ASGI application callable
            timeout: Timeout for waiting on ASGI messages (default: 5 seconds)
            scope_update: Optional coroutine to modify the ASGI scope per request
        """
        self._app = app
        self._scope_update = scope_update
        self._timeout = timeout or timedelta(seconds=5)
        self._lifespan_input_queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue()
        self._lifespan_output_queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue()
        self._lifespan_task: asyncio.Task[None] | None = None
        self._state: dict[str, Any] = {}

    async def __aenter__(self) -> Self:
        async def wrapped_lifespan() -> None:
            await self._app(
                {"type": "lifespan", "asgi": {"version": "3.0"}, "state": self._state},
                self._lifespan_input_queue.get,
                self._lifespan_output_queue.put,
            )

        self._lifespan_task = asyncio.create_task(wrapped_lifespan())
        await self._send_lifespan("startup")
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._lifespan_task is None:
            return
        await self._send_lifespan("shutdown")
        self._lifespan_task = None
        logger.debug("ASGI lifespan shut down")

    async def _send_lifespan(self, action: str) -> None:
        if self._lifespan_task is None:
            raise RuntimeError("ASGI lifespan is not running")

        await self._lifespan_input_queue.put({"type": f"lifespan.{action}"})
        message = await asyncio.wait_for(self._lifespan_output_queue.get(), timeout=self._timeout.total_seconds())

        if message["type"] == f"lifespan.{action}.failed":
            await asyncio.sleep(0)
            if self._lifespan_task.done() and (exc := self._lifespan_task.exception()) is not None:
                raise exc
            raise TransportError(f"ASGI lifespan {action} failed", {"message": message.get("message", "")})

    async def send(self, request: Request) -> Response:
        scope = await self._request_to_asgi_scope(request)
        body_parts = self._asgi_body_parts(request)

        send_queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue()
        response_started = asyncio.Event()
        response_complete = asyncio.Event()

        async def receive() -> dict[str, Any]:
            if part := await anext(body_parts, None):
                return part
            # Once a response is underway, disconnect only after its last body message.
            # Apps listening for disconnect would otherwise cancel a streamed response.
            if response_started.is_set():
                await response_complete.wait()
            return {"type": "http.disconnect"}

        async def send(message: dict[str, Any]) -> None:
            await send_queue.put(message)
            if message["type"] == "http.response.start":
                response_started.set()
            elif message["type"] == "http.response.body" and not message.get("more_body", False):
                response_complete.set()

        logger.debug("dispatching %s %s to ASGI app", request.method, request.url)
        await self._app(scope, receive, send)

        return await self._asgi_response_to_response(send_queue)

    async def _request_to_asgi_scope(self, request: Request) -> dict[str, Any]:
        url = request.url
        host_header = url.netloc.decode()
        headers = [[name.encode("latin-1"), value.encode("latin-1")] for name, value in request.headers.items()]
        if "host" not in request.headers:
            headers.insert(0, [b"host", host_header.encode()])
        scope = {
            "type": "http",
            "asgi": {"version": "3.0"},
            "http_version": "1.1",
            "method": request.method,
            "scheme": url.scheme,
            "path": unquote(url.path),
            "raw_path": url.raw_path.split(b"?", 1)[0],
            "root_path": "",
            "query_string": url.query,
            "headers": headers,
            "server": (url.host, url.port or (443 if url.scheme == "https" else 80)),
            "client": ("127.0.0.1", 123),
            "state": self._state.copy(),
        }
        if self._scope_update is not None:
            await self._scope_update(scope, request)
        return scope

    async def _asgi_body_parts(self, request: Request) -> AsyncIterator[dict[str, Any]]:
        if request.body is None:
            yield {"type": "http.request", "body": b"", "more_body": False}
            return

        if (body_buf := request.body.copy_bytes()) is not None:
            yield {"type": "http.request", "body": body_buf, "more_body": False}
            return

        body_parts = [chunk async for chunk in request.body]
        if not body_parts:
            yield {"type": "http.request", "body": b"", "more_body": False}
            return
        *parts, last = body_parts
        for part in parts:
            yield {"type": "http.request", "body": part, "more_body": True}
        yield {"type": "http.request", "body": last, "more_body": False}

    async def _asgi_response_to_response(self, send_queue: asyncio.Queue[dict[str, Any]]) -> Response:
        status = 500
        headers: list[tuple[str, str]] = []
        body_parts = []

        while True:
            message = await asyncio.wait_for(send_queue.get(), timeout=self._timeout.total_seconds())

            if message["type"] == "http.response.start":
                status = message["status"]
                headers = [(k.decode("latin-1"), v.decode("latin-1")) for k, v in message.get("headers", [])]

            elif message["type"] == "http.response.body":
                if body := message.get("body"):
                    body_parts.append(body)

                if not message.get("more_body", False):
                    break

        if len(body_parts) > 1:

            async def body_stream() -> AsyncIterator[bytes]:
                for part in body_parts:
                    yield part

            return Response(status, headers, body_stream())

        return Response(status, headers, body_parts[0] if body_parts else b"")
