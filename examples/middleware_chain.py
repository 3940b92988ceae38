"""Middleware examples for pyrelay.

Run directly:
    uv run python -m examples.middleware_chain

Set HTTPBIN env var to point elsewhere if needed.
"""

import asyncio
import logging
import sys

from pyrelay.client import ClientBuilder
from pyrelay.middleware import Logger, Middleware, Next
from pyrelay.request import Request
from pyrelay.response import Response, ResponseBuilder
from pyrelay.transport import Transport

from ._utils import httpbin_url, run_examples


class Printer(Middleware):
    """Prints around every request it wraps."""

    def __init__(self) -> None:
        self.count = 0

    async def handle(self, request: Request, transport: Transport, next_handler: Next) -> Response:
        self.count += 1
        print(f"sending a request! ({request.method} {request.url.path})")
        resp = await next_handler.run(request, transport)
        print(f"request completed! (status {resp.status})")
        return resp


async def example_printer() -> None:
    """Example 1: Object middleware keeping state between requests"""
    printer = Printer()
    async with ClientBuilder().with_middleware(printer).build() as client:
        await client.get(httpbin_url().join("get"))
        await client.get(httpbin_url().join("get")).with_middleware(printer)
    print({"example": "printer", "count": printer.count})


async def example_function_middleware() -> None:
    """Example 2: Function middleware adding a header"""

    async def add_request_id(request: Request, transport: Transport, next_handler: Next) -> Response:
        request.headers["x-request-id"] = "example-1"
        return await next_handler.run(request, transport)

    async with ClientBuilder().build() as client:
        resp = await client.get(httpbin_url().join("headers")).with_middleware(add_request_id).send()
        data = await resp.json()
        headers = {k.lower(): v for k, v in data["headers"].items()}
        print({"example": "function_middleware", "status": resp.status, "x-request-id": headers["x-request-id"]})


async def example_order() -> None:
    """Example 3: Client middleware wraps request middleware"""

    def tracer(name: str) -> Middleware:
        class Tracer(Middleware):
            async def handle(self, request: Request, transport: Transport, next_handler: Next) -> Response:
                print(f"{name}: before")
                resp = await next_handler.run(request, transport)
                print(f"{name}: after")
                return resp

        return Tracer()

    async with ClientBuilder().with_middleware(tracer("client")).build() as client:
        await client.get(httpbin_url().join("get")).with_middleware(tracer("request 1")).with_middleware(
            tracer("request 2")
        )


async def example_short_circuit() -> None:
    """Example 4: Answering from a cache without sending"""
    cache: dict[str, bytes] = {}

    async def caching(request: Request, transport: Transport, next_handler: Next) -> Response:
        key = str(request.url)
        if request.method == "GET" and key in cache:
            return ResponseBuilder().header("x-cache", "hit").body_bytes(cache[key]).build()
        resp = await next_handler.run(request, transport)
        cache[key] = await resp.bytes()
        return resp

    async with ClientBuilder().with_middleware(caching).build() as client:
        for _ in range(2):
            resp = await client.get(httpbin_url().join("uuid")).send()
            print({"example": "short_circuit", "status": resp.status, "cache": resp.headers.get("x-cache", "miss")})


async def example_retry() -> None:
    """Example 5: Retrying server errors"""

    async def retry(request: Request, transport: Transport, next_handler: Next) -> Response:
        attempts = 0
        while True:
            attempts += 1
            resp = await next_handler.run(request.copy(), transport)
            if resp.status < 500 or attempts == 3:
                print({"example": "retry", "attempts": attempts, "status": resp.status})
                return resp
            await resp.aclose()

    async with ClientBuilder().build() as client:
        await client.get(httpbin_url().join("status/503")).with_middleware(retry)


async def example_logger() -> None:
    """Example 6: Built-in request logging"""
    log = logging.getLogger("examples.http")
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter("%(name)s %(levelname)s %(message)s"))
    log.addHandler(handler)
    log.setLevel(logging.INFO)
    try:
        async with ClientBuilder().with_middleware(Logger(log)).build() as client:
            resp = await client.get(httpbin_url().join("get")).send()
            print({"example": "logger", "status": resp.status})
    finally:
        log.removeHandler(handler)


if __name__ == "__main__":
    asyncio.run(run_examples(sys.modules[__name__]))
