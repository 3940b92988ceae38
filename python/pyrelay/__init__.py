"""pyrelay - Asynchronous HTTP client built around a composable middleware chain.

Every request runs through an ordered chain of middleware before it reaches a pluggable transport:
- Middleware as classes or plain async functions
- Middleware can modify, replace, retry or short-circuit requests and responses
- Client wide and per request middleware
- Pluggable transports: httpx, in-process ASGI applications, test doubles
- JSON, text, bytes and streaming request and response bodies
- Request mocking utilities for pytest
- Type-safe APIs with Python type hints
"""
