"""Middleware chain and built-in middleware."""

from pyrelay.middleware.chain import FunctionMiddleware, Middleware, Next, as_middleware
from pyrelay.middleware.logger import Logger

__all__ = [
    "FunctionMiddleware",
    "Logger",
    "Middleware",
    "Next",
    "as_middleware",
]
