"""Transports performing the actual sending of requests."""

from pyrelay.transport.asgi import ASGITransport
from pyrelay.transport.mock import MockTransport
from pyrelay.transport.native import HttpxTransport
from pyrelay.transport.types import Transport

__all__ = [
    "ASGITransport",
    "HttpxTransport",
    "MockTransport",
    "Transport",
]
