"""Requests classes and builders."""

from pyrelay.http import RequestBody
from pyrelay.request.request import Request
from pyrelay.request.builder import RequestBuilder

__all__ = [
    "Request",
    "RequestBody",
    "RequestBuilder",
]
