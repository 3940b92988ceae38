"""Response classes and builders."""

from pyrelay.response.response import Response, ResponseBuilder

__all__ = [
    "Response",
    "ResponseBuilder",
]
