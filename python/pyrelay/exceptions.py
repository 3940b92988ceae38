"""Exception hierarchy of the library.

Every error raised by pyrelay itself derives from `PyRelayError`. Errors raised by middleware are never wrapped,
they reach the caller of `send()` as they were raised.
"""

from collections.abc import Mapping
from typing import Any


class PyRelayError(Exception):
    """Base class for all pyrelay errors."""

    def __init__(self, message: str, details: Mapping[str, Any] | None = None) -> None:
        """Create the error.

        Args:
            message: Human readable error message
            details: Structured context of the error, for example the url or the underlying cause
        """
        super().__init__(message)
        self.message = message
        self.details: dict[str, Any] = dict(details or {})


class BuilderError(PyRelayError, ValueError):
    """Invalid configuration, such as a malformed URL. Raised when the request or client is constructed."""


class RequestError(PyRelayError):
    """Error while sending a request."""


class TransportError(RequestError):
    """The transport failed to perform the request."""


class ConnectError(TransportError):
    """Failed to establish a connection."""


class ReadError(TransportError):
    """Failed to receive data."""


class WriteError(TransportError):
    """Failed to send data."""


class ConnectTimeoutError(ConnectError, TimeoutError):
    """Timed out while connecting."""


class ReadTimeoutError(TransportError, TimeoutError):
    """Timed out while receiving data."""


class PoolTimeoutError(TransportError, TimeoutError):
    """Timed out while waiting for a free connection."""


class ClientClosedError(RequestError):
    """The client was closed before the request was sent."""


class DecodeError(PyRelayError):
    """Failed to decode a response body into the requested shape."""


class JSONDecodeError(DecodeError):
    """Response body is not valid JSON."""
