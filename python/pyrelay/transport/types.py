"""Transport types and interfaces."""

from typing import Protocol, runtime_checkable

from pyrelay.request import Request
from pyrelay.response import Response


@runtime_checkable
class Transport(Protocol):
    """Capability of actually sending a request.

    A transport is shared by every request of a client, concurrently, so implementations must not keep per-request
    state on the instance.
    """

    async def send(self, request: Request) -> Response:
        """Send the request and return the response.

        Transport failures should be raised as `pyrelay.exceptions.TransportError` subclasses.
        """
        ...
