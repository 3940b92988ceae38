"""Middleware logging each request and its duration."""

import itertools
import logging
import time
from typing import TYPE_CHECKING

from pyrelay.middleware.chain import Middleware, Next
from pyrelay.request import Request
from pyrelay.response import Response

if TYPE_CHECKING:
    from pyrelay.transport import Transport

logger = logging.getLogger(__name__)

_request_ids = itertools.count()


class Logger(Middleware):
    """Log each request before it is sent and when it completes or fails.

    Every request gets a process-wide increasing id so the start and end records can be correlated. Failures are
    logged and re-raised unchanged.
    """

    def __init__(self, log: logging.Logger | None = None, level: int = logging.INFO) -> None:
        self._log = log or logger
        self._level = level

    async def handle(self, request: Request, transport: "Transport", next_handler: Next) -> Response:
        request_id = next(_request_ids)
        self._log.log(
            self._level,
            "sending request",
            extra={"req_id": request_id, "method": request.method, "url": str(request.url)},
        )
        start = time.perf_counter()
        try:
            response = await next_handler.run(request, transport)
        except Exception as e:
            self._log.error(
                "request failed",
                extra={"req_id": request_id, "error": repr(e), "elapsed": time.perf_counter() - start},
            )
            raise
        self._log.log(
            self._level,
            "request completed",
            extra={"req_id": request_id, "status": response.status, "elapsed": time.perf_counter() - start},
        )
        return response
