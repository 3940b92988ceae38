import logging

import pytest
from pyrelay.client import ClientBuilder
from pyrelay.exceptions import ConnectError
from pyrelay.middleware import Logger
from pyrelay.request import Request
from pyrelay.response import Response
from pyrelay.transport import MockTransport

from .utils import echo_headers_transport


async def test_logs_request_and_response(caplog: pytest.LogCaptureFixture):
    client = ClientBuilder().transport(echo_headers_transport()).with_middleware(Logger()).build()

    with caplog.at_level(logging.INFO, logger="pyrelay.middleware.logger"):
        resp = await client.get("http://example.com/path").send()

    assert resp.status == 200
    started, completed = caplog.records
    assert started.getMessage() == "sending request"
    assert started.levelno == logging.INFO
    assert started.method == "GET"  # type: ignore[attr-defined]
    assert started.url == "http://example.com/path"  # type: ignore[attr-defined]
    assert completed.getMessage() == "request completed"
    assert completed.status == 200  # type: ignore[attr-defined]
    assert completed.elapsed >= 0  # type: ignore[attr-defined]
    assert started.req_id == completed.req_id  # type: ignore[attr-defined]


async def test_request_ids_increase(caplog: pytest.LogCaptureFixture):
    client = ClientBuilder().transport(echo_headers_transport()).with_middleware(Logger()).build()

    with caplog.at_level(logging.INFO, logger="pyrelay.middleware.logger"):
        await client.get("http://example.com/").send()
        await client.get("http://example.com/").send()

    ids = [record.req_id for record in caplog.records]  # type: ignore[attr-defined]
    assert ids[0] == ids[1]
    assert ids[2] == ids[3]
    assert ids[2] > ids[0]


async def test_logs_failure_and_reraises(caplog: pytest.LogCaptureFixture):
    error = ConnectError("refused")

    def failing(_request: Request) -> Response:
        raise error

    client = ClientBuilder().transport(MockTransport(failing)).with_middleware(Logger()).build()

    with caplog.at_level(logging.INFO, logger="pyrelay.middleware.logger"), pytest.raises(ConnectError) as e:
        await client.get("http://example.com/").send()

    assert e.value is error
    started, failed = caplog.records
    assert failed.getMessage() == "request failed"
    assert failed.levelno == logging.ERROR
    assert failed.req_id == started.req_id  # type: ignore[attr-defined]
    assert failed.error == repr(error)  # type: ignore[attr-defined]


async def test_custom_logger_and_level(caplog: pytest.LogCaptureFixture):
    log = logging.getLogger("tests.http")
    client = ClientBuilder().transport(echo_headers_transport()).build()

    with caplog.at_level(logging.DEBUG, logger="tests.http"):
        await client.get("http://example.com/").with_middleware(Logger(log, logging.DEBUG)).send()

    assert [(r.name, r.levelno, r.getMessage()) for r in caplog.records] == [
        ("tests.http", logging.DEBUG, "sending request"),
        ("tests.http", logging.DEBUG, "request completed"),
    ]


async def test_level_filtering(caplog: pytest.LogCaptureFixture):
    client = ClientBuilder().transport(echo_headers_transport()).with_middleware(Logger(level=logging.DEBUG)).build()

    with caplog.at_level(logging.INFO, logger="pyrelay.middleware.logger"):
        await client.get("http://example.com/").send()

    assert caplog.records == []
