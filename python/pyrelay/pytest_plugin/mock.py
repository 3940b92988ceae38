"""Module providing HTTP request mocking capabilities for pyrelay clients in tests."""

from functools import cached_property
from re import Pattern
from typing import Any, Literal, Self

import orjson
import pytest

from pyrelay.client import Client
from pyrelay.http import RequestBody, Url
from pyrelay.middleware import Middleware, Next, as_middleware
from pyrelay.pytest_plugin.internal import (
    InternalMatcher,
    format_assert_called_error,
    format_unmatched_request,
    url_without_query,
)
from pyrelay.pytest_plugin.types import (
    BodyContentMatcher,
    CustomHandler,
    CustomMatcher,
    JsonMatcher,
    Matcher,
    MethodMatcher,
    QueryMatcher,
    UrlMatcher,
)
from pyrelay.request import Request
from pyrelay.response import Response, ResponseBuilder
from pyrelay.transport import Transport


class Mock:
    """Class representing a single mock rule."""

    def __init__(self, method: MethodMatcher | None = None, url: UrlMatcher | None = None) -> None:
        """Do not use directly. Instead, use ClientMocker.mock()."""
        self._method_matcher = InternalMatcher(method) if method is not None else None
        self._url_matcher = InternalMatcher(_normalize_url_matcher(url)) if url is not None else None
        self._query_matcher: dict[str, InternalMatcher] | InternalMatcher | None = None
        self._header_matchers: dict[str, InternalMatcher] = {}
        self._body_matcher: tuple[InternalMatcher, Literal["content", "json"]] | None = None
        self._custom_matcher: CustomMatcher | None = None
        self._custom_handler: CustomHandler | None = None

        self._matched_requests: list[Request] = []
        self._unmatched_requests_repr: list[str] = []

        self._using_response_builder = False

    def assert_called(
        self,
        *,
        count: int | None = None,
        min_count: int | None = None,
        max_count: int | None = None,
    ) -> None:
        """Assert that this mock was called the expected number of times. By default, exactly once."""
        if count is None and min_count is None and max_count is None:
            count = 1

        if self._assertion_passes(count, min_count, max_count):
            return

        raise AssertionError(format_assert_called_error(self, count=count, min_count=min_count, max_count=max_count))

    def _assertion_passes(self, count: int | None, min_count: int | None, max_count: int | None) -> bool:
        actual_count = len(self._matched_requests)
        if count is not None:
            return actual_count == count

        min_satisfied = min_count is None or actual_count >= min_count
        max_satisfied = max_count is None or actual_count <= max_count

        return min_satisfied and max_satisfied

    def get_requests(self) -> list[Request]:
        """Get all captured requests by this mock."""
        return [*self._matched_requests]

    def get_call_count(self) -> int:
        """Get the total number of calls to this mock."""
        return len(self._matched_requests)

    def reset_requests(self) -> None:
        """Reset all captured requests for this mock."""
        self._matched_requests.clear()
        self._unmatched_requests_repr.clear()

    def match_query(self, query: QueryMatcher) -> Self:
        """Set a matcher to match the entire query string or specific query parameters."""
        if isinstance(query, dict):
            self._query_matcher = {k: InternalMatcher(v) for k, v in query.items()}
        else:
            self._query_matcher = InternalMatcher(query)
        return self

    def match_query_param(self, name: str, value: Matcher) -> Self:
        """Set a matcher to match a specific query parameter."""
        if not isinstance(self._query_matcher, dict):
            self._query_matcher = {}
        self._query_matcher[name] = InternalMatcher(value)
        return self

    def match_header(self, name: str, value: Matcher) -> Self:
        """Set a matcher to match a specific request header."""
        self._header_matchers[name.lower()] = InternalMatcher(value)
        return self

    def match_body(self, matcher: BodyContentMatcher) -> Self:
        """Set a matcher to match request bodies as raw content (text or bytes)."""
        self._body_matcher = (InternalMatcher(matcher), "content")
        return self

    def match_body_json(self, matcher: JsonMatcher) -> Self:
        """Set a matcher to match JSON request bodies."""
        self._body_matcher = (InternalMatcher(matcher), "json")
        return self

    def match_request(self, matcher: CustomMatcher) -> Self:
        """Set a custom matcher to match requests."""
        self._custom_matcher = matcher
        return self

    def match_request_with_response(self, handler: CustomHandler) -> Self:
        """Set a custom handler to generate the response for matched requests. Returning None means no match."""
        assert not self._using_response_builder, "Cannot use response builder and custom handler together"
        self._custom_handler = handler
        return self

    def with_status(self, status: int) -> Self:
        """Set the mocked response status code."""
        self._response_builder.status(status)
        return self

    def with_header(self, name: str, value: str) -> Self:
        """Add a header to the mocked response."""
        self._response_builder.header(name, value)
        return self

    def with_body_bytes(self, body: bytes | bytearray | memoryview) -> Self:
        """Set the mocked response body to the given bytes."""
        self._response_builder.body_bytes(body)
        return self

    def with_body_text(self, body: str) -> Self:
        """Set the mocked response body to the given text."""
        self._response_builder.body_text(body)
        return self

    def with_body_json(self, json_body: Any) -> Self:
        """Set the mocked response body to the given JSON-serializable object."""
        self._response_builder.body_json(json_body)
        return self

    def with_version(self, version: str) -> Self:
        """Set the mocked response HTTP version."""
        self._response_builder.version(version)
        return self

    async def _handle(self, request: Request) -> Response | None:
        matches = {
            "method": self._matches_method(request),
            "url": self._matches_url(request),
            "query": self._matches_query(request),
            "headers": self._matches_headers(request),
            "body": self._matches_body(request),
            "custom": await self._matches_custom(request),
        }

        response: Response | None = None
        if all(matches.values()):
            if self._custom_handler is not None:
                response = await self._custom_handler(request)
                matches["handler"] = response is not None
            else:
                response = self._response_builder.build()

        if response is not None:
            self._matched_requests.append(request)
            return response

        self._unmatched_requests_repr.append(
            format_unmatched_request(request, unmatched={k for k, matched in matches.items() if not matched}),
        )
        return None

    @cached_property
    def _response_builder(self) -> ResponseBuilder:
        assert self._custom_handler is None, "Cannot use response builder and custom handler together"
        self._using_response_builder = True
        return ResponseBuilder()

    def _matches_method(self, request: Request) -> bool:
        return self._method_matcher is None or self._method_matcher.matches(request.method)

    def _matches_url(self, request: Request) -> bool:
        if self._url_matcher is None:
            return True
        matcher = self._url_matcher.matcher
        if isinstance(matcher, str) and "://" not in matcher:
            return self._url_matcher.matches(request.url.path)
        return self._url_matcher.matches(url_without_query(request.url))

    def _matches_headers(self, request: Request) -> bool:
        for header_name, expected_value in self._header_matchers.items():
            actual_value = request.headers.get(header_name)
            if actual_value is None or not expected_value.matches(actual_value):
                return False
        return True

    def _matches_body(self, request: Request) -> bool:
        if self._body_matcher is None:
            return True

        if request.body is None:
            return False

        body_bytes = request.body.copy_bytes()
        assert body_bytes is not None, "Stream should have been consumed into body bytes by mock middleware"

        matcher, kind = self._body_matcher
        if kind == "json":
            try:
                return matcher.matches(orjson.loads(body_bytes))
            except orjson.JSONDecodeError:
                return False
        if isinstance(matcher.matcher, bytes):
            return matcher.matches(body_bytes)
        try:
            return matcher.matches(body_bytes.decode())
        except UnicodeDecodeError:
            return False

    def _matches_query(self, request: Request) -> bool:
        if self._query_matcher is None:
            return True

        params = request.url.params

        if isinstance(self._query_matcher, dict):
            for key, expected_value in self._query_matcher.items():
                values = params.get_list(key)
                if not values:
                    return False
                actual_value = values[0] if len(values) == 1 else values
                if not expected_value.matches(actual_value):
                    return False
            return True
        if isinstance(self._query_matcher.matcher, str | Pattern):
            return self._query_matcher.matches(request.url.query.decode())
        query_dict = {key: (vals[0] if len(vals) == 1 else vals) for key in params for vals in [params.get_list(key)]}
        return self._query_matcher.matches(query_dict)

    async def _matches_custom(self, request: Request) -> bool:
        if self._custom_matcher is None:
            return True
        return await self._custom_matcher(request)


class ClientMocker:
    """Main class for mocking HTTP requests."""

    def __init__(self) -> None:
        """Initialize the ClientMocker."""
        self._mocks: list[Mock] = []
        self._strict = False

    def mock(self, method: MethodMatcher | None = None, url: UrlMatcher | None = None) -> Mock:
        """Add a mock rule for requests matching the given criteria. Rules are tried in order of addition."""
        mock = Mock(method, url)
        self._mocks.append(mock)
        return mock

    def get(self, url: UrlMatcher | None = None) -> Mock:
        """Mock GET requests to the given URL."""
        return self.mock("GET", url)

    def post(self, url: UrlMatcher | None = None) -> Mock:
        """Mock POST requests to the given URL."""
        return self.mock("POST", url)

    def put(self, url: UrlMatcher | None = None) -> Mock:
        """Mock PUT requests to the given URL."""
        return self.mock("PUT", url)

    def patch(self, url: UrlMatcher | None = None) -> Mock:
        """Mock PATCH requests to the given URL."""
        return self.mock("PATCH", url)

    def delete(self, url: UrlMatcher | None = None) -> Mock:
        """Mock DELETE requests to the given URL."""
        return self.mock("DELETE", url)

    def head(self, url: UrlMatcher | None = None) -> Mock:
        """Mock HEAD requests to the given URL."""
        return self.mock("HEAD", url)

    def options(self, url: UrlMatcher | None = None) -> Mock:
        """Mock OPTIONS requests to the given URL."""
        return self.mock("OPTIONS", url)

    def strict(self, enabled: bool = True) -> Self:
        """Enable strict mode - unmatched requests will raise an error."""
        self._strict = enabled
        return self

    def get_requests(self) -> list[Request]:
        """Get all captured requests in all mocks."""
        return [request for mock in self._mocks for request in mock.get_requests()]

    def get_call_count(self) -> int:
        """Get the total number of calls in all mocks."""
        return sum(mock.get_call_count() for mock in self._mocks)

    def clear(self) -> None:
        """Remove all mocks."""
        self._mocks.clear()

    def reset_requests(self) -> None:
        """Reset all captured requests in all mocks."""
        for mock in self._mocks:
            mock.reset_requests()

    def _create_middleware(self) -> Middleware:
        async def mock_middleware(request: Request, transport: Transport, next_handler: Next) -> Response:
            if request.body is not None and request.body.is_stream:
                request.body = RequestBody.from_bytes(await request.body.read())

            for mock in self._mocks:
                if (response := await mock._handle(request)) is not None:
                    return response

            # No rule matched
            if self._strict:
                msg = f"No mock rule matched request: {request.method} {request.url}"
                raise AssertionError(msg)
            return await next_handler.run(request, transport)  # Proceed normally

        return as_middleware(mock_middleware)


def _normalize_url_matcher(url: UrlMatcher) -> Any:
    if isinstance(url, Url):
        return url_without_query(url)
    if isinstance(url, str) and "://" in url:
        return url_without_query(Url(url))
    return url


@pytest.fixture
def client_mocker(monkeypatch: pytest.MonkeyPatch) -> ClientMocker:
    """Fixture that provides a ClientMocker for mocking HTTP requests in tests.

    The mock middleware runs innermost, after all client and request middleware, in every client.
    """
    mocker = ClientMocker()
    middleware = mocker._create_middleware()
    orig_chain_middleware = Client._chain_middleware

    def chain_patch(self: Client, request_middleware: Any) -> tuple[Middleware, ...]:
        return (*orig_chain_middleware(self, request_middleware), middleware)

    monkeypatch.setattr(Client, "_chain_middleware", chain_patch)

    return mocker
