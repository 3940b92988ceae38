import re
from re import Pattern
from typing import TYPE_CHECKING, Any

import orjson

from pyrelay.http import Url
from pyrelay.request import Request

if TYPE_CHECKING:
    from pyrelay.pytest_plugin.mock import Mock


class InternalMatcher:
    """Matches a value against a string, a compiled regex, a set of alternatives or any object with __eq__."""

    def __init__(self, matcher: Any) -> None:
        self.matcher = str(matcher) if isinstance(matcher, Url) else matcher

    def matches(self, value: Any) -> bool:
        if isinstance(self.matcher, Pattern):
            return isinstance(value, str) and self.matcher.fullmatch(value) is not None
        if isinstance(self.matcher, set):
            return value in self.matcher
        return bool(self.matcher == value)

    def __str__(self) -> str:
        if isinstance(self.matcher, Pattern):
            return f"{self.matcher.pattern} (regex)"
        if isinstance(self.matcher, set):
            return " or ".join(sorted(self.matcher))
        return str(self.matcher)


def url_without_query(url: Url | str) -> str:
    return str(url).split("#", 1)[0].split("?", 1)[0]


def format_request(request: Request) -> str:
    return f"{request.method} {request.url}"


def format_assert_called_error(
    mock: "Mock",
    *,
    count: int | None = None,
    min_count: int | None = None,
    max_count: int | None = None,
) -> str:
    actual_count = len(mock._matched_requests)
    error_parts = ["Mock was not called as expected."]

    if count is not None:
        error_parts.append(f"Expected exactly {count} call(s), but got {actual_count}.")
    else:
        expectations = []
        if min_count is not None:
            expectations.append(f"at least {min_count}")
        if max_count is not None:
            expectations.append(f"at most {max_count}")
        expected_desc = " and ".join(expectations)
        error_parts.append(f"Expected {expected_desc} call(s), but got {actual_count}.")

    error_parts.append("\nMock configuration:")
    error_parts.append(_format_mock_matchers(mock))

    if mock._unmatched_requests_repr:
        error_parts.append(f"\nUnmatched requests ({len(mock._unmatched_requests_repr)}):")
        for i, request_repr in enumerate(mock._unmatched_requests_repr[-5:], 1):
            error_parts.append(f"  {i}. {request_repr}")
        if len(mock._unmatched_requests_repr) > 5:
            error_parts.append(f"  ... and {len(mock._unmatched_requests_repr) - 5} more")

    if mock._matched_requests:
        error_parts.append(f"\nMatched requests ({len(mock._matched_requests)}):")
        for i, request in enumerate(mock._matched_requests[-3:], 1):
            error_parts.append(f"  {i}. {request.repr_full()}")
        if len(mock._matched_requests) > 3:
            error_parts.append(f"  ... and {len(mock._matched_requests) - 3} more")

    return "\n".join(error_parts)


def format_unmatched_request(request: Request, unmatched: set[str]) -> str:
    reasons = ", ".join(sorted(unmatched))
    return f"{format_request(request)} (unmatched: {reasons})" if reasons else format_request(request)


def _format_mock_matchers(mock: "Mock") -> str:
    parts = [
        f"  Method: {mock._method_matcher or 'Any'}",
        f"  URL: {mock._url_matcher or 'Any'}",
    ]

    if mock._query_matcher is not None:
        if isinstance(mock._query_matcher, dict):
            query_parts = [f"{k}={v}" for k, v in mock._query_matcher.items()]
            parts.append(f"  Query: {', '.join(query_parts)}")
        else:
            parts.append(f"  Query: {mock._query_matcher}")

    if mock._header_matchers:
        header_parts = [f"{name}: {value}" for name, value in mock._header_matchers.items()]
        parts.append(f"  Headers: {', '.join(header_parts)}")

    if mock._body_matcher is not None:
        matcher, kind = mock._body_matcher
        if kind == "json":
            value = matcher.matcher
            shown = orjson.dumps(value).decode() if _is_plain_json(value) else repr(value)
            parts.append(f"  Body (JSON): {shown}")
        elif isinstance(matcher.matcher, bytes):
            parts.append(f"  Body (bytes): {matcher.matcher!r}")
        elif isinstance(matcher.matcher, re.Pattern):
            parts.append(f"  Body (text): {matcher}")
        else:
            parts.append(f"  Body (text): {matcher.matcher!r}")

    if mock._custom_matcher is not None:
        parts.append(f"  Custom matcher: {mock._custom_matcher.__name__}")

    if mock._custom_handler is not None:
        parts.append(f"  Custom handler: {mock._custom_handler.__name__}")

    return "\n".join(parts)


def _is_plain_json(value: Any) -> bool:
    if isinstance(value, dict):
        return all(isinstance(k, str) and _is_plain_json(v) for k, v in value.items())
    if isinstance(value, list):
        return all(_is_plain_json(v) for v in value)
    return value is None or isinstance(value, str | int | float | bool)
