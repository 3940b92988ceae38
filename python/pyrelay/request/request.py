from typing import Any, Self

from pyrelay.http import HeaderMap, Method, RequestBody, Url, UrlType, parse_url
from pyrelay.http.types import normalize_method
from pyrelay.types import ExtensionsType, HeadersType


class Request:
    """HTTP request as seen by middleware and transports.

    A request is handed down the middleware chain by argument passing. Whoever holds it may mutate it before
    forwarding it. Use `copy()` to forward independent requests, for example when calling the next handler twice.
    """

    def __init__(
        self,
        method: Method | str,
        url: UrlType,
        *,
        headers: HeadersType | None = None,
        body: RequestBody | None = None,
        extensions: ExtensionsType | None = None,
    ) -> None:
        self.method = method
        self.url = url
        self.headers = headers if isinstance(headers, HeaderMap) else HeaderMap(headers)
        self.body = body
        self.extensions: dict[str, Any] = dict(extensions or {})

    @property
    def method(self) -> str:
        return self._method

    @method.setter
    def method(self, method: Method | str) -> None:
        self._method = normalize_method(method)

    @property
    def url(self) -> Url:
        return self._url

    @url.setter
    def url(self, url: UrlType) -> None:
        self._url = parse_url(url)

    def copy(self) -> Self:
        """Copy the request. Fails with RuntimeError when the body is a stream."""
        return type(self)(
            self.method,
            self.url,
            headers=self.headers.copy(),
            body=self.body.copy() if self.body is not None else None,
            extensions=self.extensions.copy(),
        )

    def __copy__(self) -> Self:
        return self.copy()

    def __repr__(self) -> str:
        return f"<Request {self.method} {self.url}>"

    def repr_full(self) -> str:
        headers = ", ".join(f"{name}: {value}" for name, value in self.headers.items())
        return f"<Request {self.method} {self.url} headers=[{headers}] body={self.body!r}>"
