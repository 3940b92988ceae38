"""HTTP utils classes and types."""

from pyrelay.http.body import RequestBody
from pyrelay.http.headers import HeaderMap, HeaderMapItemsView, HeaderMapKeysView, HeaderMapValuesView
from pyrelay.http.types import Method
from pyrelay.http.url import Url, UrlType, parse_url

__all__ = [
    "HeaderMap",
    "HeaderMapItemsView",
    "HeaderMapKeysView",
    "HeaderMapValuesView",
    "Method",
    "RequestBody",
    "Url",
    "UrlType",
    "parse_url",
]
