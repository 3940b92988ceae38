import re
from enum import StrEnum

from pyrelay.exceptions import BuilderError

_TOKEN_RE = re.compile(r"[!#$%&'*+\-.^_`|~0-9A-Za-z]+")


class Method(StrEnum):
    GET = "GET"
    HEAD = "HEAD"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    CONNECT = "CONNECT"
    OPTIONS = "OPTIONS"
    TRACE = "TRACE"
    PATCH = "PATCH"


def normalize_method(method: Method | str) -> str:
    if not isinstance(method, str):
        raise TypeError(f"method must be str, not {type(method).__name__!r}")
    if not _TOKEN_RE.fullmatch(method):
        raise BuilderError("invalid HTTP method", {"method": method})
    return str(method).upper()
