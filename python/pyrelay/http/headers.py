import re
from collections.abc import ItemsView, Iterator, KeysView, Mapping, MutableMapping, ValuesView
from typing import Any, Self, TypeVar, overload

import httpx

from pyrelay.exceptions import BuilderError
from pyrelay.types import HeadersType

_T = TypeVar("_T")

_NAME_RE = re.compile(r"[!#$%&'*+\-.^_`|~0-9A-Za-z]+")
_VALUE_RE = re.compile(r"[\t\x20-\x7e\x80-\xff]*")

# Header bytes are opaque octets, ISO-8859-1 maps each one to a single character
_ENCODING = "iso-8859-1"

_MISSING: Any = object()


def _check_name(name: str) -> str:
    if not isinstance(name, str):
        raise TypeError(f"header name must be str, not {type(name).__name__!r}")
    if not _NAME_RE.fullmatch(name):
        raise BuilderError("invalid HTTP header name", {"name": name})
    return name.lower()


def _check_value(value: str) -> str:
    if not isinstance(value, str):
        raise TypeError(f"header value must be str, not {type(value).__name__!r}")
    if not _VALUE_RE.fullmatch(value):
        raise BuilderError("failed to parse header value", {"value": value})
    return value


class HeaderMapItemsView(ItemsView[str, str]):
    """All (name, value) pairs, duplicates included, in insertion order."""

    _mapping: "HeaderMap"

    def __len__(self) -> int:
        return self._mapping.len()

    def __iter__(self) -> Iterator[tuple[str, str]]:
        return iter(self._mapping._headers.multi_items())

    def __contains__(self, item: object) -> bool:
        if not isinstance(item, tuple) or len(item) != 2:
            return False
        name, value = item
        return isinstance(name, str) and (name.lower(), value) in self._mapping._headers.multi_items()

    def __eq__(self, other: object) -> bool:
        if isinstance(other, HeaderMapItemsView):
            return list(self) == list(other)
        if isinstance(other, list | tuple):
            return list(self) == [(k.lower(), v) for k, v in other]
        return NotImplemented


class HeaderMapKeysView(KeysView[str]):
    """Unique header names in order of first appearance."""

    def __eq__(self, other: object) -> bool:
        if isinstance(other, KeysView | list | tuple):
            return list(self) == [k.lower() for k in other]
        return NotImplemented


class HeaderMapValuesView(ValuesView[str]):
    """All header values, duplicates included."""

    _mapping: "HeaderMap"

    def __len__(self) -> int:
        return self._mapping.len()

    def __iter__(self) -> Iterator[str]:
        return iter([value for _, value in self._mapping._headers.multi_items()])

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ValuesView | list | tuple):
            return list(self) == list(other)
        return NotImplemented


class HeaderMap(MutableMapping[str, str]):
    """Ordered multi-map of HTTP headers with case-insensitive names, stored in `httpx.Headers`.

    Names are lower-cased. Item access works on the first value of a name, setting an item replaces all of its
    values. Use `append` and `getall` to work with repeated headers. An `httpx.Headers` given to the constructor is
    copied as is, without validation.
    """

    def __init__(self, other: HeadersType | httpx.Headers | None = None) -> None:
        if isinstance(other, httpx.Headers):
            self._headers = httpx.Headers(other.raw, encoding=_ENCODING)
            return
        self._headers = httpx.Headers(encoding=_ENCODING)
        if other is not None:
            self.extend(other)

    def __len__(self) -> int:
        return self.keys_len()

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._headers.keys()))

    def __getitem__(self, key: str, /) -> str:
        if values := self.getall(key):
            return values[0]
        raise KeyError(key)

    def __setitem__(self, key: str, value: str, /) -> None:
        self.insert(key, value)

    def __delitem__(self, key: str, /) -> None:
        if not self.popall(key, []):
            raise KeyError(key)

    def __contains__(self, key: object) -> bool:
        return bool(self.getall(key))  # type: ignore[arg-type]

    def items(self) -> HeaderMapItemsView:  # type: ignore[override]
        return HeaderMapItemsView(self)

    def keys(self) -> HeaderMapKeysView:  # type: ignore[override]
        return HeaderMapKeysView(self)

    def values(self) -> HeaderMapValuesView:  # type: ignore[override]
        return HeaderMapValuesView(self)

    def len(self) -> int:
        """Total number of values, counting repeated headers."""
        return len(self._headers)

    def keys_len(self) -> int:
        """Number of unique header names."""
        return len(self._headers.keys())

    def getall(self, key: str) -> list[str]:
        """All values of a header in insertion order."""
        if not isinstance(key, str):
            return []
        try:
            return self._headers.get_list(key)
        except UnicodeEncodeError:
            return []

    def insert(self, key: str, value: str) -> list[str]:
        """Set a header, replacing existing values. Returns the replaced values."""
        name, value = _check_name(key), _check_value(value)
        previous = self.getall(name)
        self._headers[name] = value
        return previous

    def append(self, key: str, value: str) -> bool:
        """Add a value keeping existing ones. Returns whether the header already existed."""
        name, value = _check_name(key), _check_value(value)
        existed = name in self._headers
        self._headers = httpx.Headers(
            [*self._headers.raw, (name.encode(_ENCODING), value.encode(_ENCODING))], encoding=_ENCODING
        )
        return existed

    def extend(self, other: HeadersType) -> None:
        """Append all headers from a mapping or a sequence of pairs."""
        pairs = list(other.items()) if isinstance(other, Mapping) else list(other)
        for pair in pairs:
            if not isinstance(pair, tuple | list) or len(pair) != 2:
                raise TypeError(f"headers must be (name, value) pairs, got {pair!r}")
            self.append(pair[0], pair[1])

    @overload
    def popall(self, key: str) -> list[str]: ...
    @overload
    def popall(self, key: str, /, default: _T) -> list[str] | _T: ...
    def popall(self, key: str, /, default: Any = _MISSING) -> Any:
        """Remove all values of a header and return them."""
        values = self.getall(key)
        if not values:
            if default is _MISSING:
                raise KeyError(key)
            return default
        del self._headers[key]
        return values

    def dict_multi_value(self) -> dict[str, str | list[str]]:
        """Dict where repeated headers become a list of values."""
        result: dict[str, str | list[str]] = {}
        for name in self:
            values = self.getall(name)
            result[name] = values[0] if len(values) == 1 else values
        return result

    def to_httpx(self) -> httpx.Headers:
        """Copy of the headers as `httpx.Headers`."""
        return self._headers.copy()

    def copy(self) -> Self:
        new = type(self)()
        new._headers = self._headers.copy()
        return new

    def __copy__(self) -> Self:
        return self.copy()

    def __eq__(self, other: object) -> bool:
        if isinstance(other, HeaderMap):
            return self._headers.multi_items() == other._headers.multi_items()
        if isinstance(other, Mapping):
            return self.dict_multi_value() == {k.lower(): v for k, v in other.items()}
        return NotImplemented

    def __repr__(self) -> str:
        return f"HeaderMap({self._headers.multi_items()!r})"
