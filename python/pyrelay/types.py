"""Common types used in the library."""

from collections.abc import AsyncIterable, Iterable, Mapping, Sequence
from typing import Any

HeadersType = Mapping[str, str] | Sequence[tuple[str, str]]
QueryParams = Mapping[str, Any] | Sequence[tuple[str, Any]]
ExtensionsType = Mapping[str, Any] | Sequence[tuple[str, Any]]

# Request bodies may be streamed from sync or async iterables of bytes-like chunks
Stream = (
    AsyncIterable[bytes]
    | AsyncIterable[bytearray]
    | AsyncIterable[memoryview]
    | Iterable[bytes]
    | Iterable[bytearray]
    | Iterable[memoryview]
)
# Response bodies are buffered bytes or an async byte stream
ResponseBody = bytes | AsyncIterable[bytes]
