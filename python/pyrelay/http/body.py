from collections.abc import AsyncIterable, AsyncIterator
from typing import Self

from pyrelay.types import Stream


class RequestBody:
    """Body of a request. Either in-memory bytes or a stream that can be consumed once."""

    def __init__(self, content: bytes | None = None, stream: Stream | None = None) -> None:
        """Do not use directly. Instead, use from_bytes, from_text or from_stream."""
        if (content is None) == (stream is None):
            raise ValueError("Exactly one of content or stream is required")
        self._content = content
        self._stream = stream
        self._consumed = False

    @classmethod
    def from_bytes(cls, body: bytes | bytearray | memoryview) -> Self:
        return cls(content=bytes(body))

    @classmethod
    def from_text(cls, body: str) -> Self:
        return cls(content=body.encode())

    @classmethod
    def from_stream(cls, stream: Stream) -> Self:
        """Body from an async or sync iterable of bytes-like chunks. The stream is consumed when sent."""
        if isinstance(stream, bytes | bytearray | memoryview | str):
            raise TypeError("stream must be an iterable of bytes chunks, use from_bytes or from_text instead")
        return cls(stream=stream)

    def copy_bytes(self) -> bytes | None:
        """Return the in-memory body, or None for a streamed body."""
        return self._content

    def get_stream(self) -> Stream | None:
        """Return the stream of a streamed body, or None for an in-memory body."""
        return self._stream

    @property
    def is_stream(self) -> bool:
        return self._stream is not None

    def copy(self) -> Self:
        if self._stream is not None:
            raise RuntimeError("Cannot copy a streamed body")
        return type(self)(content=self._content)

    async def read(self) -> bytes:
        """Read the whole body. Consumes a streamed body."""
        if self._content is not None:
            return self._content
        return b"".join([chunk async for chunk in self])

    async def __aiter__(self) -> AsyncIterator[bytes]:
        if self._content is not None:
            if self._content:
                yield self._content
            return

        if self._consumed:
            raise RuntimeError("Body stream was already consumed")
        self._consumed = True

        stream = self._stream
        if isinstance(stream, AsyncIterable):
            async for chunk in stream:
                yield bytes(chunk)
        elif stream is not None:
            for chunk in stream:
                yield bytes(chunk)

    def __repr__(self) -> str:
        if self._content is not None:
            return f"RequestBody(len={len(self._content)})"
        return "RequestBody(stream)"
