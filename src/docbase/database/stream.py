"""
ResultStream - lazily produced results with an explicit cancellation contract.

Read and search operations return a ResultStream. Consumers either iterate
it to the end or close it (aclose(), `async with`, or one of the helpers);
closing propagates upstream so the producer stops and releases any held
backend resources instead of completing work that would be discarded.

    async with document.read_incrementally() as stream:
        async for snapshot in stream:
            ...
"""

from collections.abc import AsyncIterator
from typing import Generic, TypeVar

T = TypeVar("T")

_MISSING = object()


class ResultStream(Generic[T]):
    """Async iterator over adapter output with explicit close semantics."""

    def __init__(self, source: AsyncIterator[T]):
        self._source = source
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def __aiter__(self) -> "ResultStream[T]":
        return self

    async def __anext__(self) -> T:
        if self._closed:
            raise StopAsyncIteration
        try:
            return await self._source.__anext__()
        except StopAsyncIteration:
            await self.aclose()
            raise

    async def aclose(self) -> None:
        """Stop the producer and release its resources. Idempotent."""
        if self._closed:
            return
        self._closed = True
        aclose = getattr(self._source, "aclose", None)
        if aclose is not None:
            await aclose()

    async def __aenter__(self) -> "ResultStream[T]":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def first(self) -> T | None:
        """Return the first item (None if the stream is empty) and close."""
        async with self:
            async for item in self:
                return item
        return None

    async def last(self) -> T:
        """Drain the stream and return its final item."""
        result = _MISSING
        async with self:
            async for item in self:
                result = item
        if result is _MISSING:
            raise LookupError("Stream completed without producing a result")
        return result

    async def to_list(self) -> list[T]:
        async with self:
            return [item async for item in self]
