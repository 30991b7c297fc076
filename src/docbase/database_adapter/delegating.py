"""
Delegating adapter - base for decorators in an adapter chain.

A decorating adapter owns exactly one inner adapter and forwards every
request to it unchanged. Subclasses override only the operations they
transform. Forwarding holds no per-call state, so one chain may serve
concurrent requests.
"""

from collections.abc import AsyncIterator, Mapping

from docbase.database.query import QueryResult
from docbase.database.snapshot import Snapshot
from docbase.database_adapter.base import AdapterCapabilities, DatabaseAdapter
from docbase.database_adapter.requests import (
    DocumentDeleteRequest,
    DocumentInsertRequest,
    DocumentReadRequest,
    DocumentSearchAndDeleteRequest,
    DocumentSearchChunkedRequest,
    DocumentSearchRequest,
    DocumentUpdateRequest,
    DocumentUpsertRequest,
    SchemaReadRequest,
    WriteBatchRequest,
)


class DelegatingDatabaseAdapter(DatabaseAdapter):
    """Forwards every operation to `inner`."""

    def __init__(self, inner: DatabaseAdapter):
        if inner is None:
            raise ValueError("A decorating adapter needs an inner adapter")
        self.inner = inner

    @property
    def capabilities(self) -> AdapterCapabilities:
        return self.inner.capabilities

    async def perform_document_insert(self, request: DocumentInsertRequest) -> None:
        await request.delegate_to(self.inner)

    async def perform_document_upsert(self, request: DocumentUpsertRequest) -> None:
        await request.delegate_to(self.inner)

    async def perform_document_update(self, request: DocumentUpdateRequest) -> None:
        await request.delegate_to(self.inner)

    async def perform_document_delete(self, request: DocumentDeleteRequest) -> None:
        await request.delegate_to(self.inner)

    async def perform_write_batch(self, request: WriteBatchRequest) -> None:
        await request.delegate_to(self.inner)

    def perform_document_read(self, request: DocumentReadRequest) -> AsyncIterator[Snapshot]:
        return request.delegate_to(self.inner)

    def perform_document_search(self, request: DocumentSearchRequest) -> AsyncIterator[QueryResult]:
        return request.delegate_to(self.inner)

    def perform_document_search_chunked(
        self, request: DocumentSearchChunkedRequest
    ) -> AsyncIterator[QueryResult]:
        return request.delegate_to(self.inner)

    async def perform_document_search_and_delete(
        self, request: DocumentSearchAndDeleteRequest
    ) -> int:
        return await request.delegate_to(self.inner)

    def perform_schema_read(self, request: SchemaReadRequest) -> AsyncIterator[Mapping]:
        return request.delegate_to(self.inner)

    async def close(self) -> None:
        await self.inner.close()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.inner!r})"
