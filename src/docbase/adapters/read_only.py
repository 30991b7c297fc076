"""Read-only adapter - forwards reads and searches, rejects every write."""

from docbase.database_adapter.delegating import DelegatingDatabaseAdapter
from docbase.database_adapter.requests import (
    DocumentDeleteRequest,
    DocumentInsertRequest,
    DocumentSearchAndDeleteRequest,
    DocumentUpdateRequest,
    DocumentUpsertRequest,
    Request,
    WriteBatchRequest,
)
from docbase.errors import CapabilityError


class ReadOnlyDatabaseAdapter(DelegatingDatabaseAdapter):
    def _reject(self, request: Request) -> CapabilityError:
        return CapabilityError(request.operation, f"'{request.operation}' rejected: adapter is read-only")

    async def perform_document_insert(self, request: DocumentInsertRequest) -> None:
        raise self._reject(request)

    async def perform_document_upsert(self, request: DocumentUpsertRequest) -> None:
        raise self._reject(request)

    async def perform_document_update(self, request: DocumentUpdateRequest) -> None:
        raise self._reject(request)

    async def perform_document_delete(self, request: DocumentDeleteRequest) -> None:
        raise self._reject(request)

    async def perform_document_search_and_delete(self, request: DocumentSearchAndDeleteRequest) -> int:
        raise self._reject(request)

    async def perform_write_batch(self, request: WriteBatchRequest) -> None:
        raise self._reject(request)
