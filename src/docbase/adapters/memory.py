"""
Memory adapter - in-process terminal adapter.

Keeps documents in dictionaries and evaluates queries with Query.apply().
Used for tests, local development and as a local store under a cache.
"""

import asyncio
import copy
import logging
from collections.abc import AsyncIterator, Mapping
from typing import Any

from docbase.database.document import Document, new_document_id
from docbase.database.query import QueryResult
from docbase.database.reach import Reach
from docbase.database.schema import CollectionSchema
from docbase.database.snapshot import Snapshot
from docbase.database_adapter.base import AdapterCapabilities, DatabaseAdapter
from docbase.database_adapter.requests import (
    DocumentDeleteRequest,
    DocumentInsertRequest,
    DocumentReadRequest,
    DocumentSearchAndDeleteRequest,
    DocumentSearchRequest,
    DocumentUpdateRequest,
    DocumentUpsertRequest,
    SchemaReadRequest,
    WriteBatchRequest,
)
from docbase.errors import BackendError, CapabilityError, NotFoundError

logger = logging.getLogger(__name__)

# (partition_id, document_id) -> data
_Store = dict[tuple[str, str], dict[str, Any]]


class MemoryDatabaseAdapter(DatabaseAdapter):
    """
    In-memory terminal adapter.

    Args:
        schemas: Schemas reported by schema reads, keyed by collection id
        full_text_search: Support KeywordFilter natively (CapabilityError if False)
        max_reach: Strongest reach this store claims to guarantee
        strict_delete: Delete policy. False: deleting an absent document is
            a no-op. True: it raises NotFoundError.
        latency: Seconds to sleep in every operation (simulated I/O)
    """

    def __init__(
        self,
        schemas: Mapping[str, CollectionSchema] | None = None,
        full_text_search: bool = True,
        max_reach: Reach = Reach.GLOBAL,
        strict_delete: bool = False,
        latency: float = 0.0,
    ):
        self._collections: dict[str, _Store] = {}
        self._schemas = dict(schemas or {})
        self.capabilities = AdapterCapabilities(
            max_reach=max_reach,
            full_text_search=full_text_search,
            atomic_batches=True,
        )
        self.strict_delete = strict_delete
        self.latency = latency

    def _store(self, collection_id: str) -> _Store:
        return self._collections.setdefault(collection_id, {})

    async def _io(self) -> None:
        await asyncio.sleep(self.latency)

    # =========================================================================
    # Writes
    # =========================================================================

    @staticmethod
    def _insert(store: _Store, document: Document, data: Mapping[str, Any]) -> None:
        key = (document.partition_id, document.document_id)
        if key in store:
            raise BackendError(
                "Document already exists",
                method="insert",
                address=str(document),
                status="conflict",
            )
        store[key] = copy.deepcopy(dict(data))

    @staticmethod
    def _update(store: _Store, document: Document, data: Mapping[str, Any], is_patch: bool) -> None:
        key = (document.partition_id, document.document_id)
        if key not in store:
            raise NotFoundError(str(document))
        data = copy.deepcopy(dict(data))
        store[key] = {**store[key], **data} if is_patch else data

    def _delete(self, store: _Store, document: Document) -> None:
        removed = store.pop((document.partition_id, document.document_id), None)
        if removed is None and self.strict_delete:
            raise NotFoundError(str(document))

    async def perform_document_insert(self, request: DocumentInsertRequest) -> None:
        self.check_reach(request)
        await self._io()

        document = request.document or request.partition.document(new_document_id())
        self._insert(self._store(document.collection_id), document, request.data)

        if request.on_document is not None:
            request.on_document(document)

    async def perform_document_upsert(self, request: DocumentUpsertRequest) -> None:
        self.check_reach(request)
        await self._io()

        document = request.document
        store = self._store(document.collection_id)
        store[(document.partition_id, document.document_id)] = copy.deepcopy(dict(request.data))

    async def perform_document_update(self, request: DocumentUpdateRequest) -> None:
        self.check_reach(request)
        await self._io()

        document = request.document
        self._update(self._store(document.collection_id), document, request.data, request.is_patch)

    async def perform_document_delete(self, request: DocumentDeleteRequest) -> None:
        self.check_reach(request)
        await self._io()

        document = request.document
        self._delete(self._store(document.collection_id), document)

    async def perform_write_batch(self, request: WriteBatchRequest) -> None:
        """
        Apply a batch all-or-nothing.

        Writes go to copies of the affected collections, which replace the
        live ones only after every write succeeded. Non-atomic batches get
        the same treatment.
        """
        self.check_reach(request)
        await self._io()

        staged: dict[str, _Store] = {}
        inserted: list[tuple[DocumentInsertRequest, Document]] = []
        for write in request.writes:
            self.check_reach(write)
            collection_id = write.collection.collection_id
            if collection_id not in staged:
                staged[collection_id] = dict(self._store(collection_id))
            store = staged[collection_id]

            match write:
                case DocumentInsertRequest():
                    document = write.document or write.partition.document(new_document_id())
                    self._insert(store, document, write.data)
                    inserted.append((write, document))
                case DocumentUpsertRequest():
                    document = write.document
                    store[(document.partition_id, document.document_id)] = copy.deepcopy(dict(write.data))
                case DocumentUpdateRequest():
                    self._update(store, write.document, write.data, write.is_patch)
                case DocumentDeleteRequest():
                    self._delete(store, write.document)

        self._collections.update(staged)
        for write, document in inserted:
            if write.on_document is not None:
                write.on_document(document)
        logger.debug(f"Committed a batch of {len(request.writes)} writes")

    # =========================================================================
    # Reads
    # =========================================================================

    async def perform_document_read(self, request: DocumentReadRequest) -> AsyncIterator[Snapshot]:
        self.check_reach(request)
        await self._io()

        document = request.document
        data = self._store(document.collection_id).get(
            (document.partition_id, document.document_id)
        )
        if data is not None:
            yield Snapshot(document=document, data=data)

    def _matching(self, request: DocumentSearchRequest | DocumentSearchAndDeleteRequest) -> list[Snapshot]:
        if request.query.uses_full_text() and not self.capabilities.full_text_search:
            raise CapabilityError(
                request.operation,
                "Keyword search is not supported by this memory adapter",
            )

        collection = request.collection
        partition_id = request.partition.partition_id if request.partition else None
        snapshots = [
            Snapshot(
                document=Document(collection.partition(pid), did),
                data=data,
            )
            for (pid, did), data in self._store(collection.collection_id).items()
            if partition_id is None or pid == partition_id
        ]
        return request.query.apply(snapshots)

    async def perform_document_search(self, request: DocumentSearchRequest) -> AsyncIterator[QueryResult]:
        self.check_reach(request)
        await self._io()

        yield QueryResult(
            collection=request.collection,
            query=request.query,
            snapshots=self._matching(request),
        )

    async def perform_document_search_and_delete(self, request: DocumentSearchAndDeleteRequest) -> int:
        self.check_reach(request)
        await self._io()

        matches = self._matching(request)
        store = self._store(request.collection.collection_id)
        for snapshot in matches:
            store.pop((snapshot.document.partition_id, snapshot.document.document_id), None)
        logger.info(f"Bulk-deleted {len(matches)} documents from '{request.collection.collection_id}'")
        return len(matches)

    async def perform_schema_read(self, request: SchemaReadRequest) -> AsyncIterator[Mapping[str, CollectionSchema]]:
        self.check_reach(request)
        await self._io()

        if request.collection is None:
            yield dict(self._schemas)
            return
        collection_id = request.collection.collection_id
        schema = self._schemas.get(collection_id)
        yield {collection_id: schema} if schema is not None else {}

    def __repr__(self) -> str:
        return f"MemoryDatabaseAdapter(collections={len(self._collections)})"
