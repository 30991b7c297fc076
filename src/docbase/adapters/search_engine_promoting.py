"""
Search-engine-promoting adapter - the seam between document stores and
search engines.

- With a search engine configured: searches are answered by the engine;
  writes go to the inner store and are then mirrored into the engine
  (upserts for inserts/updates, deletes for deletes). Batches are
  forwarded whole and every document they touched is mirrored afterwards.
- Without one: searches the inner store cannot run natively (keyword
  filters on a store without full-text search) are degraded to a scan of
  the collection followed by in-process filtering, sorting and windowing.

Either way the same client code runs against both kinds of backend.
"""

import logging
from collections.abc import AsyncIterator, Callable
from dataclasses import replace

from docbase.database.document import Document
from docbase.database.query import Query, QueryResult
from docbase.database_adapter.base import AdapterCapabilities, DatabaseAdapter
from docbase.database_adapter.delegating import DelegatingDatabaseAdapter
from docbase.database_adapter.requests import (
    DocumentDeleteRequest,
    DocumentInsertRequest,
    DocumentReadRequest,
    DocumentSearchRequest,
    DocumentUpdateRequest,
    DocumentUpsertRequest,
    WriteBatchRequest,
)

logger = logging.getLogger(__name__)


def _recording(created: list[Document], callback: Callable[[Document], None] | None) -> Callable[[Document], None]:
    def on_document(document: Document) -> None:
        created.append(document)
        if callback is not None:
            callback(document)

    return on_document


class SearchEnginePromotingDatabaseAdapter(DelegatingDatabaseAdapter):
    """
    Args:
        inner: Document store holding the authoritative data
        search_engine: Adapter answering searches (None = scan fallback)
    """

    def __init__(self, inner: DatabaseAdapter, search_engine: DatabaseAdapter | None = None):
        super().__init__(inner)
        self.search_engine = search_engine

    @property
    def capabilities(self) -> AdapterCapabilities:
        max_reach = self.inner.capabilities.max_reach
        if self.search_engine is not None:
            max_reach = min(max_reach, self.search_engine.capabilities.max_reach)
        return AdapterCapabilities(
            max_reach=max_reach,
            full_text_search=True,
            atomic_batches=self.inner.capabilities.atomic_batches,
        )

    # Paging and bulk deletion go through this adapter's own search and
    # delete so they get promotion and mirroring.
    perform_document_search_chunked = DatabaseAdapter.perform_document_search_chunked
    perform_document_search_and_delete = DatabaseAdapter.perform_document_search_and_delete

    # =========================================================================
    # Search
    # =========================================================================

    async def perform_document_search(self, request: DocumentSearchRequest) -> AsyncIterator[QueryResult]:
        if self.search_engine is not None:
            async with request.delegate_to(self.search_engine) as stream:
                async for result in stream:
                    yield result
            return

        if request.query.uses_full_text() and not self.inner.capabilities.full_text_search:
            yield await self._scan(request)
            return

        async with request.delegate_to(self.inner) as stream:
            async for result in stream:
                yield result

    async def _scan(self, request: DocumentSearchRequest) -> QueryResult:
        logger.warning(
            f"No search engine for '{request.collection.collection_id}', "
            f"degrading keyword search to a scan"
        )
        everything = await replace(request, query=Query()).delegate_to(self.inner).last()
        return QueryResult(
            collection=request.collection,
            query=request.query,
            snapshots=request.query.apply(everything.snapshots),
        )

    # =========================================================================
    # Writes (mirrored into the search engine)
    # =========================================================================

    async def _mirror(self, document: Document) -> None:
        snapshot = await DocumentReadRequest(document=document).delegate_to(self.inner).first()
        if snapshot is None:
            await DocumentDeleteRequest(document=document).delegate_to(self.search_engine)
            return
        await DocumentUpsertRequest(
            collection=document.collection,
            document=document,
            data=snapshot.data,
        ).delegate_to(self.search_engine)

    async def perform_document_insert(self, request: DocumentInsertRequest) -> None:
        if self.search_engine is None:
            await request.delegate_to(self.inner)
            return

        created: list[Document] = []
        await replace(request, on_document=_recording(created, request.on_document)).delegate_to(self.inner)
        document = request.document or (created[0] if created else None)
        if document is not None:
            await DocumentUpsertRequest(
                collection=request.collection,
                document=document,
                data=request.data,
            ).delegate_to(self.search_engine)

    async def perform_document_upsert(self, request: DocumentUpsertRequest) -> None:
        await request.delegate_to(self.inner)
        if self.search_engine is not None:
            await request.delegate_to(self.search_engine)

    async def perform_document_update(self, request: DocumentUpdateRequest) -> None:
        await request.delegate_to(self.inner)
        if self.search_engine is not None:
            # Patches only carry changed fields; index the merged document
            await self._mirror(request.document)

    async def perform_document_delete(self, request: DocumentDeleteRequest) -> None:
        await request.delegate_to(self.inner)
        if self.search_engine is not None:
            await request.delegate_to(self.search_engine)

    async def perform_write_batch(self, request: WriteBatchRequest) -> None:
        if self.search_engine is None:
            await request.delegate_to(self.inner)
            return

        touched: list[Document] = []
        writes = []
        for write in request.writes:
            if isinstance(write, DocumentInsertRequest) and write.document is None:
                write = replace(write, on_document=_recording(touched, write.on_document))
            else:
                touched.append(write.document)
            writes.append(write)

        try:
            await replace(request, writes=tuple(writes)).delegate_to(self.inner)
        finally:
            # Mirror whatever the inner store now holds, including partial batches
            mirrored = set()
            for document in touched:
                if document.key not in mirrored:
                    mirrored.add(document.key)
                    await self._mirror(document)

    async def close(self) -> None:
        try:
            await self.inner.close()
        finally:
            if self.search_engine is not None:
                await self.search_engine.close()
