"""
Database Adapter Capability.

A DatabaseAdapter implements one `perform_*` method per request kind.
Terminal adapters talk to a real backend; decorating adapters (see
delegating.py) wrap exactly one inner adapter and forward by default.

Every operation a given adapter does not implement fails immediately with
CapabilityError. Three operations have generic implementations built on
the others:
- perform_document_search_chunked: page-by-page search
- perform_document_search_and_delete: chunked search, then one delete per match
- perform_write_batch: the writes one by one (non-atomic batches only)
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING

from docbase.database.query import QueryResult
from docbase.database.reach import Reach
from docbase.database_adapter.requests import (
    DocumentDeleteRequest,
    DocumentInsertRequest,
    DocumentReadRequest,
    DocumentSearchAndDeleteRequest,
    DocumentSearchChunkedRequest,
    DocumentSearchRequest,
    DocumentUpdateRequest,
    DocumentUpsertRequest,
    Request,
    SchemaReadRequest,
    WriteBatchRequest,
)
from docbase.errors import CapabilityError

if TYPE_CHECKING:
    from docbase.database.database import Database
    from docbase.database.schema import CollectionSchema
    from docbase.database.snapshot import Snapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AdapterCapabilities:
    """
    What an adapter chain can offer.

    Attributes:
        max_reach: Strongest Reach the adapter can guarantee
        full_text_search: Whether KeywordFilter queries are supported natively
        live_reads: Whether read streams keep emitting after the first snapshot
        atomic_batches: Whether write batches can be applied all-or-nothing
    """

    max_reach: Reach = Reach.GLOBAL
    full_text_search: bool = False
    live_reads: bool = False
    atomic_batches: bool = False


class DatabaseAdapter:
    """Base class for terminal and decorating adapters."""

    capabilities: AdapterCapabilities = AdapterCapabilities()

    def database(self) -> Database:
        """Return a Database facade bound to this adapter."""
        from docbase.database.database import Database

        return Database(self)

    def check_reach(self, request: Request) -> None:
        """Reject requests asking for more than this adapter can guarantee."""
        reach = getattr(request, "reach", None)
        if reach is not None and reach > self.capabilities.max_reach:
            raise CapabilityError(
                request.operation,
                f"{type(self).__name__} cannot guarantee reach {reach.name} "
                f"(max {self.capabilities.max_reach.name})",
                reach=reach,
            )

    def _unsupported(self, request: Request) -> CapabilityError:
        return CapabilityError(
            request.operation,
            f"{type(self).__name__} does not implement '{request.operation}'",
        )

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    async def perform_document_insert(self, request: DocumentInsertRequest) -> None:
        raise self._unsupported(request)

    async def perform_document_upsert(self, request: DocumentUpsertRequest) -> None:
        raise self._unsupported(request)

    async def perform_document_update(self, request: DocumentUpdateRequest) -> None:
        raise self._unsupported(request)

    async def perform_document_delete(self, request: DocumentDeleteRequest) -> None:
        raise self._unsupported(request)

    async def perform_write_batch(self, request: WriteBatchRequest) -> None:
        """Apply the writes in order. Atomic batches need an adapter that overrides this."""
        if request.atomic:
            raise CapabilityError(
                request.operation,
                f"{type(self).__name__} cannot apply a write batch atomically",
            )
        self.check_reach(request)
        for write in request.writes:
            await write.delegate_to(self)
        logger.debug(f"Applied {len(request.writes)} batched writes one by one")

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def perform_document_read(self, request: DocumentReadRequest) -> AsyncIterator[Snapshot]:
        raise self._unsupported(request)

    def perform_document_search(self, request: DocumentSearchRequest) -> AsyncIterator[QueryResult]:
        raise self._unsupported(request)

    def perform_schema_read(
        self, request: SchemaReadRequest
    ) -> AsyncIterator[Mapping[str, CollectionSchema]]:
        raise self._unsupported(request)

    async def perform_document_search_chunked(
        self, request: DocumentSearchChunkedRequest
    ) -> AsyncIterator[QueryResult]:
        """
        Fetch the query window one page at a time.

        Yields cumulative results: each emission holds every snapshot fetched
        so far, and the last one is the complete result. Pages are requested
        only as the consumer advances, so closing the stream stops fetching.
        Paging is only stable when the query has a sorter.
        """
        query = request.query
        skip = query.skip
        remaining = query.take
        collected: list[Snapshot] = []

        while True:
            page_size = request.chunk_size if remaining is None else min(request.chunk_size, remaining)
            page_query = query.with_window(skip, page_size)
            page = await request.as_search(page_query).delegate_to(self).last()
            collected.extend(page.snapshots)
            yield QueryResult(
                collection=request.collection,
                query=query,
                snapshots=collected,
            )

            if len(page) < page_size:
                break
            skip += len(page)
            if remaining is not None:
                remaining -= len(page)
                if remaining <= 0:
                    break

    async def perform_document_search_and_delete(
        self, request: DocumentSearchAndDeleteRequest
    ) -> int:
        """Delete every match of a chunked search, one delete per document."""
        result = await request.as_chunked_search().delegate_to(self).last()
        for snapshot in result.snapshots:
            await DocumentDeleteRequest(
                document=snapshot.document,
                reach=request.reach,
            ).delegate_to(self)
        logger.info(f"Deleted {len(result)} documents from '{request.collection.collection_id}'")
        return len(result)

    async def close(self) -> None:
        """Release backend resources. Terminal adapters override as needed."""
