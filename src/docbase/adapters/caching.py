"""
Caching adapter - serves document reads and searches from a local cache.

Cache keys:
- documents: (collection_id, partition_id, document_id)
- searches: (collection_id, partition_id or None, query)

Consistency rules:
- Reads and writes of the same document key are serialized by a per-key
  lock. A write invalidates its key before it returns, even if the inner
  write fails, so any read that starts afterwards misses the cache.
- Every write bumps the collection's generation. Reads and searches only
  store what they fetched if the generation did not move meanwhile.
- Write batches drop every cached entry of the collections they touch.
- Reads from an adapter with live reads are forwarded uncached.
- Cached entries satisfy requests with reach None or LOCAL. Requests for
  SERVER or GLOBAL reach bypass the cache and refresh it.
- Entries never expire unless `ttl` is given.
"""

import asyncio
import logging
import time
import weakref
from collections import defaultdict
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass, replace
from typing import Any

from docbase.database.document import Document
from docbase.database.query import QueryResult
from docbase.database.reach import Reach
from docbase.database.snapshot import Snapshot
from docbase.database_adapter.base import DatabaseAdapter
from docbase.database_adapter.delegating import DelegatingDatabaseAdapter
from docbase.database_adapter.requests import (
    DocumentDeleteRequest,
    DocumentInsertRequest,
    DocumentReadRequest,
    DocumentSearchAndDeleteRequest,
    DocumentSearchRequest,
    DocumentUpdateRequest,
    DocumentUpsertRequest,
    Request,
    WriteBatchRequest,
)

logger = logging.getLogger(__name__)

DocumentKey = tuple[str, str, str]


@dataclass
class _CacheEntry:
    value: Any
    expires_at: float | None


class CachingDatabaseAdapter(DelegatingDatabaseAdapter):
    """
    Args:
        inner: Adapter to cache
        ttl: Entry lifetime in seconds (None = no expiry)
        cache_searches: Also cache complete search results
        clock: Monotonic clock, replaceable in tests
    """

    def __init__(
        self,
        inner: DatabaseAdapter,
        ttl: float | None = None,
        cache_searches: bool = True,
        clock: Callable[[], float] = time.monotonic,
    ):
        super().__init__(inner)
        if ttl is not None and ttl <= 0:
            raise ValueError(f"ttl must be positive, got {ttl}")
        self.ttl = ttl
        self.cache_searches = cache_searches
        self._clock = clock
        self._documents: dict[DocumentKey, _CacheEntry] = {}
        self._searches: dict[tuple, _CacheEntry] = {}
        self._generations: defaultdict[str, int] = defaultdict(int)
        self._locks: weakref.WeakValueDictionary[DocumentKey, asyncio.Lock] = weakref.WeakValueDictionary()
        self.hits = 0
        self.misses = 0

    # =========================================================================
    # Cache bookkeeping
    # =========================================================================

    def _lock(self, key: DocumentKey) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    def _entry(self, value: Any) -> _CacheEntry:
        expires_at = None if self.ttl is None else self._clock() + self.ttl
        return _CacheEntry(value=value, expires_at=expires_at)

    def _fresh(self, entries: dict, key: Any) -> _CacheEntry | None:
        entry = entries.get(key)
        if entry is None:
            return None
        if entry.expires_at is not None and self._clock() >= entry.expires_at:
            del entries[key]
            return None
        return entry

    @staticmethod
    def _serves_cached(request: Request) -> bool:
        reach = getattr(request, "reach", None)
        return reach is None or reach <= Reach.LOCAL

    def _search_key(self, request: DocumentSearchRequest) -> tuple | None:
        if not self.cache_searches:
            return None
        partition_id = request.partition.partition_id if request.partition else None
        key = (request.collection.collection_id, partition_id, request.query)
        try:
            hash(key)
        except TypeError:
            # Filters holding unhashable values (e.g. list literals)
            return None
        return key

    def _invalidate_collection(self, collection_id: str, documents: bool = False) -> None:
        self._generations[collection_id] += 1
        for key in [k for k in self._searches if k[0] == collection_id]:
            del self._searches[key]
        if documents:
            for key in [k for k in self._documents if k[0] == collection_id]:
                del self._documents[key]

    def clear(self) -> None:
        for collection_id in list(self._generations):
            self._generations[collection_id] += 1
        self._documents.clear()
        self._searches.clear()

    async def _write(self, document: Document, request: Request) -> None:
        key = document.key
        self._invalidate_collection(document.collection_id)
        async with self._lock(key):
            try:
                await request.delegate_to(self.inner)
            finally:
                self._documents.pop(key, None)
                self._invalidate_collection(document.collection_id)

    # =========================================================================
    # Writes
    # =========================================================================

    async def perform_document_insert(self, request: DocumentInsertRequest) -> None:
        if request.document is not None:
            await self._write(request.document, request)
            return

        # Backend-assigned id: invalidate whatever key the backend reports
        created: list[Document] = []

        def on_document(document: Document) -> None:
            created.append(document)
            if request.on_document is not None:
                request.on_document(document)

        collection_id = request.collection.collection_id
        self._invalidate_collection(collection_id)
        try:
            await replace(request, on_document=on_document).delegate_to(self.inner)
        finally:
            for document in created:
                self._documents.pop(document.key, None)
            self._invalidate_collection(collection_id)

    async def perform_document_upsert(self, request: DocumentUpsertRequest) -> None:
        await self._write(request.document, request)

    async def perform_document_update(self, request: DocumentUpdateRequest) -> None:
        await self._write(request.document, request)

    async def perform_document_delete(self, request: DocumentDeleteRequest) -> None:
        await self._write(request.document, request)

    async def perform_write_batch(self, request: WriteBatchRequest) -> None:
        for collection_id in request.collection_ids:
            self._invalidate_collection(collection_id, documents=True)
        try:
            await request.delegate_to(self.inner)
        finally:
            for collection_id in request.collection_ids:
                self._invalidate_collection(collection_id, documents=True)

    async def perform_document_search_and_delete(self, request: DocumentSearchAndDeleteRequest) -> int:
        collection_id = request.collection.collection_id
        self._invalidate_collection(collection_id, documents=True)
        try:
            return await request.delegate_to(self.inner)
        finally:
            self._invalidate_collection(collection_id, documents=True)

    # =========================================================================
    # Reads
    # =========================================================================

    async def perform_document_read(self, request: DocumentReadRequest) -> AsyncIterator[Snapshot]:
        if self.inner.capabilities.live_reads:
            # Live streams are forwarded uncached
            async with request.delegate_to(self.inner) as stream:
                async for snapshot in stream:
                    yield snapshot
            return

        document = request.document
        key = document.key
        async with self._lock(key):
            entry = self._fresh(self._documents, key)
            if entry is not None and self._serves_cached(request):
                self.hits += 1
                logger.debug(f"Cache hit: {document}")
                snapshot = entry.value
            else:
                self.misses += 1
                logger.debug(f"Cache miss: {document}")
                generation = self._generations[document.collection_id]
                snapshot = await request.delegate_to(self.inner).first()
                if generation == self._generations[document.collection_id]:
                    self._documents[key] = self._entry(snapshot)

        if snapshot is not None:
            yield snapshot

    async def perform_document_search(self, request: DocumentSearchRequest) -> AsyncIterator[QueryResult]:
        key = self._search_key(request)
        if key is not None and self._serves_cached(request):
            entry = self._fresh(self._searches, key)
            if entry is not None:
                self.hits += 1
                logger.debug(f"Search cache hit: {request.collection.collection_id}")
                yield entry.value
                return

        self.misses += 1
        collection_id = request.collection.collection_id
        generation = self._generations[collection_id]
        last: QueryResult | None = None
        async with request.delegate_to(self.inner) as stream:
            async for result in stream:
                last = result
                yield result

        if key is not None and last is not None and generation == self._generations[collection_id]:
            self._searches[key] = self._entry(last)
