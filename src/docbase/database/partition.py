"""
Partition - a named subdivision of a collection.

Documents live in exactly one partition; the partition is the level at
which Reach (read-your-writes consistency) is negotiated with the backend.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from docbase.database.document import Document, new_document_id
from docbase.database.query import Query, QueryResult
from docbase.database.reach import Reach
from docbase.database.stream import ResultStream
from docbase.database_adapter.requests import (
    DocumentInsertRequest,
    DocumentSearchAndDeleteRequest,
    DocumentSearchChunkedRequest,
    DocumentSearchRequest,
    DocumentUpsertRequest,
    SchemaReadRequest,
)
from docbase.errors import BackendError

if TYPE_CHECKING:
    from docbase.database.collection import Collection
    from docbase.database.database import Database
    from docbase.database.schema import CollectionSchema


class SearchMethods:
    """
    Search operations shared by Collection (all partitions) and Partition.

    Subclasses provide `_search_scope()` -> (collection, partition or None).
    """

    database: Database

    def _search_scope(self) -> tuple[Collection, Partition | None]:
        raise NotImplementedError

    async def search(self, query: Query | None = None, reach: Reach | None = None) -> QueryResult:
        """
        Search documents.

        Shorthand for the last (complete) result of search_incrementally().
        """
        return await self.search_incrementally(query, reach).last()

    def search_incrementally(
        self,
        query: Query | None = None,
        reach: Reach | None = None,
    ) -> ResultStream[QueryResult]:
        """
        Search documents, streaming results that grow until complete.

        Result sizes never decrease and the final result equals search().
        """
        collection, partition = self._search_scope()
        return DocumentSearchRequest(
            collection=collection,
            partition=partition,
            query=query or Query(),
            reach=self.database.resolve_reach(reach),
        ).delegate_to(self.database.adapter)

    def search_chunked(
        self,
        query: Query | None = None,
        reach: Reach | None = None,
        chunk_size: int | None = None,
    ) -> ResultStream[QueryResult]:
        """
        Search documents, fetching `chunk_size` snapshots per backend call.

        Each emitted result holds everything fetched so far. Closing the
        stream early stops further fetches.
        """
        collection, partition = self._search_scope()
        return DocumentSearchChunkedRequest(
            collection=collection,
            partition=partition,
            query=query or Query(),
            reach=self.database.resolve_reach(reach),
            chunk_size=self.database.chunk_size if chunk_size is None else chunk_size,
        ).delegate_to(self.database.adapter)

    async def search_and_delete(
        self,
        query: Query | None = None,
        reach: Reach | None = None,
        chunk_size: int | None = None,
    ) -> int:
        """Delete every document matching the query. Returns the deleted count."""
        collection, partition = self._search_scope()
        return await DocumentSearchAndDeleteRequest(
            collection=collection,
            partition=partition,
            query=query or Query(),
            reach=self.database.resolve_reach(reach),
            chunk_size=self.database.chunk_size if chunk_size is None else chunk_size,
        ).delegate_to(self.database.adapter)

    async def schema(self, reach: Reach | None = None) -> CollectionSchema | None:
        """Schema of the collection, or None if it is unmanaged."""
        collection, _ = self._search_scope()
        schemas = await SchemaReadRequest(
            collection=collection,
            reach=self.database.resolve_reach(reach),
        ).delegate_to(self.database.adapter).last()
        return schemas.get(collection.collection_id)


@dataclass(frozen=True)
class Partition(SearchMethods):
    collection: Collection
    partition_id: str

    def __post_init__(self):
        if not isinstance(self.partition_id, str) or not self.partition_id:
            raise ValueError(f"Invalid partition_id: {self.partition_id!r}")

    def __deepcopy__(self, memo) -> Partition:
        return self

    @property
    def database(self) -> Database:
        return self.collection.database

    @property
    def collection_id(self) -> str:
        return self.collection.collection_id

    def _search_scope(self) -> tuple[Collection, Partition | None]:
        return self.collection, self

    def document(self, document_id: str) -> Document:
        return Document(self, document_id)

    def new_document(self) -> Document:
        """Document handle with a random id (see new_document_id)."""
        return self.document(new_document_id())

    async def insert(self, data: Mapping[str, Any], reach: Reach | None = None) -> Document:
        """Insert a document with a backend-assigned id and return its handle."""
        inserted: list[Document] = []
        await DocumentInsertRequest(
            collection=self.collection,
            partition=self,
            data=data,
            reach=self.database.resolve_reach(reach),
            on_document=inserted.append,
        ).delegate_to(self.database.adapter)
        if len(inserted) != 1:
            raise BackendError(
                f"Insert into {self} reported {len(inserted)} documents, expected 1"
            )
        return inserted[0]

    async def upsert(self, data: Mapping[str, Any], reach: Reach | None = None) -> None:
        """Upsert a document addressed by the data's "id" field, which is not stored."""
        await DocumentUpsertRequest(
            collection=self.collection,
            partition=self,
            data=data,
            reach=self.database.resolve_reach(reach),
        ).delegate_to(self.database.adapter)

    def __str__(self) -> str:
        return f'{self.collection}.partition("{self.partition_id}")'
