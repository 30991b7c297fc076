"""
Docbase - Request model.

One immutable request type per adapter operation. Every client-facing
operation builds exactly one request and hands it to `delegate()`, which
calls the single adapter method the request kind maps to:

    DocumentInsertRequest         -> perform_document_insert
    DocumentUpsertRequest         -> perform_document_upsert
    DocumentUpdateRequest         -> perform_document_update
    DocumentDeleteRequest         -> perform_document_delete
    WriteBatchRequest             -> perform_write_batch
    DocumentReadRequest           -> perform_document_read            (stream)
    DocumentSearchRequest         -> perform_document_search          (stream)
    DocumentSearchChunkedRequest  -> perform_document_search_chunked  (stream)
    DocumentSearchAndDeleteRequest-> perform_document_search_and_delete
    SchemaReadRequest             -> perform_schema_read              (stream)

Requests carry no retry state; a retry builds a new request.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, ClassVar

from docbase.database.query import Query
from docbase.database.reach import Reach
from docbase.database.stream import ResultStream

if TYPE_CHECKING:
    from docbase.database.collection import Collection
    from docbase.database.document import Document
    from docbase.database.partition import Partition
    from docbase.database_adapter.base import DatabaseAdapter

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 100

# Data field naming the document when an upsert has no document handle
ID_FIELD = "id"


class Request:
    """Base class for requests. `operation` names the adapter method kind."""

    operation: ClassVar[str] = ""

    def delegate_to(self, adapter: DatabaseAdapter) -> Any:
        return delegate(self, adapter)


# =============================================================================
# Write Requests
# =============================================================================


@dataclass(frozen=True, kw_only=True)
class DocumentInsertRequest(Request):
    """
    Insert a new document.

    When `document` is None the backend (or adapter) assigns the id and
    reports the created handle through `on_document`, exactly once.
    """

    operation: ClassVar[str] = "insert"

    collection: Collection
    partition: Partition | None = None
    document: Document | None = None
    data: Mapping[str, Any]
    reach: Reach | None = None
    on_document: Callable[[Document], None] | None = None

    def __post_init__(self):
        if self.document is not None and self.partition is None:
            object.__setattr__(self, "partition", self.document.partition)
        if self.partition is None:
            raise ValueError("Insert needs a document or an explicit partition")


@dataclass(frozen=True, kw_only=True)
class DocumentUpsertRequest(Request):
    """
    Insert or replace a document. Idempotent.

    When `document` is None the id is taken from the data's "id" field.
    The id addresses the document and is removed from the stored data.
    """

    operation: ClassVar[str] = "upsert"

    collection: Collection
    partition: Partition | None = None
    document: Document | None = None
    data: Mapping[str, Any]
    reach: Reach | None = None

    def __post_init__(self):
        if self.document is None:
            document_id = self.data.get(ID_FIELD)
            if not isinstance(document_id, str) or not document_id:
                raise ValueError("Upsert without a document needs a string 'id' field in data")
            if self.partition is None:
                raise ValueError("Upsert without a document needs a partition")
            object.__setattr__(self, "document", self.partition.document(document_id))
            object.__setattr__(self, "data", {k: v for k, v in self.data.items() if k != ID_FIELD})
        if self.partition is None:
            object.__setattr__(self, "partition", self.document.partition)


@dataclass(frozen=True, kw_only=True)
class DocumentUpdateRequest(Request):
    """
    Update an existing document; fails with NotFoundError if it is missing.

    `is_patch` merges `data` into the stored fields instead of replacing them.
    """

    operation: ClassVar[str] = "update"

    document: Document
    data: Mapping[str, Any]
    is_patch: bool = False
    reach: Reach | None = None

    @property
    def collection(self) -> Collection:
        return self.document.collection


@dataclass(frozen=True, kw_only=True)
class DocumentDeleteRequest(Request):
    """Delete a document. Absent documents follow the adapter's policy."""

    operation: ClassVar[str] = "delete"

    document: Document
    reach: Reach | None = None

    @property
    def collection(self) -> Collection:
        return self.document.collection


WriteRequest = DocumentInsertRequest | DocumentUpsertRequest | DocumentUpdateRequest | DocumentDeleteRequest


@dataclass(frozen=True, kw_only=True)
class WriteBatchRequest(Request):
    """
    Apply several writes as one unit.

    An atomic batch applies every write or none of them; adapters that
    cannot promise that raise CapabilityError. A non-atomic batch applies
    the writes in order and stops at the first failure, leaving earlier
    writes in place.
    """

    operation: ClassVar[str] = "write_batch"

    writes: tuple[WriteRequest, ...]
    atomic: bool = True
    reach: Reach | None = None

    def __post_init__(self):
        object.__setattr__(self, "writes", tuple(self.writes))
        for write in self.writes:
            if not isinstance(write, WriteRequest):
                raise TypeError(f"Not a write request: {write!r}")

    @property
    def collection_ids(self) -> set[str]:
        return {write.collection.collection_id for write in self.writes}


# =============================================================================
# Read Requests
# =============================================================================


@dataclass(frozen=True, kw_only=True)
class DocumentReadRequest(Request):
    """Read a document: a stream of at most one snapshot for non-live backends."""

    operation: ClassVar[str] = "read"

    document: Document
    reach: Reach | None = None

    @property
    def collection(self) -> Collection:
        return self.document.collection


@dataclass(frozen=True, kw_only=True)
class DocumentSearchRequest(Request):
    """
    Search a collection, or one partition of it.

    The stream may emit growing partial results; the last one is complete.
    """

    operation: ClassVar[str] = "search"

    collection: Collection
    partition: Partition | None = None
    query: Query = field(default_factory=Query)
    reach: Reach | None = None


@dataclass(frozen=True, kw_only=True)
class DocumentSearchChunkedRequest(Request):
    """Search fetched `chunk_size` snapshots at a time."""

    operation: ClassVar[str] = "search_chunked"

    collection: Collection
    partition: Partition | None = None
    query: Query = field(default_factory=Query)
    reach: Reach | None = None
    chunk_size: int = DEFAULT_CHUNK_SIZE

    def __post_init__(self):
        if self.chunk_size <= 0:
            raise ValueError(f"chunk_size must be > 0, got {self.chunk_size}")

    def as_search(self, query: Query) -> DocumentSearchRequest:
        return DocumentSearchRequest(
            collection=self.collection,
            partition=self.partition,
            query=query,
            reach=self.reach,
        )


@dataclass(frozen=True, kw_only=True)
class DocumentSearchAndDeleteRequest(Request):
    """Delete every document matching the query. Resolves to the deleted count."""

    operation: ClassVar[str] = "search_and_delete"

    collection: Collection
    partition: Partition | None = None
    query: Query = field(default_factory=Query)
    reach: Reach | None = None
    chunk_size: int = DEFAULT_CHUNK_SIZE

    def as_chunked_search(self) -> DocumentSearchChunkedRequest:
        return DocumentSearchChunkedRequest(
            collection=self.collection,
            partition=self.partition,
            query=self.query,
            reach=self.reach,
            chunk_size=self.chunk_size,
        )


@dataclass(frozen=True, kw_only=True)
class SchemaReadRequest(Request):
    """Read schemas: a stream of {collection_id: CollectionSchema} mappings."""

    operation: ClassVar[str] = "schema_read"

    collection: Collection | None = None
    reach: Reach | None = None


# =============================================================================
# Dispatch
# =============================================================================


def delegate(request: Request, adapter: DatabaseAdapter) -> Awaitable[Any] | ResultStream:
    """
    Invoke the adapter method matching the request kind.

    Write operations return an awaitable; read and search operations return
    a ResultStream.
    """
    logger.debug(f"Dispatching {request.operation} to {type(adapter).__name__}")
    match request:
        case DocumentInsertRequest():
            return adapter.perform_document_insert(request)
        case DocumentUpsertRequest():
            return adapter.perform_document_upsert(request)
        case DocumentUpdateRequest():
            return adapter.perform_document_update(request)
        case DocumentDeleteRequest():
            return adapter.perform_document_delete(request)
        case WriteBatchRequest():
            return adapter.perform_write_batch(request)
        case DocumentReadRequest():
            return ResultStream(adapter.perform_document_read(request))
        case DocumentSearchRequest():
            return ResultStream(adapter.perform_document_search(request))
        case DocumentSearchChunkedRequest():
            return ResultStream(adapter.perform_document_search_chunked(request))
        case DocumentSearchAndDeleteRequest():
            return adapter.perform_document_search_and_delete(request)
        case SchemaReadRequest():
            return ResultStream(adapter.perform_schema_read(request))
        case _:
            raise TypeError(f"Unknown request type: {type(request).__name__}")
