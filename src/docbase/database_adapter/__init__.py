"""
Docbase - Database adapter capability surface.

Adapter authors implement DatabaseAdapter (terminal) or subclass
DelegatingDatabaseAdapter (decorator) and receive the request objects
defined here.
"""

from docbase.database_adapter.base import AdapterCapabilities, DatabaseAdapter
from docbase.database_adapter.delegating import DelegatingDatabaseAdapter
from docbase.database_adapter.requests import (
    DEFAULT_CHUNK_SIZE,
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
    WriteRequest,
    delegate,
)

__all__ = [
    "AdapterCapabilities",
    "DatabaseAdapter",
    "DelegatingDatabaseAdapter",
    "DEFAULT_CHUNK_SIZE",
    "DocumentDeleteRequest",
    "DocumentInsertRequest",
    "DocumentReadRequest",
    "DocumentSearchAndDeleteRequest",
    "DocumentSearchChunkedRequest",
    "DocumentSearchRequest",
    "DocumentUpdateRequest",
    "DocumentUpsertRequest",
    "Request",
    "SchemaReadRequest",
    "WriteBatchRequest",
    "WriteRequest",
    "delegate",
]
