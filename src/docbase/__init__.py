"""
Docbase - A document database client with pluggable adapter chains.

Layers:
- database: client-facing model (Database, Collection, Partition, Document, Query)
- database_adapter: capability surface adapters implement
- adapters: memory, Supabase and Azure Cosmos DB backends plus decorators
"""

from docbase.database import (
    Collection,
    Database,
    Document,
    Partition,
    Query,
    QueryResult,
    Reach,
    ResultStream,
    Snapshot,
)
from docbase.errors import (
    BackendError,
    CapabilityError,
    DatabaseError,
    NotFoundError,
    SchemaIssue,
    SchemaValidationError,
)

__version__ = "1.0.0"

__all__ = [
    "BackendError",
    "CapabilityError",
    "Collection",
    "Database",
    "DatabaseError",
    "Document",
    "NotFoundError",
    "Partition",
    "Query",
    "QueryResult",
    "Reach",
    "ResultStream",
    "SchemaIssue",
    "SchemaValidationError",
    "Snapshot",
]
