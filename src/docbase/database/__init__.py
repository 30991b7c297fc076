"""
Docbase - Client-facing database model.

Addressing (Database, Collection, Partition, Document), write batches, results
(Snapshot, QueryResult, ResultStream) and query description (Query,
filters, sorters).
"""

from docbase.database.reach import Reach
from docbase.database.primitives import Blob, GeoPoint
from docbase.database.stream import ResultStream
from docbase.database.filters import (
    AndFilter,
    Filter,
    KeywordFilter,
    ListFilter,
    MapFilter,
    NotFilter,
    OrFilter,
    RangeFilter,
    RegExpFilter,
    ValueFilter,
    where,
)
from docbase.database.sorters import MultiSorter, PropertySorter, Sorter, compare_values
from docbase.database.query import Query, QueryResult
from docbase.database.snapshot import Snapshot
from docbase.database.schema import CollectionSchema, FieldSchema, load_schemas, parse_schemas
from docbase.database.document import Document, new_document_id
from docbase.database.partition import Partition
from docbase.database.collection import DEFAULT_PARTITION_ID, Collection
from docbase.database.write_batch import WriteBatch
from docbase.database.database import Database

__all__ = [
    "AndFilter",
    "Blob",
    "Collection",
    "CollectionSchema",
    "Database",
    "DEFAULT_PARTITION_ID",
    "Document",
    "FieldSchema",
    "Filter",
    "GeoPoint",
    "KeywordFilter",
    "ListFilter",
    "MapFilter",
    "MultiSorter",
    "NotFilter",
    "OrFilter",
    "Partition",
    "PropertySorter",
    "Query",
    "QueryResult",
    "RangeFilter",
    "Reach",
    "RegExpFilter",
    "ResultStream",
    "Snapshot",
    "Sorter",
    "ValueFilter",
    "WriteBatch",
    "compare_values",
    "load_schemas",
    "new_document_id",
    "parse_schemas",
    "where",
]
