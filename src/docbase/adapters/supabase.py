"""
Supabase adapter - relational terminal adapter over PostgREST.

Mapping:
- collection -> table named after the collection id
- partition  -> `partition_id` column
- document   -> `id` column (primary key, may have a database default)
- data       -> the remaining columns

Filters are translated into PostgREST builder calls (eq, neq, gt/gte,
lt/lte, is_, contains, or_), sorters into ordered order() calls and the
skip/take window into range()/offset(). Keyword (full-text) filters are
not supported and raise CapabilityError.

Delete policy: deleting an absent document is a no-op.
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Mapping
from typing import Any

import httpx
from postgrest.exceptions import APIError
from supabase import Client

from docbase.database.document import Document
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
)
from docbase.database.partition import Partition
from docbase.database.query import Query, QueryResult
from docbase.database.reach import Reach
from docbase.database.schema import CollectionSchema
from docbase.database.snapshot import Snapshot
from docbase.database.sorters import Sorter
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
)
from docbase.errors import BackendError, CapabilityError, NotFoundError

logger = logging.getLogger(__name__)

ID_COLUMN = "id"
PARTITION_COLUMN = "partition_id"


# =============================================================================
# Query Translation
# =============================================================================


def _unsupported(filter: Filter) -> CapabilityError:
    return CapabilityError("search", f"Filter not supported by PostgREST: {filter!r}")


def apply_field_filter(builder: Any, name: str, f: Filter) -> Any:
    """Apply a filter on a single column to a PostgREST builder."""
    match f:
        case ValueFilter(value=None):
            return builder.is_(name, "null")
        case ValueFilter(value=value):
            return builder.eq(name, value)
        case RangeFilter():
            if f.min is not None:
                builder = builder.gt(name, f.min) if f.is_exclusive_min else builder.gte(name, f.min)
            if f.max is not None:
                builder = builder.lt(name, f.max) if f.is_exclusive_max else builder.lte(name, f.max)
            return builder
        case NotFilter(filter=ValueFilter(value=None)):
            return builder.not_.is_(name, "null")
        case NotFilter(filter=ValueFilter(value=value)):
            return builder.neq(name, value)
        case KeywordFilter(value=value):
            # Field-scoped keyword: case-insensitive substring
            return builder.ilike(name, f"%{value}%")
        case RegExpFilter(pattern=pattern):
            return builder.filter(name, "match", pattern)
        case ListFilter(items=ValueFilter(value=value)):
            # Array column containing the value (PostgreSQL @>)
            return builder.contains(name, [value])
        case AndFilter(filters=filters):
            for sub in filters:
                builder = apply_field_filter(builder, name, sub)
            return builder
    raise _unsupported(f)


def or_condition(f: Filter) -> str:
    """Render one OR branch in PostgREST's `field.op.value` syntax."""
    match f:
        case MapFilter(properties=((name, sub),)):
            return _field_condition(name, sub)
        case MapFilter(properties=properties) if properties:
            inner = ",".join(_field_condition(name, sub) for name, sub in properties)
            return f"and({inner})"
    raise _unsupported(f)


# Characters with a meaning in PostgREST's logic-tree syntax
_RESERVED = frozenset(',.:()" \\')


def _or_value(value: Any) -> str:
    """Render a value for an `or_` condition, double-quoting reserved characters."""
    text = str(value)
    if not any(c in _RESERVED for c in text):
        return text
    escaped = text.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _field_condition(name: str, f: Filter) -> str:
    match f:
        case ValueFilter(value=None):
            return f"{name}.is.null"
        case ValueFilter(value=value):
            return f"{name}.eq.{_or_value(value)}"
        case NotFilter(filter=ValueFilter(value=None)):
            return f"{name}.not.is.null"
        case NotFilter(filter=ValueFilter(value=value)):
            return f"{name}.neq.{_or_value(value)}"
        case RangeFilter():
            parts = []
            if f.min is not None:
                parts.append(f"{name}.{'gt' if f.is_exclusive_min else 'gte'}.{_or_value(f.min)}")
            if f.max is not None:
                parts.append(f"{name}.{'lt' if f.is_exclusive_max else 'lte'}.{_or_value(f.max)}")
            return parts[0] if len(parts) == 1 else f"and({','.join(parts)})"
    raise _unsupported(f)


def apply_filter(builder: Any, f: Filter | None) -> Any:
    """Apply a filter tree to a PostgREST builder (AND across branches)."""
    match f:
        case None:
            return builder
        case AndFilter(filters=filters):
            for sub in filters:
                builder = apply_filter(builder, sub)
            return builder
        case MapFilter(properties=properties):
            for name, sub in properties:
                builder = apply_field_filter(builder, name, sub)
            return builder
        case OrFilter(filters=filters):
            return builder.or_(",".join(or_condition(sub) for sub in filters))
    raise _unsupported(f)


def apply_sorter(builder: Any, sorter: Sorter | None) -> Any:
    if sorter is None:
        return builder
    for s in sorter.property_sorters():
        builder = builder.order(s.name, desc=not s.ascending)
    return builder


def apply_window(builder: Any, query: Query) -> Any:
    """Map skip/take onto range()/offset(); omitted values stay backend defaults."""
    if query.take is not None:
        return builder.range(query.skip, query.skip + query.take - 1)
    if query.skip:
        return builder.offset(query.skip)
    return builder


# =============================================================================
# Adapter
# =============================================================================


class SupabaseDatabaseAdapter(DatabaseAdapter):
    """
    Terminal adapter for a Supabase (PostgreSQL + PostgREST) project.

    Args:
        client: Supabase client (see docbase.factory for construction from settings)
        schemas: Schemas reported by schema reads, keyed by table name
    """

    capabilities = AdapterCapabilities(max_reach=Reach.GLOBAL, full_text_search=False)

    def __init__(self, client: Client, schemas: Mapping[str, CollectionSchema] | None = None):
        self.client = client
        self._schemas = dict(schemas or {})

    async def _execute(self, builder: Any, method: str, table: str) -> list[dict]:
        """Run a builder off the event loop and translate failures."""
        try:
            response = await asyncio.to_thread(builder.execute)
        except APIError as e:
            raise BackendError(
                e.message or "PostgREST request failed",
                method=method,
                address=table,
                status=e.code,
            ) from e
        except httpx.HTTPError as e:
            raise BackendError(str(e), method=method, address=table) from e
        return response.data or []

    @staticmethod
    def _row_data(row: Mapping[str, Any]) -> dict[str, Any]:
        return {k: v for k, v in row.items() if k not in (ID_COLUMN, PARTITION_COLUMN)}

    def _replacing(self, current: Mapping[str, Any], data: Mapping[str, Any]) -> dict[str, Any]:
        """New column values replacing `current`: absent columns become null."""
        return {**{k: None for k in self._row_data(current)}, **data}

    def _document_query(self, builder: Any, document: Document) -> Any:
        return builder.eq(ID_COLUMN, document.document_id).eq(PARTITION_COLUMN, document.partition_id)

    async def _fetch_row(self, document: Document) -> dict | None:
        table = document.collection_id
        builder = self._document_query(self.client.table(table).select("*"), document)
        rows = await self._execute(builder.limit(1), "select", table)
        return rows[0] if rows else None

    # =========================================================================
    # Writes
    # =========================================================================

    async def perform_document_insert(self, request: DocumentInsertRequest) -> None:
        self.check_reach(request)
        table = request.collection.collection_id
        row = {**request.data, PARTITION_COLUMN: request.partition.partition_id}
        if request.document is not None:
            row[ID_COLUMN] = request.document.document_id

        rows = await self._execute(self.client.table(table).insert(row), "insert", table)
        if request.document is not None:
            document = request.document
        elif rows and rows[0].get(ID_COLUMN) is not None:
            document = request.partition.document(str(rows[0][ID_COLUMN]))
        else:
            raise BackendError("Insert returned no id", method="insert", address=table)

        if request.on_document is not None:
            request.on_document(document)

    async def perform_document_upsert(self, request: DocumentUpsertRequest) -> None:
        self.check_reach(request)
        document = request.document
        table = document.collection_id
        # ON CONFLICT only sets the columns sent; clear the ones the new data omits
        current = await self._fetch_row(document)
        values = dict(request.data) if current is None else self._replacing(current, request.data)
        row = {**values, ID_COLUMN: document.document_id, PARTITION_COLUMN: document.partition_id}
        await self._execute(self.client.table(table).upsert(row), "upsert", table)

    async def perform_document_update(self, request: DocumentUpdateRequest) -> None:
        self.check_reach(request)
        document = request.document
        table = document.collection_id
        values = dict(request.data)

        if not request.is_patch:
            # Replace: columns absent from the new data are cleared
            current = await self._fetch_row(document)
            if current is None:
                raise NotFoundError(str(document))
            values = self._replacing(current, values)

        builder = self._document_query(self.client.table(table).update(values), document)
        rows = await self._execute(builder, "update", table)
        if not rows:
            raise NotFoundError(str(document))

    async def perform_document_delete(self, request: DocumentDeleteRequest) -> None:
        self.check_reach(request)
        document = request.document
        table = document.collection_id
        builder = self._document_query(self.client.table(table).delete(), document)
        await self._execute(builder, "delete", table)

    async def perform_document_search_and_delete(self, request: DocumentSearchAndDeleteRequest) -> int:
        query = request.query
        if query.skip or query.take is not None:
            # A windowed delete needs the ordered matches first
            return await super().perform_document_search_and_delete(request)

        self.check_reach(request)
        table = request.collection.collection_id
        builder = self.client.table(table).delete()
        # PostgREST refuses a DELETE without a WHERE clause
        builder = builder.not_.is_(ID_COLUMN, "null")
        builder = self._scope(builder, request.partition)
        builder = apply_filter(builder, query.filter)
        rows = await self._execute(builder, "delete", table)
        logger.info(f"Bulk-deleted {len(rows)} rows from '{table}'")
        return len(rows)

    # =========================================================================
    # Reads
    # =========================================================================

    @staticmethod
    def _scope(builder: Any, partition: Partition | None) -> Any:
        if partition is None:
            return builder
        return builder.eq(PARTITION_COLUMN, partition.partition_id)

    async def perform_document_read(self, request: DocumentReadRequest) -> AsyncIterator[Snapshot]:
        self.check_reach(request)
        row = await self._fetch_row(request.document)
        if row is not None:
            yield Snapshot(document=request.document, data=self._row_data(row))

    async def perform_document_search(self, request: DocumentSearchRequest) -> AsyncIterator[QueryResult]:
        self.check_reach(request)
        collection = request.collection
        table = collection.collection_id
        query = request.query
        if query.take == 0:
            yield QueryResult(collection=collection, query=query)
            return

        builder = self.client.table(table).select("*")
        builder = self._scope(builder, request.partition)
        builder = apply_filter(builder, query.filter)
        builder = apply_sorter(builder, query.sorter)
        builder = apply_window(builder, query)
        rows = await self._execute(builder, "select", table)

        yield QueryResult(
            collection=collection,
            query=query,
            snapshots=[
                Snapshot(
                    document=collection.partition(str(row[PARTITION_COLUMN])).document(str(row[ID_COLUMN])),
                    data=self._row_data(row),
                )
                for row in rows
            ],
        )

    async def perform_schema_read(self, request: SchemaReadRequest) -> AsyncIterator[Mapping[str, CollectionSchema]]:
        self.check_reach(request)
        if request.collection is None:
            yield dict(self._schemas)
            return
        collection_id = request.collection.collection_id
        schema = self._schemas.get(collection_id)
        yield {collection_id: schema} if schema is not None else {}

    def __repr__(self) -> str:
        return f"SupabaseDatabaseAdapter(tables={sorted(self._schemas)})"
