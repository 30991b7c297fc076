"""
Schema-enforcing adapter - validates writes against collection schemas.

Inserts, upserts and updates are checked before they are forwarded;
patches are checked field by field. Batched writes are all checked before
the batch is forwarded. Reads, searches and deletes are never
rejected on schema grounds.

Schemas come from the `schemas` given at construction, falling back to a
schema read on the inner adapter for collections not listed there.
"""

import logging
from collections.abc import AsyncIterator, Mapping
from typing import Any

from docbase.database.collection import Collection
from docbase.database.schema import CollectionSchema
from docbase.database_adapter.base import DatabaseAdapter
from docbase.database_adapter.delegating import DelegatingDatabaseAdapter
from docbase.database_adapter.requests import (
    DocumentInsertRequest,
    DocumentUpdateRequest,
    DocumentUpsertRequest,
    SchemaReadRequest,
    WriteBatchRequest,
)

logger = logging.getLogger(__name__)


class SchemaEnforcingDatabaseAdapter(DelegatingDatabaseAdapter):
    def __init__(
        self,
        inner: DatabaseAdapter,
        schemas: Mapping[str, CollectionSchema] | None = None,
    ):
        super().__init__(inner)
        self.schemas = dict(schemas or {})

    async def schema_for(self, collection: Collection) -> CollectionSchema | None:
        """Schema lookup: local schemas first, then the inner adapter."""
        schema = self.schemas.get(collection.collection_id)
        if schema is not None:
            return schema
        schemas = await SchemaReadRequest(collection=collection).delegate_to(self.inner).last()
        return schemas.get(collection.collection_id)

    async def _check(self, collection: Collection, data: Mapping[str, Any], partial: bool = False) -> None:
        schema = await self.schema_for(collection)
        if schema is None:
            return
        schema.check(collection.collection_id, data, partial=partial)
        logger.debug(f"Schema check passed for '{collection.collection_id}'")

    async def perform_document_insert(self, request: DocumentInsertRequest) -> None:
        await self._check(request.collection, request.data)
        await request.delegate_to(self.inner)

    async def perform_document_upsert(self, request: DocumentUpsertRequest) -> None:
        await self._check(request.collection, request.data)
        await request.delegate_to(self.inner)

    async def perform_document_update(self, request: DocumentUpdateRequest) -> None:
        await self._check(request.collection, request.data, partial=request.is_patch)
        await request.delegate_to(self.inner)

    async def perform_write_batch(self, request: WriteBatchRequest) -> None:
        for write in request.writes:
            match write:
                case DocumentInsertRequest() | DocumentUpsertRequest():
                    await self._check(write.collection, write.data)
                case DocumentUpdateRequest():
                    await self._check(write.collection, write.data, partial=write.is_patch)
        await request.delegate_to(self.inner)

    async def perform_schema_read(self, request: SchemaReadRequest) -> AsyncIterator[Mapping[str, CollectionSchema]]:
        """Inner schemas overlaid with the locally configured ones."""
        async with request.delegate_to(self.inner) as stream:
            async for schemas in stream:
                merged = dict(schemas)
                if request.collection is None:
                    merged.update(self.schemas)
                else:
                    collection_id = request.collection.collection_id
                    if collection_id in self.schemas:
                        merged[collection_id] = self.schemas[collection_id]
                yield merged
