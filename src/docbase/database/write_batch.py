"""
WriteBatch - several document writes committed as one request.

    async with database.write_batch() as batch:
        batch.upsert(recipes.document("r1"), {"name": "Pad Thai"})
        batch.delete(recipes.document("r2"))

Leaving the block without an exception commits the batch; an exception
discards it. Atomic batches (the default) apply every write or none and
fail with CapabilityError on adapters that cannot promise that.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from docbase.database.reach import Reach
from docbase.database_adapter.requests import (
    DocumentDeleteRequest,
    DocumentInsertRequest,
    DocumentUpdateRequest,
    DocumentUpsertRequest,
    WriteBatchRequest,
    WriteRequest,
)

if TYPE_CHECKING:
    from docbase.database.database import Database
    from docbase.database.document import Document


class WriteBatch:
    def __init__(self, database: Database, atomic: bool = True, reach: Reach | None = None):
        self.database = database
        self.atomic = atomic
        self.reach = database.resolve_reach(reach)
        self._writes: list[WriteRequest] = []
        self._committed = False

    def _add(self, write: WriteRequest) -> None:
        if self._committed:
            raise RuntimeError("Write batch already committed")
        self._writes.append(write)

    def insert(self, document: Document, data: Mapping[str, Any]) -> None:
        self._add(DocumentInsertRequest(
            collection=document.collection,
            document=document,
            data=data,
            reach=self.reach,
        ))

    def upsert(self, document: Document, data: Mapping[str, Any]) -> None:
        self._add(DocumentUpsertRequest(
            collection=document.collection,
            document=document,
            data=data,
            reach=self.reach,
        ))

    def update(self, document: Document, data: Mapping[str, Any]) -> None:
        self._add(DocumentUpdateRequest(document=document, data=data, reach=self.reach))

    def patch(self, document: Document, data: Mapping[str, Any]) -> None:
        self._add(DocumentUpdateRequest(document=document, data=data, is_patch=True, reach=self.reach))

    def delete(self, document: Document) -> None:
        self._add(DocumentDeleteRequest(document=document, reach=self.reach))

    def __len__(self) -> int:
        return len(self._writes)

    async def commit(self) -> None:
        """Send the collected writes. A batch commits at most once."""
        if self._committed:
            raise RuntimeError("Write batch already committed")
        self._committed = True
        if not self._writes:
            return
        await WriteBatchRequest(
            writes=tuple(self._writes),
            atomic=self.atomic,
            reach=self.reach,
        ).delegate_to(self.database.adapter)

    async def __aenter__(self) -> WriteBatch:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            await self.commit()
