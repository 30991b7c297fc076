"""
Document - address of a record within a partition.

A Document is only an address: it never caches data. Every read or write
builds a fresh request and sends it through the database's adapter chain.
"""

from __future__ import annotations

import secrets
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from docbase.database.reach import Reach
from docbase.database.stream import ResultStream
from docbase.database_adapter.requests import (
    DocumentDeleteRequest,
    DocumentInsertRequest,
    DocumentReadRequest,
    DocumentUpdateRequest,
    DocumentUpsertRequest,
)

if TYPE_CHECKING:
    from docbase.database.collection import Collection
    from docbase.database.database import Database
    from docbase.database.partition import Partition
    from docbase.database.snapshot import Snapshot


def new_document_id() -> str:
    """Random 128-bit id as 32 lowercase hex characters. Collisions are not checked."""
    return secrets.token_hex(16)


@dataclass(frozen=True)
class Document:
    partition: Partition
    document_id: str

    def __post_init__(self):
        if not isinstance(self.document_id, str) or not self.document_id:
            raise ValueError(f"Invalid document_id: {self.document_id!r}")

    def __deepcopy__(self, memo) -> Document:
        return self

    @property
    def collection(self) -> Collection:
        return self.partition.collection

    @property
    def database(self) -> Database:
        return self.partition.database

    @property
    def collection_id(self) -> str:
        return self.partition.collection_id

    @property
    def partition_id(self) -> str:
        return self.partition.partition_id

    @property
    def key(self) -> tuple[str, str, str]:
        return (self.collection_id, self.partition_id, self.document_id)

    async def insert(self, data: Mapping[str, Any], reach: Reach | None = None) -> None:
        """Insert this document. Fails with BackendError if it already exists."""
        await DocumentInsertRequest(
            collection=self.collection,
            partition=self.partition,
            document=self,
            data=data,
            reach=self.database.resolve_reach(reach),
        ).delegate_to(self.database.adapter)

    async def upsert(self, data: Mapping[str, Any], reach: Reach | None = None) -> None:
        """Insert or replace this document."""
        await DocumentUpsertRequest(
            collection=self.collection,
            partition=self.partition,
            document=self,
            data=data,
            reach=self.database.resolve_reach(reach),
        ).delegate_to(self.database.adapter)

    async def update(self, data: Mapping[str, Any], reach: Reach | None = None) -> None:
        """Replace the data of an existing document (NotFoundError if missing)."""
        await DocumentUpdateRequest(
            document=self,
            data=data,
            reach=self.database.resolve_reach(reach),
        ).delegate_to(self.database.adapter)

    async def patch(self, data: Mapping[str, Any], reach: Reach | None = None) -> None:
        """Merge fields into an existing document (NotFoundError if missing)."""
        await DocumentUpdateRequest(
            document=self,
            data=data,
            is_patch=True,
            reach=self.database.resolve_reach(reach),
        ).delegate_to(self.database.adapter)

    async def delete(self, reach: Reach | None = None) -> None:
        await DocumentDeleteRequest(
            document=self,
            reach=self.database.resolve_reach(reach),
        ).delegate_to(self.database.adapter)

    def read_incrementally(self, reach: Reach | None = None) -> ResultStream[Snapshot]:
        """Stream of snapshots; ends after one snapshot on non-live backends."""
        return DocumentReadRequest(
            document=self,
            reach=self.database.resolve_reach(reach),
        ).delegate_to(self.database.adapter)

    async def read(self, reach: Reach | None = None) -> Snapshot | None:
        """Return the current snapshot, or None if the document does not exist."""
        return await self.read_incrementally(reach).first()

    async def exists(self, reach: Reach | None = None) -> bool:
        snapshot = await self.read(reach)
        return snapshot is not None and snapshot.exists

    def __str__(self) -> str:
        return f'{self.partition}.document("{self.document_id}")'
