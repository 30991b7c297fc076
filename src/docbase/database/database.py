"""
Database - facade binding an adapter chain to collection handles.

    database = MemoryDatabaseAdapter().database()
    recipes = database.collection("recipes").partition("alice")
    doc = await recipes.insert({"name": "Pad Thai"})
    snapshot = await doc.read()
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING

from docbase.database.collection import Collection
from docbase.database.reach import Reach
from docbase.database.write_batch import WriteBatch
from docbase.database_adapter.requests import DEFAULT_CHUNK_SIZE, SchemaReadRequest

if TYPE_CHECKING:
    from docbase.database.schema import CollectionSchema
    from docbase.database_adapter.base import DatabaseAdapter


class Database:
    """
    Entry point for client code.

    Args:
        adapter: Outermost adapter of the chain; owned by the database
        default_reach: Reach used when an operation does not specify one
        chunk_size: Page size for chunked searches that do not specify one
    """

    def __init__(
        self,
        adapter: DatabaseAdapter,
        default_reach: Reach | None = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ):
        if adapter is None:
            raise ValueError("Database needs an adapter")
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self.adapter = adapter
        self.default_reach = default_reach
        self.chunk_size = chunk_size

    def collection(self, collection_id: str) -> Collection:
        return Collection(self, collection_id)

    def resolve_reach(self, reach: Reach | None) -> Reach | None:
        return reach if reach is not None else self.default_reach

    async def schemas(self, reach: Reach | None = None) -> Mapping[str, CollectionSchema]:
        """Schemas of every managed collection."""
        return await SchemaReadRequest(
            reach=self.resolve_reach(reach),
        ).delegate_to(self.adapter).last()

    def write_batch(self, atomic: bool = True, reach: Reach | None = None) -> WriteBatch:
        """Collect writes and commit them as one request (see WriteBatch)."""
        return WriteBatch(self, atomic=atomic, reach=reach)

    async def close(self) -> None:
        await self.adapter.close()

    async def __aenter__(self) -> Database:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def __str__(self) -> str:
        return f"Database({type(self.adapter).__name__})"
