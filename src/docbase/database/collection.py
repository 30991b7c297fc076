"""
Collection - named top-level grouping of documents.

Collections are created lazily by name and are the unit a schema applies
to. Document-level shortcuts use the default partition; searches made on
the collection span every partition.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from docbase.database.document import Document
from docbase.database.partition import Partition, SearchMethods
from docbase.database.reach import Reach

if TYPE_CHECKING:
    from docbase.database.database import Database

DEFAULT_PARTITION_ID = "default"


@dataclass(frozen=True)
class Collection(SearchMethods):
    database: Database = field(compare=False, repr=False)
    collection_id: str

    def __post_init__(self):
        if not isinstance(self.collection_id, str) or not self.collection_id:
            raise ValueError(f"Invalid collection_id: {self.collection_id!r}")

    def __deepcopy__(self, memo) -> Collection:
        return self

    def _search_scope(self) -> tuple[Collection, Partition | None]:
        return self, None

    def partition(self, partition_id: str) -> Partition:
        return Partition(self, partition_id)

    @property
    def default_partition(self) -> Partition:
        return self.partition(DEFAULT_PARTITION_ID)

    def document(self, document_id: str) -> Document:
        """Document in the default partition."""
        return self.default_partition.document(document_id)

    def new_document(self) -> Document:
        return self.default_partition.new_document()

    async def insert(self, data: Mapping[str, Any], reach: Reach | None = None) -> Document:
        return await self.default_partition.insert(data, reach)

    def __str__(self) -> str:
        return f'{self.database}.collection("{self.collection_id}")'
