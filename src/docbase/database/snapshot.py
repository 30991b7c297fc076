"""Snapshot - immutable materialized read of a document."""

from __future__ import annotations

import copy
from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from docbase.database.document import Document


@dataclass(frozen=True, eq=False)
class Snapshot:
    """
    The data of a document at the time it was read.

    `data` is a read-only deep copy; mutating the mapping passed in does not
    affect the snapshot.
    """

    document: Document
    data: Mapping[str, Any]
    exists: bool = True

    def __post_init__(self):
        object.__setattr__(self, "data", MappingProxyType(copy.deepcopy(dict(self.data))))

    def __eq__(self, other) -> bool:
        return (
            isinstance(other, Snapshot)
            and self.document == other.document
            and self.exists == other.exists
            and dict(self.data) == dict(other.data)
        )

    __hash__ = None

    def to_dict(self) -> dict[str, Any]:
        """Mutable deep copy of the data."""
        return copy.deepcopy(dict(self.data))

    def __getitem__(self, name: str) -> Any:
        return self.data[name]

    def get(self, name: str, default: Any = None) -> Any:
        return self.data.get(name, default)
