"""
Query - backend-agnostic description of what to fetch.

A Query combines a filter, a sorter and a skip/take window. It is immutable;
terminal adapters translate it into native parameters. `apply()` evaluates
it in-process for adapters without a native query engine.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING

from docbase.database.filters import Filter
from docbase.database.sorters import Sorter

if TYPE_CHECKING:
    from docbase.database.collection import Collection
    from docbase.database.snapshot import Snapshot


@dataclass(frozen=True)
class Query:
    """
    Attributes:
        filter: Predicate every result must satisfy (None = everything)
        sorter: Result ordering (None = backend-defined, unstable across calls)
        skip: Number of leading matches to skip (>= 0)
        take: Maximum number of results (None = backend default, not zero)
    """

    filter: Filter | None = None
    sorter: Sorter | None = None
    skip: int = 0
    take: int | None = None

    def __post_init__(self):
        if self.skip is None:
            object.__setattr__(self, "skip", 0)
        if self.skip < 0:
            raise ValueError(f"skip must be >= 0, got {self.skip}")
        if self.take is not None and self.take < 0:
            raise ValueError(f"take must be >= 0, got {self.take}")

    def uses_full_text(self) -> bool:
        return self.filter is not None and self.filter.uses_full_text()

    def with_window(self, skip: int, take: int | None) -> Query:
        return replace(self, skip=skip, take=take)

    def without_window(self) -> Query:
        return replace(self, skip=0, take=None)

    def apply(self, snapshots: Iterable[Snapshot]) -> list[Snapshot]:
        """Filter, sort and window snapshots in-process."""
        results = list(snapshots)
        if self.filter is not None:
            results = [s for s in results if self.filter.matches(s.data)]
        if self.sorter is not None:
            results = self.sorter.sort(results, key=lambda s: s.data)
        end = None if self.take is None else self.skip + self.take
        return results[self.skip:end]


@dataclass(frozen=True)
class QueryResult:
    """Snapshots matching a query, in the order of its sorter."""

    collection: Collection
    query: Query
    snapshots: Sequence[Snapshot] = field(default_factory=tuple)

    def __post_init__(self):
        object.__setattr__(self, "snapshots", tuple(self.snapshots))

    def __len__(self) -> int:
        return len(self.snapshots)

    def __iter__(self):
        return iter(self.snapshots)

    @property
    def documents(self) -> list:
        return [s.document for s in self.snapshots]
