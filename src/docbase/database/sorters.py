"""
Sorters - backend-agnostic ordering over named document fields.

Terminal adapters inspect sorters structurally (names(), ascending flags)
to build native ordering parameters. The in-process implementation here is
used by the memory adapter and by scan-based search fallbacks.
"""

import functools
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, TypeVar

T = TypeVar("T")


def _rank(value: Any) -> int:
    if value is None:
        return 0
    if isinstance(value, bool):
        return 1
    if isinstance(value, (int, float)):
        return 2
    if isinstance(value, str):
        return 3
    if isinstance(value, datetime):
        return 4
    if isinstance(value, date):
        return 5
    return 6


def compare_values(a: Any, b: Any) -> int:
    """
    Total order over document values.

    None sorts before everything; values of different kinds are ordered by
    kind (bool < number < string < datetime < date < other).
    """
    rank_a, rank_b = _rank(a), _rank(b)
    if rank_a != rank_b:
        return -1 if rank_a < rank_b else 1
    if rank_a == 0:
        return 0
    try:
        if a < b:
            return -1
        if a > b:
            return 1
        return 0
    except TypeError:
        # Naive vs aware datetimes, unorderable custom values
        sa, sb = str(a), str(b)
        return (sa > sb) - (sa < sb)


class Sorter:
    """Base class for sorters."""

    def compare(self, a: Mapping[str, Any], b: Mapping[str, Any]) -> int:
        raise NotImplementedError

    def property_sorters(self) -> list["PropertySorter"]:
        """Flattened property sorters in priority order."""
        raise NotImplementedError

    def names(self) -> list[str]:
        return [s.name for s in self.property_sorters()]

    def sort(self, items: Iterable[T], key: Callable[[T], Mapping[str, Any]]) -> list[T]:
        """Return items sorted by this sorter; stable for equal keys."""
        return sorted(
            items,
            key=functools.cmp_to_key(lambda x, y: self.compare(key(x), key(y))),
        )


@dataclass(frozen=True)
class PropertySorter(Sorter):
    """Orders by a single field."""

    name: str
    ascending: bool = True

    def __post_init__(self):
        if not self.name:
            raise ValueError("PropertySorter needs a field name")

    def compare(self, a: Mapping[str, Any], b: Mapping[str, Any]) -> int:
        result = compare_values(a.get(self.name), b.get(self.name))
        return result if self.ascending else -result

    def property_sorters(self) -> list["PropertySorter"]:
        return [self]

    def __str__(self) -> str:
        return self.name if self.ascending else f"-{self.name}"


@dataclass(frozen=True)
class MultiSorter(Sorter):
    """Orders by several sorters; later sorters break ties of earlier ones."""

    sorters: tuple[Sorter, ...]

    def __post_init__(self):
        object.__setattr__(self, "sorters", tuple(self.sorters))

    def compare(self, a: Mapping[str, Any], b: Mapping[str, Any]) -> int:
        for sorter in self.sorters:
            result = sorter.compare(a, b)
            if result != 0:
                return result
        return 0

    def property_sorters(self) -> list[PropertySorter]:
        flattened: list[PropertySorter] = []
        for sorter in self.sorters:
            flattened.extend(sorter.property_sorters())
        return flattened

    def __str__(self) -> str:
        return ",".join(str(s) for s in self.sorters)
