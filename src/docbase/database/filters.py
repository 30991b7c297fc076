"""
Filters - boolean predicate trees over document fields.

A filter is an immutable description. Terminal adapters walk it to build
backend-native queries; `matches()` evaluates it in-process for adapters
without a native query engine. `str(filter)` renders a Lucene-style query
string for search engines.

    MapFilter({
        "cuisine": ValueFilter("italian"),
        "rating": RangeFilter(min=4),
    })
"""

import re
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from typing import Any

from docbase.database.sorters import compare_values


def _render_value(value: Any) -> str:
    if isinstance(value, str):
        escaped = value.replace('"', '\\"')
        return f'"{escaped}"'
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _iter_strings(value: Any) -> Iterator[str]:
    if isinstance(value, str):
        yield value
    elif isinstance(value, Mapping):
        for item in value.values():
            yield from _iter_strings(item)
    elif isinstance(value, (list, tuple)):
        for item in value:
            yield from _iter_strings(item)


class Filter:
    """Base class for filters."""

    def matches(self, value: Any) -> bool:
        raise NotImplementedError

    def children(self) -> tuple["Filter", ...]:
        return ()

    def walk(self) -> Iterator["Filter"]:
        """Yield this filter and every nested filter, depth first."""
        yield self
        for child in self.children():
            yield from child.walk()

    def uses_full_text(self) -> bool:
        return any(isinstance(f, KeywordFilter) for f in self.walk())


@dataclass(frozen=True)
class KeywordFilter(Filter):
    """Full-text match: any string in the value contains the keyword."""

    value: str

    def matches(self, value: Any) -> bool:
        needle = self.value.lower()
        return any(needle in text.lower() for text in _iter_strings(value))

    def __str__(self) -> str:
        return _render_value(self.value) if " " in self.value else self.value


@dataclass(frozen=True)
class ValueFilter(Filter):
    """Exact equality."""

    value: Any

    def matches(self, value: Any) -> bool:
        return value == self.value

    def __str__(self) -> str:
        return _render_value(self.value)


@dataclass(frozen=True)
class RangeFilter(Filter):
    """Value within [min, max]; either bound may be open (None)."""

    min: Any = None
    max: Any = None
    is_exclusive_min: bool = False
    is_exclusive_max: bool = False

    def __post_init__(self):
        if self.min is None and self.max is None:
            raise ValueError("RangeFilter needs min or max")

    def matches(self, value: Any) -> bool:
        if value is None:
            return False
        if self.min is not None:
            result = compare_values(value, self.min)
            if result < 0 or (result == 0 and self.is_exclusive_min):
                return False
        if self.max is not None:
            result = compare_values(value, self.max)
            if result > 0 or (result == 0 and self.is_exclusive_max):
                return False
        return True

    def __str__(self) -> str:
        low = "*" if self.min is None else _render_value(self.min)
        high = "*" if self.max is None else _render_value(self.max)
        left = "{" if self.is_exclusive_min else "["
        right = "}" if self.is_exclusive_max else "]"
        return f"{left}{low} TO {high}{right}"


@dataclass(frozen=True)
class RegExpFilter(Filter):
    """String value containing a match of the pattern."""

    pattern: str

    def matches(self, value: Any) -> bool:
        return isinstance(value, str) and re.search(self.pattern, value) is not None

    def __str__(self) -> str:
        return f"/{self.pattern}/"


@dataclass(frozen=True)
class ListFilter(Filter):
    """List value with at least one item matching `items`."""

    items: Filter

    def matches(self, value: Any) -> bool:
        if not isinstance(value, (list, tuple)):
            return False
        return any(self.items.matches(item) for item in value)

    def children(self) -> tuple[Filter, ...]:
        return (self.items,)

    def __str__(self) -> str:
        return str(self.items)


@dataclass(frozen=True)
class MapFilter(Filter):
    """
    Per-field filters; every field must match.

    Missing fields are treated as None. Accepts a dict and stores it as
    sorted pairs so the filter stays hashable.
    """

    properties: tuple[tuple[str, Filter], ...]

    def __init__(self, properties: Mapping[str, Filter] | tuple[tuple[str, Filter], ...]):
        pairs = properties.items() if isinstance(properties, Mapping) else properties
        object.__setattr__(self, "properties", tuple(sorted(pairs, key=lambda p: p[0])))

    def as_dict(self) -> dict[str, Filter]:
        return dict(self.properties)

    def matches(self, value: Any) -> bool:
        if not isinstance(value, Mapping):
            return False
        return all(f.matches(value.get(name)) for name, f in self.properties)

    def children(self) -> tuple[Filter, ...]:
        return tuple(f for _, f in self.properties)

    def __str__(self) -> str:
        parts = []
        for name, f in self.properties:
            inner = str(f)
            if isinstance(f, (AndFilter, OrFilter)):
                inner = f"({inner})"
            parts.append(f"{name}:{inner}")
        return " AND ".join(parts)


@dataclass(frozen=True)
class AndFilter(Filter):
    filters: tuple[Filter, ...]

    def __post_init__(self):
        object.__setattr__(self, "filters", tuple(self.filters))

    def matches(self, value: Any) -> bool:
        return all(f.matches(value) for f in self.filters)

    def children(self) -> tuple[Filter, ...]:
        return self.filters

    def __str__(self) -> str:
        return " AND ".join(
            f"({f})" if isinstance(f, OrFilter) else str(f) for f in self.filters
        )


@dataclass(frozen=True)
class OrFilter(Filter):
    filters: tuple[Filter, ...]

    def __post_init__(self):
        object.__setattr__(self, "filters", tuple(self.filters))

    def matches(self, value: Any) -> bool:
        return any(f.matches(value) for f in self.filters)

    def children(self) -> tuple[Filter, ...]:
        return self.filters

    def __str__(self) -> str:
        return " OR ".join(
            f"({f})" if isinstance(f, AndFilter) else str(f) for f in self.filters
        )


@dataclass(frozen=True)
class NotFilter(Filter):
    filter: Filter

    def matches(self, value: Any) -> bool:
        return not self.filter.matches(value)

    def children(self) -> tuple[Filter, ...]:
        return (self.filter,)

    def __str__(self) -> str:
        return f"NOT ({self.filter})"


def where(**fields: Any) -> MapFilter:
    """Shorthand for a MapFilter of ValueFilters: where(cuisine="thai")."""
    return MapFilter({name: ValueFilter(value) for name, value in fields.items()})
