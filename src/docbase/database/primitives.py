"""
Primitive document values.

Strings, numbers, booleans, lists, dicts, datetime and date are used as-is.
GeoPoint and Blob are opaque value types: equality and hashing only.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class GeoPoint:
    """A point on Earth in decimal degrees."""

    latitude: float
    longitude: float

    def __post_init__(self):
        if not -90.0 <= self.latitude <= 90.0:
            raise ValueError(f"Invalid latitude: {self.latitude}")
        if not -180.0 <= self.longitude <= 180.0:
            raise ValueError(f"Invalid longitude: {self.longitude}")

    def __str__(self) -> str:
        return f"{self.latitude},{self.longitude}"


@dataclass(frozen=True)
class Blob:
    """Binary content with an optional MIME type."""

    data: bytes
    mime_type: str | None = None

    def __len__(self) -> int:
        return len(self.data)

    def __repr__(self) -> str:
        return f"Blob({len(self.data)} bytes, mime_type={self.mime_type!r})"
