"""
Docbase - Error taxonomy.

Every failure surfaced by an adapter chain is one of:
- NotFoundError: the operation required an existing document
- SchemaValidationError: data violates the collection's schema
- CapabilityError: the adapter cannot perform the operation or reach
- BackendError: opaque failure from the terminal backend

Decorating adapters may translate an error into one of these kinds,
but never replace a failure with an empty result.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from docbase.database.reach import Reach


class DatabaseError(RuntimeError):
    """Base class for docbase errors."""


class NotFoundError(DatabaseError):
    """Raised when an operation targets a missing document."""

    def __init__(self, address: str, message: str | None = None) -> None:
        self.address = address
        super().__init__(message or f"Document not found: {address}")


@dataclass(frozen=True)
class SchemaIssue:
    """A single schema violation at a field path (e.g. "tags[2]")."""

    path: str
    message: str

    def __str__(self) -> str:
        return f"{self.path}: {self.message}"


class SchemaValidationError(DatabaseError, ValueError):
    """Raised when document data violates the collection's schema."""

    def __init__(self, collection_id: str, issues: list[SchemaIssue]) -> None:
        self.collection_id = collection_id
        self.issues = list(issues)
        summary = "; ".join(str(issue) for issue in self.issues)
        super().__init__(f"Schema validation failed for '{collection_id}': {summary}")


class CapabilityError(DatabaseError):
    """Raised when an adapter cannot satisfy an operation or a requested reach."""

    def __init__(
        self,
        operation: str,
        message: str | None = None,
        reach: Reach | None = None,
    ) -> None:
        self.operation = operation
        self.reach = reach
        if message is None:
            message = f"Operation '{operation}' is not supported by this adapter"
        super().__init__(message)


class BackendError(DatabaseError):
    """
    Raised for failures reported by the terminal backend.

    Carries whatever diagnostic context the backend offers: the method
    (HTTP verb or builder operation), the address (URL or table) and the
    status (HTTP status or SQL state).
    """

    def __init__(
        self,
        message: str,
        method: str | None = None,
        address: str | None = None,
        status: Any = None,
    ) -> None:
        self.method = method
        self.address = address
        self.status = status
        super().__init__(message)

    def __str__(self) -> str:
        base = super().__str__()
        if self.method or self.address:
            return f"{base} ({self.method} {self.address} --> status {self.status})"
        return base
